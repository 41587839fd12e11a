# provenance/server.py
# Run with: uvicorn provenance.server:app

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from provenance.app_config import CORS_ORIGINS, configure_logging, load_config
from provenance.fastapi.care_event_api import router as care_event_router
from provenance.fastapi.traceability_api import router as traceability_router


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Care Event Provenance API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    load_config(app)

    app.include_router(care_event_router)
    app.include_router(traceability_router)
    return app


app = create_app()
