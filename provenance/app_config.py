# provenance/app_config.py

import logging
import os

# ------------------------------
# Upstream event store / catalog
# ------------------------------
EVENT_STORE_BASE_URL = (os.getenv("EVENT_STORE_BASE_URL", "") or "").rstrip("/")
EVENT_STORE_TIMEOUT = int(os.getenv("EVENT_STORE_TIMEOUT", "20"))
EVENT_STORE_MAX_RETRIES = int(os.getenv("EVENT_STORE_MAX_RETRIES", "3"))

# ------------------------------
# Service
# ------------------------------
LOG_LEVEL = os.getenv("PROVENANCE_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_config(app):
    """
    Attach runtime configuration to a FastAPI app in one place.
    Routers read it back through request.app.state.
    """
    app.state.event_store_base_url = EVENT_STORE_BASE_URL
    app.state.event_store_timeout = EVENT_STORE_TIMEOUT
    app.state.event_store_max_retries = EVENT_STORE_MAX_RETRIES
    app.state.cors_origins = CORS_ORIGINS

    if not EVENT_STORE_BASE_URL:
        logger.warning("EVENT_STORE_BASE_URL not set; batch lookups will report the store as unavailable")
    logger.info("Config loaded (event store: %s)", EVENT_STORE_BASE_URL or "-")
