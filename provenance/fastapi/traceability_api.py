# provenance/fastapi/traceability_api.py
# Batch traceability report: timeline + chain verdict + resource totals.

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from provenance.models.care_event.event_models import CareEvent
from provenance.models.traceability.traceability_models import TraceabilityStatus
from provenance.services.care_event.event_store_client import EventStoreClient
from provenance.services.traceability.traceability_services import TraceabilityService

router = APIRouter(prefix="/api/v1/traceability", tags=["traceability"])


class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batch_id: Optional[str] = Field(None, alias="batchId")
    events: List[CareEvent] = Field(default_factory=list)


def get_event_store_client(request: Request) -> EventStoreClient:
    state = request.app.state
    return EventStoreClient(
        base_url=getattr(state, "event_store_base_url", None),
        timeout=getattr(state, "event_store_timeout", None),
        max_retries=getattr(state, "event_store_max_retries", None),
    )


# ==========================================================
# ROUTES
# ==========================================================
@router.post("/report")
def build_report(body: ReportRequest):
    vm = TraceabilityService.build_traceability(body.batch_id, body.events)
    return {"ok": True, "data": vm.to_dict()}


@router.get("/batches/{batch_id}")
def batch_report(batch_id: str, client: EventStoreClient = Depends(get_event_store_client)):
    if not batch_id.strip():
        raise HTTPException(status_code=400, detail="Missing batch_id")

    vm = TraceabilityService.load_traceability(batch_id, client)
    if vm.status == TraceabilityStatus.UNAVAILABLE.value:
        # "could not load", never "tamper suspected"
        raise HTTPException(status_code=502, detail=f"Could not load care events: {vm.message}")
    return {"ok": True, "data": vm.to_dict()}


@router.get("/_health")
def trace_health():
    """Health check endpoint"""
    return {"ok": True, "source": "traceability_api", "ts": int(datetime.now(timezone.utc).timestamp())}
