# provenance/fastapi/care_event_api.py
# Stateless JSON endpoints over the care-event schema / payload / chain engine.

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from provenance.errors import SchemaError
from provenance.models.care_event.event_models import CareEvent
from provenance.services.care_event.chain_verifier import ChainVerifier
from provenance.services.care_event.payload_codec import PayloadCanonicalizer
from provenance.services.care_event.payload_validator import PayloadValidator
from provenance.services.care_event.resource_aggregator import ResourceAggregator
from provenance.services.care_event.schema_registry import SchemaRegistry
from provenance.services.care_event.unit_resolver import UnitResolver

router = APIRouter(prefix="/api/v1/care-events", tags=["care-events"])


# ==========================================================
# REQUEST MODELS
# ==========================================================
class SchemaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payload_fields: Optional[Union[str, List[Any]]] = Field(None, alias="payloadFields")


class PayloadRequest(SchemaRequest):
    values: Dict[str, Any] = Field(default_factory=dict)


class DecodeRequest(BaseModel):
    payload: Any = None


class EventsRequest(BaseModel):
    events: List[CareEvent] = Field(default_factory=list)


# ==========================================================
# ROUTES
# ==========================================================
@router.post("/schema/parse")
def parse_schema(body: SchemaRequest):
    try:
        specs = SchemaRegistry.parse_strict(body.payload_fields)
    except SchemaError as e:
        return JSONResponse(
            status_code=400,
            content={"ok": False, "err": e.kind.value, "message": e.message, "fields": []},
        )
    return {"ok": True, "fields": [s.to_dict() for s in specs]}


@router.post("/payload/validate")
def validate_payload(body: PayloadRequest):
    specs = SchemaRegistry.parse(body.payload_fields)
    errors = PayloadValidator.validate(specs, body.values)
    return {
        "ok": not errors,
        "errors": {k: {"kind": e.kind.value, "message": e.message} for k, e in errors.items()},
    }


@router.post("/payload/encode")
def encode_payload(body: PayloadRequest):
    specs = SchemaRegistry.parse(body.payload_fields)
    errors = PayloadValidator.validate(specs, body.values)
    if errors:
        return JSONResponse(
            status_code=422,
            content={
                "ok": False,
                "errors": {k: {"kind": e.kind.value, "message": e.message} for k, e in errors.items()},
            },
        )
    return {"ok": True, "payload": PayloadCanonicalizer.encode(body.values, specs)}


@router.post("/payload/decode")
def decode_payload(body: DecodeRequest):
    decoded = PayloadCanonicalizer.decode(body.payload)
    return {"ok": decoded is not None, "payload": decoded}


@router.post("/chain/verify")
def verify_chain(body: EventsRequest):
    return ChainVerifier.verify(body.events).to_dict()


@router.post("/resources/aggregate")
def aggregate_resources(body: EventsRequest):
    summary = ResourceAggregator.aggregate(body.events)
    return {name: total.to_dict() for name, total in summary.items()}


@router.get("/units/{event_type_name:path}")
def resolve_units(event_type_name: str):
    return UnitResolver.resolve(event_type_name).to_dict()
