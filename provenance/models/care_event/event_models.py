# provenance/models/care_event/event_models.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provenance.utils.time_utils import parse_utc

# "no predecessor": expected prevHash of a batch's first event
GENESIS_HASH = "0x" + "0" * 64


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    DATE = "date"
    TEXTAREA = "textarea"
    SELECT = "select"


class PayloadFieldOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: str

    @field_validator("label", "value", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class PayloadFieldSpec(BaseModel):
    """One entry of an event type's payload schema."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[List[PayloadFieldOption]] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def option_values(self) -> List[str]:
        return [o.value for o in self.options or []]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class EventType(BaseModel):
    """Catalog entry for a care-event type (read-only input)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    event_type_name: str = Field(..., alias="eventTypeName")
    event_type_desc: str = Field("", alias="eventTypeDesc")
    # JSON text as stored by the catalog; already-decoded lists are accepted too
    payload_fields: Optional[Union[str, List[Any]]] = Field(None, alias="payloadFields")

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, v: Any) -> str:
        return str(v)

    @field_validator("event_type_desc", mode="before")
    @classmethod
    def _desc_text(cls, v: Any) -> str:
        return v or ""

    def field_specs(self) -> List[PayloadFieldSpec]:
        from provenance.services.care_event.schema_registry import SchemaRegistry

        return SchemaRegistry.parse(self.payload_fields)


class CareEvent(BaseModel):
    """A stored care event. Append-only upstream; never mutated here."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    batch_id: str = Field("", alias="batchId")
    event_type: str = Field("", alias="eventType")
    occurred_at: datetime = Field(..., alias="occurredAt")
    payload: Union[str, Dict[str, Any], None] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    hash: str = ""
    prev_hash: str = Field("", alias="prevHash")

    @field_validator("id", "batch_id", mode="before")
    @classmethod
    def _ids_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("event_type", "hash", "prev_hash", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("occurred_at", mode="before")
    @classmethod
    def _parse_occurred_at(cls, v: Any) -> datetime:
        dt = parse_utc(v)
        if dt is None:
            raise ValueError(f"occurredAt is not a valid timestamp: {v!r}")
        return dt


def as_care_events(items: Iterable[Union[CareEvent, Dict[str, Any]]]) -> List[CareEvent]:
    out: List[CareEvent] = []
    for it in items or []:
        out.append(it if isinstance(it, CareEvent) else CareEvent.model_validate(it))
    return out


class ChainState(str, Enum):
    GENESIS = "genesis"
    LINKED = "linked"
    BROKEN = "broken"


class ChainReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    broken_at_event_id: Optional[str] = Field(None, alias="brokenAtEventId")
    state: ChainState = Field(ChainState.GENESIS, exclude=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class UnitResolution(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    amount_field_keys: List[str] = Field(default_factory=list, alias="amountFieldKeys")
    amount_field_labels: List[str] = Field(default_factory=list, alias="amountFieldLabels")
    unit: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ResourceTotal(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: float = 0.0
    unit: str = ""
    event_count: int = Field(0, alias="eventCount")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


ResourceSummary = Dict[str, ResourceTotal]


class ApiEnvelope(BaseModel):
    """{success, message, data} wrapper used by the event store."""

    model_config = ConfigDict(extra="allow")

    success: bool = False
    message: str = ""
    data: Any = None

    @field_validator("message", mode="before")
    @classmethod
    def _msg_text(cls, v: Any) -> str:
        return "" if v is None else str(v)
