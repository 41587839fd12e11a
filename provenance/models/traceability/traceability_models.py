# provenance/models/traceability/traceability_models.py
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TraceabilityStatus(str, Enum):
    VERIFIED = "verified"        # events loaded, chain intact (or empty)
    BROKEN = "broken"            # events loaded, chain inconsistent -> tamper suspected
    UNAVAILABLE = "unavailable"  # events could not be loaded at all


@dataclass
class TimelineEntry:
    id: str = ""
    eventType: str = ""          # "Care Event" when upstream sent none
    occurredAt: str = ""         # ISO-8601 UTC
    date: str = ""               # "dd/MM/yyyy HH:mm"
    description: str = ""        # "Payload: ..." / "No payload"
    payload: str = ""            # raw stored text
    parsedPayload: Optional[Dict[str, Any]] = None
    hash: str = ""
    prevHash: str = ""
    imageUrl: Optional[str] = None
    linked: bool = False         # prevHash matches predecessor (or genesis)
    isGenesis: bool = False


@dataclass
class TraceabilityViewModel:
    batchId: str = ""
    status: str = TraceabilityStatus.VERIFIED.value
    message: str = ""
    eventCount: int = 0

    # {valid, brokenAtEventId}; None when the events never loaded
    chain: Optional[Dict[str, Any]] = None
    timeline: List[TimelineEntry] = field(default_factory=list)
    # eventTypeName -> {total, unit, eventCount}
    resources: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    debug: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
