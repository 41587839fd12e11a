# provenance/services/care_event/resource_aggregator.py

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from provenance.models.care_event.event_models import (
    CareEvent,
    ResourceSummary,
    ResourceTotal,
    as_care_events,
)
from provenance.services.care_event.payload_codec import PayloadCanonicalizer
from provenance.services.care_event.schema_registry import derive_field_key
from provenance.services.care_event.unit_resolver import UnitResolver

logger = logging.getLogger(__name__)

# "12.5 kg" -> ("12.5", "kg")
_AMOUNT = re.compile(r"^([\d.]+)\s*(.*)$", re.DOTALL)


def extract_amount(value: Any) -> Optional[Tuple[float, str]]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # same rule as text: no sign, so negatives carry no magnitude
        n = float(value)
        return (n, "") if math.isfinite(n) and n >= 0 else None

    m = _AMOUNT.match(str(value).strip())
    if not m:
        return None
    try:
        amount = float(m.group(1))
    except ValueError:
        # "1.2.3"
        return None
    return amount, m.group(2).strip()


class ResourceAggregator:

    @staticmethod
    def aggregate(events: Iterable[Union[CareEvent, Dict[str, Any]]]) -> ResourceSummary:
        """
        eventTypeName -> {total, unit, eventCount}

        An event counts only when its amount fields add up to something > 0.
        Undecodable payloads and non-numeric amounts are skipped silently.
        """
        acc: Dict[str, ResourceTotal] = {}
        skipped = 0

        for ev in as_care_events(events):
            resolution = UnitResolver.resolve(ev.event_type)
            if not resolution.amount_field_keys:
                continue

            payload = PayloadCanonicalizer.decode(ev.payload)
            if not payload:
                skipped += 1
                continue

            amount = ResourceAggregator.event_amount(payload, resolution.amount_field_keys)
            if amount <= 0:
                skipped += 1
                continue

            total = acc.setdefault(ev.event_type, ResourceTotal())
            total.total += amount
            total.event_count += 1
            if not total.unit:
                total.unit = resolution.unit

        if skipped:
            logger.debug("%d event(s) contributed no amounts", skipped)
        return acc

    @staticmethod
    def event_amount(payload: Mapping[str, Any], amount_field_keys: List[str]) -> float:
        """
        Sum of the leading magnitudes of the amount fields present in payload.
        Payload keys are matched after the same key normalization as labels
        ("Water volume (l)" and "water_volume_(l)" are the same field).
        """
        normalized: Dict[str, Any] = {}
        for k, v in payload.items():
            normalized.setdefault(derive_field_key(str(k)), v)

        amount = 0.0
        for key in amount_field_keys:
            if key not in normalized:
                continue
            extracted = extract_amount(normalized[key])
            if extracted:
                amount += extracted[0]
        return amount

    @staticmethod
    def merge(a: ResourceSummary, b: ResourceSummary) -> ResourceSummary:
        out: Dict[str, ResourceTotal] = {k: v.model_copy() for k, v in a.items()}
        for name, t in b.items():
            cur = out.get(name)
            if cur is None:
                out[name] = t.model_copy()
                continue
            cur.total += t.total
            cur.event_count += t.event_count
            if not cur.unit:
                cur.unit = t.unit
        return out
