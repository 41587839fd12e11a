# provenance/services/care_event/unit_resolver.py
import re
from typing import Dict, List, Mapping, Optional, Tuple

from provenance.models.care_event.event_models import UnitResolution
from provenance.services.care_event.schema_registry import derive_field_key

# event type -> (amount field labels, fallback unit)
# units live in the label itself: "Water volume (l)" -> "l"
EVENT_TYPE_UNITS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "Soil preparation": (("Soil amendment (amount)", "Fuel consumed"), "l"),
    "Soil testing": ((), ""),
    "Planting / transplanting": ((), ""),
    "Irrigation": (("Water volume (l)", "Duration (min)"), "l"),
    "Fertilization": (("Rate",), "g/ha"),
    "Pest and disease control": (("Rate (%)",), "%"),
    "Weeding": (("Area treated (ha)", "Labor"), "ha"),
    "Pruning / training": ((), ""),
    "Growth monitoring": ((), ""),
    "Pollination": ((), ""),
    "Harvest": (("Quantity (kg)",), "kg"),
}

_UNIT_SUFFIX = re.compile(r"\(([^)]+)\)$")


def extract_unit_from_label(label: str) -> str:
    m = _UNIT_SUFFIX.search((label or "").strip())
    return m.group(1) if m else ""


class UnitResolver:

    @staticmethod
    def resolve(
        event_type_name: str,
        table: Optional[Mapping[str, Tuple[Tuple[str, ...], str]]] = None,
    ) -> UnitResolution:
        """
        Unknown event types resolve to no amount fields and no unit;
        that just means nothing is tracked for them.
        """
        table = EVENT_TYPE_UNITS if table is None else table
        rule = table.get((event_type_name or "").strip())
        if rule is None:
            return UnitResolution()

        labels: List[str] = list(rule[0])
        unit = ""
        for label in labels:
            unit = extract_unit_from_label(label)
            if unit:
                break
        if not unit:
            unit = rule[1] or ""

        return UnitResolution(
            amount_field_keys=[derive_field_key(label) for label in labels],
            amount_field_labels=labels,
            unit=unit,
        )

    @staticmethod
    def has_amount_fields(event_type_name: str) -> bool:
        return bool(UnitResolver.resolve(event_type_name).amount_field_keys)
