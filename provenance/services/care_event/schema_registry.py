# provenance/services/care_event/schema_registry.py
"""
Turn an EventType's `payloadFields` descriptor into typed PayloadFieldSpecs.

Two upstream shapes exist:
  - legacy, label-only:  '["Water volume (l)", "Duration (min)"]'
  - structured:          '[{"name": "amountKg", "label": "Amount (kg)", "type": "number", ...}]'

The raw value is first classified into LabelsOnly / Structured, then
normalized. Anything else is an invalid descriptor.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from provenance.errors import SchemaError
from provenance.models.care_event.event_models import FieldType, PayloadFieldSpec

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_KNOWN_TYPES = {t.value for t in FieldType}


def derive_field_key(label: str) -> str:
    """
    "Water volume (l)" -> "water_volume_(l)"
    Lower-case, trim, whitespace runs -> "_". Punctuation is kept.
    """
    return _WHITESPACE.sub("_", (label or "").strip().lower())


@dataclass(frozen=True)
class LabelsOnly:
    labels: List[str]


@dataclass(frozen=True)
class Structured:
    fields: List[Dict[str, Any]]


RawSchema = Union[LabelsOnly, Structured]


class SchemaRegistry:

    # -------------------------
    # Public API
    # -------------------------
    @staticmethod
    def parse(raw: Any) -> List[PayloadFieldSpec]:
        """
        Never raises: an invalid descriptor degrades to "no structured fields"
        so the event form still renders.
        """
        try:
            return SchemaRegistry.parse_strict(raw)
        except SchemaError as e:
            logger.warning("payloadFields rejected (%s): %s", e.kind.value, e.message)
            return []

    @staticmethod
    def parse_strict(raw: Any) -> List[PayloadFieldSpec]:
        shape = SchemaRegistry.classify(raw)
        if shape is None:
            return []

        if isinstance(shape, LabelsOnly):
            specs = [SchemaRegistry._label_spec(label) for label in shape.labels]
        else:
            specs = [SchemaRegistry._structured_spec(i, d) for i, d in enumerate(shape.fields)]

        SchemaRegistry._ensure_unique(specs)
        return specs

    @staticmethod
    def classify(raw: Any) -> Optional[RawSchema]:
        """None / "" -> None (event type simply has no fields)."""
        if raw is None:
            return None

        data = raw
        if isinstance(raw, (bytes, bytearray)):
            try:
                data = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SchemaError(f"payloadFields is not UTF-8 text: {e}")

        if isinstance(data, str):
            text = data.strip()
            if not text:
                return None
            try:
                data = json.loads(text)
            except ValueError as e:
                raise SchemaError(f"payloadFields is not valid JSON: {e}")
            except RecursionError:
                raise SchemaError("payloadFields is nested too deeply to parse")

        if not isinstance(data, list):
            raise SchemaError(f"payloadFields must be a JSON array, got {type(data).__name__}")

        if all(isinstance(x, str) for x in data):
            return LabelsOnly(labels=list(data))
        if all(isinstance(x, dict) for x in data):
            return Structured(fields=list(data))

        raise SchemaError("payloadFields mixes plain labels with field objects")

    # -------------------------
    # Normalization
    # -------------------------
    @staticmethod
    def _label_spec(label: str) -> PayloadFieldSpec:
        key = derive_field_key(label)
        if not key:
            raise SchemaError("payloadFields contains an empty label")
        return PayloadFieldSpec(name=key, label=label.strip(), type=FieldType.TEXT, required=True)

    @staticmethod
    def _structured_spec(index: int, raw: Dict[str, Any]) -> PayloadFieldSpec:
        d = dict(raw)

        label = str(d.get("label") or "").strip()
        name = str(d.get("name") or "").strip()
        if not name:
            name = derive_field_key(label)
        if not name:
            raise SchemaError(f"field #{index} has neither name nor label")
        d["name"] = name
        d["label"] = label or name

        # unknown widget types render and validate as plain text
        t = str(d.get("type") or FieldType.TEXT.value).strip().lower()
        if t not in _KNOWN_TYPES:
            logger.debug("field %s: unknown type %r treated as text", name, t)
            t = FieldType.TEXT.value
        d["type"] = t

        try:
            spec = PayloadFieldSpec.model_validate(d)
        except ValidationError as e:
            raise SchemaError(f"field #{index} ({name}) is malformed: {e.errors()[0].get('msg')}")

        if spec.min is not None and spec.max is not None and spec.min > spec.max:
            raise SchemaError(f"field {name}: min {spec.min} is greater than max {spec.max}")
        return spec

    @staticmethod
    def _ensure_unique(specs: List[PayloadFieldSpec]) -> None:
        seen: Dict[str, str] = {}
        for s in specs:
            if s.name in seen:
                raise SchemaError(
                    f"duplicate field key '{s.name}' (labels '{seen[s.name]}' and '{s.label}')"
                )
            seen[s.name] = s.label
