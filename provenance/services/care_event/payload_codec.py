# provenance/services/care_event/payload_codec.py
"""
Canonical payload encoding, and the defensive decoder for stored payloads.

Some events in the store were written double-JSON-encoded, i.e. the payload
column holds a JSON *string* whose content is the JSON object:

    "\"{\\\"rate\\\":\\\"10 g/ha\\\"}\""

decode() therefore parses at most MAX_DECODE_PASSES times, re-parsing only
while the result is still a string. Deeper encodings are treated as
undecodable rather than looped on.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Union

from provenance.errors import PayloadDecodeError
from provenance.models.care_event.event_models import FieldType, PayloadFieldSpec
from provenance.services.care_event.payload_validator import DECIMAL_TEXT, is_blank

logger = logging.getLogger(__name__)

MAX_DECODE_PASSES = 2


def _to_json_number(name: str, value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        raise ValueError(f"{name}: boolean is not a number")
    if isinstance(value, (int, float)):
        n = value
    else:
        text = str(value).strip()
        if not DECIMAL_TEXT.match(text):
            raise ValueError(f"{name}: {value!r} is not a number")
        try:
            n = int(text)
        except ValueError:
            n = float(text)
    if isinstance(n, float) and not math.isfinite(n):
        raise ValueError(f"{name}: {value!r} is not a finite number")
    return n


class PayloadCanonicalizer:

    @staticmethod
    def encode(values: Mapping[str, Any], specs: List[PayloadFieldSpec]) -> str:
        """
        Single-pass JSON object, keys in the schema's declared order.
        number fields -> JSON numbers, everything else -> strings.
        Empty optional fields and undeclared keys are dropped.
        """
        out: Dict[str, Any] = {}
        for spec in specs:
            value = values.get(spec.name)
            if is_blank(value):
                continue
            if spec.type == FieldType.NUMBER:
                out[spec.name] = _to_json_number(spec.name, value)
            else:
                out[spec.name] = value if isinstance(value, str) else str(value)
        return PayloadCanonicalizer.dumps(out)

    @staticmethod
    def dumps(mapping: Mapping[str, Any]) -> str:
        return json.dumps(dict(mapping), ensure_ascii=False, separators=(",", ":"))

    @staticmethod
    def decode(raw: Any) -> Optional[Dict[str, Any]]:
        """None when the stored payload is not (within 2 passes) a JSON object."""
        try:
            return PayloadCanonicalizer.decode_strict(raw)
        except PayloadDecodeError as e:
            logger.debug("payload left undecoded: %s", e)
            return None

    @staticmethod
    def decode_strict(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, dict):
            return dict(raw)

        data = raw
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8", errors="replace")

        for _ in range(MAX_DECODE_PASSES):
            if not isinstance(data, str):
                break
            try:
                data = json.loads(data)
            except ValueError as e:
                raise PayloadDecodeError(f"payload is not JSON: {e}")
            except RecursionError:
                raise PayloadDecodeError("payload is nested too deeply to decode")

        if isinstance(data, dict):
            return data
        raise PayloadDecodeError(f"payload decoded to {type(data).__name__}, expected an object")
