# provenance/services/care_event/payload_validator.py

import math
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from provenance.errors import FieldError, PayloadValidationError, ValidationErrorKind
from provenance.models.care_event.event_models import FieldType, PayloadFieldSpec

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# plain decimal literal; no "1_000", "inf", "nan" or hex
DECIMAL_TEXT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def to_number(value: Any) -> Optional[float]:
    """Finite float from a native number or numeric text; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not DECIMAL_TEXT.match(text):
            return None
        n = float(text)
    else:
        return None
    return n if math.isfinite(n) else None


def _fmt(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else str(n)


class PayloadValidator:

    @staticmethod
    def validate(specs: List[PayloadFieldSpec], values: Optional[Mapping[str, Any]]) -> Dict[str, FieldError]:
        """
        Check every field independently and return ALL problems at once
        (field key -> FieldError). Empty dict means the payload is valid.
        Keys in `values` that no spec declares are ignored.
        """
        values = values or {}
        errors: Dict[str, FieldError] = {}
        for spec in specs:
            err = PayloadValidator.check_field(spec, values.get(spec.name))
            if err is not None:
                errors[spec.name] = err
        return errors

    @staticmethod
    def ensure_valid(specs: List[PayloadFieldSpec], values: Optional[Mapping[str, Any]]) -> None:
        errors = PayloadValidator.validate(specs, values)
        if errors:
            raise PayloadValidationError(errors)

    @staticmethod
    def check_field(spec: PayloadFieldSpec, value: Any) -> Optional[FieldError]:
        if is_blank(value):
            if spec.required:
                return _error(spec, ValidationErrorKind.MISSING_FIELD, f"{spec.label} is required")
            return None

        t = spec.type
        if t == FieldType.NUMBER:
            return _check_number(spec, value)
        elif t == FieldType.SELECT:
            return _check_select(spec, value)
        elif t == FieldType.EMAIL:
            return _check_email(spec, value)
        elif t == FieldType.DATE:
            return _check_date(spec, value)
        elif t in (FieldType.TEXT, FieldType.TEXTAREA):
            return None
        raise AssertionError(f"unhandled field type: {t}")


def _error(spec: PayloadFieldSpec, kind: ValidationErrorKind, message: str) -> FieldError:
    return FieldError(field=spec.name, kind=kind, message=message)


def _check_number(spec: PayloadFieldSpec, value: Any) -> Optional[FieldError]:
    n = to_number(value)
    if n is None:
        return _error(spec, ValidationErrorKind.NOT_A_NUMBER, f"{spec.label} must be a number")

    lo, hi = spec.min, spec.max
    if (lo is not None and n < lo) or (hi is not None and n > hi):
        if lo is not None and hi is not None:
            msg = f"{spec.label} must be between {_fmt(lo)} and {_fmt(hi)}"
        elif lo is not None:
            msg = f"{spec.label} must be at least {_fmt(lo)}"
        else:
            msg = f"{spec.label} must be at most {_fmt(hi)}"
        return _error(spec, ValidationErrorKind.OUT_OF_RANGE, msg)
    return None


def _check_select(spec: PayloadFieldSpec, value: Any) -> Optional[FieldError]:
    allowed = spec.option_values()
    if str(value) not in allowed:
        return _error(
            spec,
            ValidationErrorKind.INVALID_OPTION,
            f"{spec.label} must be one of: {', '.join(allowed) or '(no options configured)'}",
        )
    return None


def _check_email(spec: PayloadFieldSpec, value: Any) -> Optional[FieldError]:
    v = str(value).strip()
    ok = v.count("@") == 1 and " " not in v
    if ok:
        local, domain = v.split("@")
        ok = bool(local) and bool(domain)
    if not ok:
        return _error(
            spec,
            ValidationErrorKind.INVALID_EMAIL,
            f"{spec.label} must look like user@host",
        )
    return None


def _check_date(spec: PayloadFieldSpec, value: Any) -> Optional[FieldError]:
    v = str(value).strip()
    try:
        if not _ISO_DATE.match(v):
            raise ValueError(v)
        date.fromisoformat(v)
    except ValueError:
        return _error(spec, ValidationErrorKind.INVALID_DATE, f"{spec.label} must be a date (YYYY-MM-DD)")
    return None
