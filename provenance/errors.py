# provenance/errors.py
"""
Error kinds raised (or reported) by the care-event engine.

- SchemaError            -> event type descriptor could not be parsed
- PayloadValidationError -> user input failed one or more field checks
- PayloadDecodeError     -> stored payload is not a JSON object
- UpstreamError          -> the event store / catalog fetch itself failed

A broken hash chain is NOT an exception: ChainVerifier always returns a
ChainReport and the caller decides whether to block or warn.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel


class SchemaErrorKind(str, Enum):
    INVALID_DESCRIPTOR = "invalid_descriptor"


class SchemaError(Exception):
    def __init__(self, message: str, kind: SchemaErrorKind = SchemaErrorKind.INVALID_DESCRIPTOR):
        super().__init__(message)
        self.kind = kind
        self.message = message


class ValidationErrorKind(str, Enum):
    MISSING_FIELD = "missing_field"
    NOT_A_NUMBER = "not_a_number"
    OUT_OF_RANGE = "out_of_range"
    INVALID_OPTION = "invalid_option"
    INVALID_EMAIL = "invalid_email"
    INVALID_DATE = "invalid_date"


class FieldError(BaseModel):
    field: str
    kind: ValidationErrorKind
    message: str


class PayloadValidationError(Exception):
    """Carries every field error found, keyed by field key."""

    def __init__(self, errors: Dict[str, FieldError]):
        self.errors = errors
        keys = ", ".join(errors.keys())
        super().__init__(f"Payload validation failed for: {keys}")

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {k: {"kind": e.kind.value, "message": e.message} for k, e in self.errors.items()}


class PayloadDecodeError(Exception):
    pass


class UpstreamError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
