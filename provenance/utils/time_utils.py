# provenance/utils/time_utils.py
import re
from datetime import datetime, timezone
from typing import Optional, Union

_FRACTION = re.compile(r"\.(\d+)")
_HAS_TZ = re.compile(r"(Z|[+-]\d{2}:?\d{2})$", re.IGNORECASE)


def parse_utc(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a UTC datetime string safely.

    Handles:
      - SQL Server fractional seconds (.3633615) -> trimmed to microseconds
      - Missing timezone (assumes UTC)
      - trailing "Z"
      - datetime objects (naive ones are tagged UTC)
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    s = str(value).strip()
    if not s:
        return None

    if len(s) == 10:
        s = s + "T00:00:00"

    s = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], s, count=1)

    if not _HAS_TZ.search(s):
        s = s + "+00:00"
    elif s[-1] in ("z", "Z"):
        s = s[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def format_utc_date(value: Union[str, datetime, None]) -> str:
    """dd/MM/yyyy"""
    dt = parse_utc(value)
    if not dt:
        return ""
    return dt.astimezone(timezone.utc).strftime("%d/%m/%Y")


def format_utc_datetime(value: Union[str, datetime, None]) -> str:
    """dd/MM/yyyy HH:mm"""
    dt = parse_utc(value)
    if not dt:
        return ""
    return dt.astimezone(timezone.utc).strftime("%d/%m/%Y %H:%M")
