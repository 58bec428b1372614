import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Type, TypeVar, Union

from services.exceptions import TripValidationError

E = TypeVar("E", bound=Enum)

_DMY = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_YMD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_WHITESPACE = re.compile(r"\s+")


def to_enum_token(raw: str) -> str:
    """'Compact SUV' -> 'COMPACT_SUV', 'Mid-size' -> 'MID_SIZE'"""
    return _WHITESPACE.sub("_", raw.strip().upper()).replace("-", "_")


def normalize_enum(enum_cls: Type[E], raw: Union[str, E], field: str) -> E:
    if isinstance(raw, enum_cls):
        return raw
    token = to_enum_token(str(raw))
    try:
        return enum_cls[token]
    except KeyError:
        allowed = ", ".join(member.name for member in enum_cls)
        raise TripValidationError(
            f"Unrecognized {field} '{raw}' (normalized to '{token}'). Expected one of: {allowed}.",
            field,
        )


def _utc_midnight(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _parse_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return _utc_midnight(value.year, value.month, value.day)
    if isinstance(value, date):
        return _utc_midnight(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    s = value.strip()
    try:
        m = _DMY.match(s)
        if m:
            dd, mm, yyyy = m.groups()
            return _utc_midnight(int(yyyy), int(mm), int(dd))

        m = _YMD.match(s)
        if m:
            yyyy, mm, dd = m.groups()
            return _utc_midnight(int(yyyy), int(mm), int(dd))

        # Last resort: full ISO-8601 timestamps such as "2025-02-10T15:30:00Z"
        if "T" in s:
            return _parse_date(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        # impossible calendar dates ("31/02/2025") or malformed ISO strings
        return None

    return None


def parse_trip_date(value) -> datetime:
    """
    Parses a trip date and truncates it to UTC midnight.

    Accepts "DD/MM/YYYY", "YYYY-MM-DD", ISO-8601 timestamps and date/datetime
    objects. "10/02/2025" is the 10th of February.

    Raises:
        TripValidationError: when the value cannot be parsed
    """
    parsed = _parse_date(value)
    if parsed is None:
        raise TripValidationError(
            f'Invalid trip_date {value!r}. Expected "DD/MM/YYYY" or "YYYY-MM-DD".',
            "trip_date",
        )
    return parsed


def parse_filter_date(value) -> Optional[datetime]:
    """Lenient variant for export filters: unparseable input means no filter."""
    if not value:
        return None
    return _parse_date(value)
