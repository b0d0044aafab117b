import re
from datetime import UTC, datetime, timedelta
from typing import Annotated

from pydantic.functional_serializers import PlainSerializer

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class InvalidDurationError(ValueError):
    """Raised when a duration string cannot be parsed."""


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration string such as "168h", "1h30m" or "500ms".

    A bare "0" is accepted. Negative and unit-less values are rejected.
    """
    text = value.strip()
    if text == "0":
        return timedelta(0)
    if not text:
        raise InvalidDurationError("empty duration")

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise InvalidDurationError(f"invalid duration: {value!r}")
        number, unit = match.groups()
        total += float(number) * _UNIT_SECONDS[unit]
        position = match.end()

    if position != len(text):
        raise InvalidDurationError(f"invalid duration: {value!r}")

    return timedelta(seconds=total)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _serialize_utc_datetime(v: datetime | None) -> str | None:
    if v is None:
        return None
    if v.tzinfo is None:
        v = v.replace(tzinfo=UTC)
    return v.isoformat()


UTCDatetime = Annotated[datetime, PlainSerializer(_serialize_utc_datetime)]
