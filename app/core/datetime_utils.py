"""Timestamps are stored as naive UTC and serialized with an explicit offset."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic.functional_serializers import PlainSerializer


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from storage."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _isoformat_utc(value: datetime | None) -> str | None:
    return None if value is None else as_utc(value).isoformat()


UTCDatetime = Annotated[datetime, PlainSerializer(_isoformat_utc)]
