"""
Expiration and accessible-at date handling
"""

import math
from datetime import datetime, UTC
from typing import Optional

from .error import (
    InvalidDateException,
    ExpirationInPastException,
    AccessibleAtAfterExpirationException,
    ExpirationTooFarException,
)
from .models import ExpiresInput

SEVEN_DAYS = 7 * 24 * 60 * 60

INVALID_EXPIRATION = "The expiration date provided was invalid."
INVALID_ACCESSIBLE_AT = "The accessible at date provided was invalid."


def to_datetime(value: ExpiresInput, invalid_message: str = INVALID_EXPIRATION) -> datetime:
    """
    Normalize a datetime, epoch-milliseconds number or ISO-8601 string to an
    aware UTC datetime. Naive datetimes are taken to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if isinstance(value, bool):
        raise InvalidDateException(invalid_message)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            raise InvalidDateException(invalid_message) from None

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidDateException(invalid_message) from None
        return to_datetime(parsed, invalid_message)

    raise InvalidDateException(invalid_message)


def epoch_seconds(instant: datetime) -> int:
    """Whole epoch seconds, rounding half up."""
    return math.floor(instant.timestamp() + 0.5)


def parse_expires(expires: ExpiresInput, now: datetime) -> datetime:
    """Validate an expiration and return it as an aware UTC datetime."""
    expires_at = to_datetime(expires, INVALID_EXPIRATION)
    if expires_at <= now:
        raise ExpirationInPastException()
    return expires_at


def expiration_seconds(expires_at: datetime, now: datetime) -> int:
    """
    Epoch seconds of an expiration, rounded half up.

    An expiration that rounds onto the current second is in the past.
    """
    seconds = epoch_seconds(expires_at)
    if seconds <= math.floor(now.timestamp()):
        raise ExpirationInPastException()
    return seconds


def parse_accessible_at(accessible_at: Optional[ExpiresInput], now: datetime) -> datetime:
    if accessible_at is None:
        return now
    return to_datetime(accessible_at, INVALID_ACCESSIBLE_AT)


def check_accessible_before_expiry(accessible_at: datetime, expires_at: datetime) -> None:
    if accessible_at > expires_at:
        raise AccessibleAtAfterExpirationException()


def v4_expires_in(expiration: int, accessible_at: datetime) -> int:
    """Seconds between accessible-at and expiration, at most seven days."""
    expires_in = expiration - math.floor(accessible_at.timestamp())
    if expires_in < 1:
        raise AccessibleAtAfterExpirationException()
    if expires_in > SEVEN_DAYS:
        raise ExpirationTooFarException(SEVEN_DAYS)
    return expires_in


def goog_date(instant: datetime) -> str:
    return instant.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def date_stamp(instant: datetime) -> str:
    return instant.astimezone(UTC).strftime("%Y%m%d")


def policy_expiration(instant: datetime) -> str:
    """Expiration format used in V4 POST policies."""
    return instant.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def iso_expiration(instant: datetime) -> str:
    """ISO-8601 with milliseconds, as used in V2 POST policies."""
    instant = instant.astimezone(UTC)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"
