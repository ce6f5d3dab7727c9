"""Utility helper functions"""

from datetime import UTC, datetime, timedelta
from typing import Any, Optional
import re

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def canonical_repo_url(owner: str, name: str) -> str:
    """Canonical GitHub URL for an (owner, name) pair"""
    return f"https://github.com/{owner}/{name}"


def sanitize_url(url: str) -> str:
    """
    Sanitize and normalize URL

    Args:
        url: URL to sanitize

    Returns:
        Sanitized URL
    """
    url = url.strip()

    # Ensure https
    if url.startswith("http://"):
        url = url.replace("http://", "https://", 1)

    return url.rstrip("/")


def is_valid_repo_segment(value: str) -> bool:
    """Check that an owner or repository name is usable in a GitHub API path"""
    return bool(value) and bool(_SEGMENT_PATTERN.match(value)) and value not in (".", "..")


def utcnow() -> datetime:
    """Naive UTC now, the storage representation for timestamps"""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC"""
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def floor_to_minute(dt: datetime) -> datetime:
    """Drop seconds and microseconds"""
    return dt.replace(second=0, microsecond=0)


def floor_to_interval(dt: datetime, interval_minutes: int) -> datetime:
    """
    Round a datetime down to an interval boundary

    Boundaries are multiples of the interval counted from the Unix epoch in
    the value's own timezone, so 90 and 120 minute grids line up across
    hours and days.

    Args:
        dt: Datetime to round
        interval_minutes: Interval width in minutes

    Returns:
        Datetime on the boundary at or before dt, seconds dropped
    """
    epoch = datetime(1970, 1, 1, tzinfo=dt.tzinfo)
    minutes = (dt - epoch) // timedelta(minutes=1)
    return epoch + timedelta(minutes=minutes - minutes % interval_minutes)


def parse_iso_datetime(raw: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime

    Accepts the trailing "Z" GitHub uses. Naive input is treated as UTC.

    Args:
        raw: Timestamp string

    Returns:
        Aware datetime or None when the value cannot be parsed
    """
    if not isinstance(raw, str) or not raw.strip():
        return None

    text = raw.strip().replace("Z", "+00:00").replace("z", "+00:00")
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso_z(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 UTC with millisecond precision and "Z"

    Args:
        dt: Naive (UTC) or aware datetime

    Returns:
        String such as "2025-10-04T10:05:00.000Z"
    """
    dt = to_naive_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
