"""Timestamp formatting and week bucketing."""

from datetime import datetime
from typing import Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
TIMESTAMP_LENGTH = len("YYYY-MM-DD HH:MM:SS")


def local_now() -> datetime:
    """Local wall-clock time at second precision"""
    return datetime.now().replace(microsecond=0)


def timestamp_text(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def week_label(moment: datetime) -> str:
    """
    Week bucket of a timestamp as ``YYYY-Wnn``

    Weeks are counted in blocks of seven days from January 1st, so days 1-7
    of every year are week 01. This is not ISO-8601 week numbering; stored
    entries and image folders depend on this exact rule.
    """
    week = (moment.timetuple().tm_yday - 1) // 7 + 1
    return f"{moment.year:04d}-W{week:02d}"


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Parse zero-padded ``YYYY-MM-DD HH:MM:SS``; returns None for anything else"""
    if not isinstance(text, str) or len(text) != TIMESTAMP_LENGTH:
        return None
    try:
        parsed = datetime.strptime(text, TIMESTAMP_FORMAT)
    except (TypeError, ValueError):
        return None
    # strptime also takes unpadded fields and runs of spaces
    return parsed if timestamp_text(parsed) == text else None


def resolve_timestamp(text: Optional[str] = None) -> datetime:
    """Parsed timestamp, or the current local time if text is missing or malformed"""
    parsed = parse_timestamp(text)
    return parsed if parsed is not None else local_now()


def normalize_timestamp(value) -> Optional[str]:
    """
    Canonical timestamp text for a value read from another database

    Accepts the canonical format, ISO-8601 strings (``T`` separator,
    fractional seconds, offsets) and datetime objects.
    """
    if isinstance(value, datetime):
        return timestamp_text(value.replace(microsecond=0))
    if not isinstance(value, str) or not value.strip():
        return None

    value = value.strip()
    parsed = parse_timestamp(value)
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            # 7-digit fractions as written by .NET
            parsed = parse_timestamp(value[:19].replace("T", " "))
            if parsed is None:
                return None
    return timestamp_text(parsed.replace(microsecond=0))
