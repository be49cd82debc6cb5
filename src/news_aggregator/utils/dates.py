"""Date and freshness utilities for article timestamps.

All timestamps are normalized to timezone-aware UTC. Provider dates come in
several shapes and are canonicalized here before they reach an Article.

Usage:
    from news_aggregator.utils.dates import (
        format_date,
        is_valid_date,
        parse_date,
        relative_time,
    )

    format_date(parse_date("2024-03-05T14:30:00Z"))  # "2024-03-05"
    is_valid_date("not-a-date")  # False
    relative_time("2024-03-05T12:30:00Z")  # "2 hours ago"
"""

from __future__ import annotations

import email.utils
import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from news_aggregator.models import Article

DateInput = Union[str, datetime]

# Anything outside this range is treated as a corrupt timestamp
MIN_VALID_YEAR = 1970
MAX_VALID_YEAR = 9999

# Beyond this age relative_time switches to an absolute date
RELATIVE_TIME_MAX_DAYS = 30

_FALLBACK_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
]


# =============================================================================
# PARSING
# =============================================================================

def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        # Provider timestamps without an offset are UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: DateInput) -> datetime:
    """Parse a provider timestamp to a UTC datetime.

    Handles:
    - ISO 8601: "2024-03-05T14:30:00Z", "2024-03-05T14:30:00.123+02:00"
    - ISO 8601 with compact offset: "2024-03-05T14:30:00+0000"
    - Date only: "2024-03-05"
    - RFC 2822: "Tue, 05 Mar 2024 14:30:00 GMT"

    Args:
        value: Timestamp string or datetime.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If the value cannot be parsed or is out of range.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Cannot parse timestamp: {value!r}")
        parsed = _parse_string(value.strip())

    try:
        dt = _to_utc(parsed)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e

    if not MIN_VALID_YEAR <= dt.year <= MAX_VALID_YEAR:
        raise ValueError(f"Timestamp out of range: {value!r}")
    return dt


def _parse_string(original: str) -> datetime:
    s = original
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    # +0000 -> +00:00
    tz_match = re.search(r"T.*([+-])(\d{2})(\d{2})$", s)
    if tz_match:
        sign, hours, minutes = tz_match.groups()
        s = s[:-5] + f"{sign}{hours}:{minutes}"

    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass

    try:
        return email.utils.parsedate_to_datetime(original)
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(original, fmt)
        except ValueError:
            continue

    raise ValueError(f"Cannot parse timestamp: {original!r}")


def is_valid_date(value: object) -> bool:
    """Check that a timestamp parses and falls within the accepted range."""
    if not isinstance(value, (str, datetime)):
        return False
    try:
        parse_date(value)
    except (ValueError, OverflowError):
        return False
    return True


# =============================================================================
# FORMATTING
# =============================================================================

def format_date(value: DateInput) -> str:
    """Canonicalize a date to YYYY-MM-DD (UTC)."""
    return parse_date(value).strftime("%Y-%m-%d")


def current_date() -> str:
    return format_date(datetime.now(timezone.utc))


def date_days_ago(days: int) -> str:
    """Date N days ago as YYYY-MM-DD, used for search windows."""
    return format_date(datetime.now(timezone.utc) - timedelta(days=days))


def format_human_readable(value: DateInput) -> str:
    """Format as a long human date like "March 5, 2024 at 02:30 PM".

    Returns the input unchanged if it cannot be parsed.
    """
    try:
        dt = parse_date(value)
    except ValueError:
        return value if isinstance(value, str) else str(value)
    return f"{dt.strftime('%B')} {dt.day}, {dt.year} at {dt.strftime('%I:%M %p')}"


def relative_time(value: DateInput, now: datetime | None = None) -> str:
    """Format a timestamp relative to now (e.g., "2 hours ago").

    Args:
        value: Timestamp to describe.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        Relative string, the long human date beyond 30 days, or the
        original input if it cannot be parsed.
    """
    try:
        dt = parse_date(value)
        reference = _to_utc(now) if now else datetime.now(timezone.utc)
    except ValueError:
        return value if isinstance(value, str) else str(value)

    seconds = int((reference - dt).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > RELATIVE_TIME_MAX_DAYS:
        return format_human_readable(dt)
    elif days > 0:
        return f"{days} day{'s' if days != 1 else ''} ago"
    elif hours > 0:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    elif minutes > 0:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    return "just now"


# =============================================================================
# ORDERING
# =============================================================================

def freshness_key(article: "Article") -> datetime:
    """Sort key for ordering articles newest first."""
    return article.published_at
