"""Utility modules for the news aggregator."""

from .dates import (
    # Parsing
    parse_date,
    is_valid_date,
    # Formatting
    format_date,
    current_date,
    date_days_ago,
    format_human_readable,
    relative_time,
    # Ordering
    freshness_key,
)

__all__ = [
    "parse_date",
    "is_valid_date",
    "format_date",
    "current_date",
    "date_days_ago",
    "format_human_readable",
    "relative_time",
    "freshness_key",
]
