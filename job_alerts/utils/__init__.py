"""Utility functions for time handling and text preparation."""

from .text import normalize_terms, truncate_text
from .timestamps import (
    days_ago,
    ensure_utc,
    format_storage_timestamp,
    format_timestamp_for_log,
    parse_storage_timestamp,
    utc_now,
)

__all__ = [
    # Timestamps
    "utc_now",
    "ensure_utc",
    "days_ago",
    "format_storage_timestamp",
    "parse_storage_timestamp",
    "format_timestamp_for_log",
    # Text
    "truncate_text",
    "normalize_terms",
]
