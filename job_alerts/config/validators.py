"""Soft checks that warn about suspicious but valid configuration."""

import os
import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect the raw configuration and return warning messages.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        for key in ("digest_limit", "matching_jobs_limit", "recent_matches_limit"):
            value = matching.get(key)
            if value == 0:
                warning_messages.append(
                    f"matching.{key} is 0: results are unbounded and e-mails may get large"
                )
            elif isinstance(value, int) and value > 100:
                warning_messages.append(
                    f"Large matching.{key} ({value}) may produce very long digests"
                )

    text_generation = config_dict.get("text_generation", {})
    if isinstance(text_generation, dict) and text_generation.get("enabled"):
        if not os.getenv("GEMINI_API_KEY"):
            warning_messages.append(
                "text_generation.enabled is true but GEMINI_API_KEY is not set; "
                "digests will be sent without a personalization note"
            )

    schedule = config_dict.get("schedule", {})
    if isinstance(schedule, dict):
        weekly = schedule.get("weekly_cron")
        if isinstance(weekly, str):
            fields = weekly.split()
            if len(fields) == 5 and fields[4].isdigit():
                warning_messages.append(
                    f"weekly_cron day-of-week '{fields[4]}' is numeric; the scheduler counts "
                    "Monday as 0, prefer names such as 'mon'"
                )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
