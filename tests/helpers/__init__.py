"""Test helper utilities for job alert tests."""

from .factories import (
    BASE_TIME,
    invalid_alert_row,
    invalid_job_row,
    make_alert,
    make_employer,
    make_job,
    make_user,
    seed,
    store_rows,
)

__all__ = [
    "BASE_TIME",
    "invalid_alert_row",
    "invalid_job_row",
    "make_alert",
    "make_employer",
    "make_job",
    "make_user",
    "seed",
    "store_rows",
]
