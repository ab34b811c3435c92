"""Cron scheduling of the alert cycles."""

from .service import AlertScheduler, job_id_for

__all__ = [
    "AlertScheduler",
    "job_id_for",
]
