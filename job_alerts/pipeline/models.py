"""Data models for alert cycle execution tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from job_alerts.domain.models import JobListing
from job_alerts.notifications.models import NotificationResult

# AlertOutcome.status values
SENT = "sent"
NO_MATCHES = "no_matches"
SKIPPED = "skipped"
MATCH_FAILED = "match_failed"
SEND_FAILED = "send_failed"
ERROR = "error"


@dataclass
class AlertOutcome:
    """
    What happened to one alert within a cycle.

    Attributes:
        alert_id: Alert that was processed
        owner_id: Owning job seeker
        status: One of sent, no_matches, skipped, match_failed, send_failed, error
        reason: Why the alert was skipped (owner_not_found, alerts_disabled, ...)
        job_count: Jobs included in the digest
        error: Error message for failed statuses
        watermark: Watermark stored after a successful send
    """

    alert_id: str
    owner_id: str
    status: str
    reason: Optional[str] = None
    job_count: int = 0
    error: Optional[str] = None
    watermark: Optional[datetime] = None

    @property
    def is_failure(self) -> bool:
        return self.status in (MATCH_FAILED, SEND_FAILED, ERROR)


@dataclass
class CycleResult:
    """
    Aggregate results of one cycle for one frequency.

    Attributes:
        frequency: Cadence class that was processed
        cycle_id: Correlation id stamped on every log line of the cycle
        started_at: UTC timestamp when the cycle began
        finished_at: UTC timestamp when the cycle completed
        outcomes: Per-alert outcomes, in processing order
        skipped: True when a previous cycle of the same frequency was still running
        failed: True when active alerts could not be loaded
        error: Error message when ``failed`` is set
    """

    frequency: str
    cycle_id: str
    started_at: datetime
    finished_at: datetime
    outcomes: List[AlertOutcome] = field(default_factory=list)
    skipped: bool = False
    failed: bool = False
    error: Optional[str] = None

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def total_alerts(self) -> int:
        return len(self.outcomes)

    @property
    def sent_count(self) -> int:
        return self._count(SENT)

    @property
    def no_match_count(self) -> int:
        return self._count(NO_MATCHES)

    @property
    def skipped_count(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.is_failure)

    @property
    def had_errors(self) -> bool:
        return self.failed or self.failed_count > 0

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class AlertTestResult:
    """Outcome of a manual test send; mirrors the response shown to the owner."""

    success: bool
    message: str
    job_count: int = 0
    notification: Optional[NotificationResult] = None


@dataclass
class RecentMatchesResult:
    """Top recent matches across an owner's active alerts."""

    jobs: List[JobListing] = field(default_factory=list)
    total_matches: int = 0
