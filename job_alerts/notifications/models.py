"""Data models and exceptions for alert notifications."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from job_alerts.domain.models import Alert, User


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when the SMTP conversation fails."""

    pass


@dataclass
class DigestJob:
    """One job as shown in a digest e-mail."""

    job_id: str
    title: str
    employer_name: str
    location: str
    job_type: str
    salary_text: str
    url: str
    created_at: Optional[datetime] = None


@dataclass
class Digest:
    """Notification payload for one alert's matches.

    Attributes:
        recipient: Job seeker the digest is addressed to
        alert: Alert that produced the matches
        jobs: Matching jobs, newest first
        personalization: Optional generated recommendations (plain text)
        manage_url: Link to the alert management page
    """

    recipient: User
    alert: Alert
    jobs: List[DigestJob] = field(default_factory=list)
    personalization: Optional[str] = None
    manage_url: str = ""

    @property
    def job_count(self) -> int:
        return len(self.jobs)


@dataclass
class NotificationResult:
    """Outcome of one digest delivery attempt.

    Attributes:
        alert_id: Alert the digest belongs to
        recipient: Address the digest was sent (or meant to be sent) to
        status: "sent" or "failed"
        job_count: Number of jobs in the digest
        error: Error message when delivery failed
    """

    alert_id: str
    recipient: str
    status: str  # "sent", "failed"
    job_count: int = 0
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "sent"
