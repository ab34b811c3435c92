"""Result types returned by the job matcher."""

from dataclasses import dataclass, field
from typing import List, Optional

from job_alerts.domain.models import JobListing


@dataclass
class MatchOutcome:
    """Jobs found for one query, or the error that prevented the search.

    Attributes:
        jobs: Matching listings, newest first (empty when the search failed)
        error: Error message when the store query failed
    """

    jobs: List[JobListing] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def has_matches(self) -> bool:
        return bool(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)


@dataclass
class AggregatedMatches:
    """Deduplicated matches across several alerts.

    Attributes:
        jobs: First ``limit`` unique listings, newest first
        total: Number of unique listings before the cap
        failed_alert_ids: Alerts whose search failed and contributed nothing
    """

    jobs: List[JobListing] = field(default_factory=list)
    total: int = 0
    failed_alert_ids: List[str] = field(default_factory=list)
