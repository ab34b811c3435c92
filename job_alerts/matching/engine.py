"""Job matcher: runs alert criteria against the job listing store.

Store failures never escape the matcher. They are logged with the alert and
owner, and reported through ``MatchOutcome.error`` so callers can tell a
failed query from an empty one.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from job_alerts.domain.models import Alert, JobListing
from job_alerts.logging import get_logger
from job_alerts.persistence import JobRepository, PersistenceError, SessionScope, get_session

from .models import AggregatedMatches, MatchOutcome
from .query import JobQuery, build_alert_query, build_union_query, resolve_limit

logger = get_logger(__name__, component="matcher")

DEFAULT_DIGEST_LIMIT = 10
DEFAULT_MATCHING_JOBS_LIMIT = 20


class JobMatcher:
    """Finds open job listings that satisfy alert criteria."""

    def __init__(
        self,
        session_scope: SessionScope = get_session,
        default_limit: int = DEFAULT_DIGEST_LIMIT,
    ):
        """
        Args:
            session_scope: Context manager factory yielding a database session
            default_limit: Cap used when find_matches() gets no explicit limit
        """
        self.session_scope = session_scope
        self.default_limit = default_limit

    def search(self, query: JobQuery) -> List[JobListing]:
        """Run a query against the store. Raises PersistenceError on failure."""
        with self.session_scope() as session:
            return JobRepository(session).search(query)

    def find_matches(
        self,
        alert: Alert,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> MatchOutcome:
        """Return open jobs matching ``alert`` created strictly after ``since``.

        Args:
            alert: Alert whose criteria are applied
            since: Lower bound (exclusive); None means no bound
            limit: Result cap; defaults to ``default_limit``, zero or less means unbounded

        Returns:
            MatchOutcome with jobs newest first, or the error if the store failed
        """
        effective_limit = self.default_limit if limit is None else limit
        query = build_alert_query(alert, since=since, limit=effective_limit)

        try:
            jobs = self.search(query)
        except PersistenceError as e:
            logger.error(
                f"Job search failed for alert {alert.id}: {e}",
                extra={
                    "event": "alert.match.failed",
                    "alert_id": alert.id,
                    "owner_id": alert.owner_id,
                    "error_type": type(e).__name__,
                },
            )
            return MatchOutcome(error=str(e))

        logger.debug(
            f"Alert {alert.id} matched {len(jobs)} job(s)",
            extra={
                "event": "alert.match.completed",
                "alert_id": alert.id,
                "match_count": len(jobs),
                "catch_all": query.is_catch_all,
            },
        )
        return MatchOutcome(jobs=jobs)

    def find_recent_matches(
        self,
        alerts: Iterable[Alert],
        since: Optional[datetime],
        limit: Optional[int] = DEFAULT_DIGEST_LIMIT,
    ) -> AggregatedMatches:
        """Merge each alert's matches since ``since`` into one newest-first list.

        Every alert is searched with the same cap; duplicates are removed by
        job id and the first ``limit`` unique jobs are returned together with
        the unique total.
        """
        unique: Dict[str, JobListing] = {}
        failed = []

        for alert in alerts:
            outcome = self.find_matches(alert, since=since, limit=limit if limit is not None else 0)
            if outcome.failed:
                failed.append(alert.id)
                continue
            for job in outcome.jobs:
                unique.setdefault(job.id, job)

        ordered = sorted(unique.values(), key=lambda job: job.created_at, reverse=True)
        cap = resolve_limit(limit)
        return AggregatedMatches(
            jobs=ordered[:cap] if cap else ordered,
            total=len(ordered),
            failed_alert_ids=failed,
        )

    def find_matching_jobs(
        self,
        alerts: Iterable[Alert],
        limit: Optional[int] = DEFAULT_MATCHING_JOBS_LIMIT,
    ) -> MatchOutcome:
        """Open jobs matching the union of the given alerts' criteria."""
        alerts = list(alerts)
        if not alerts:
            return MatchOutcome()

        query = build_union_query(alerts, limit=limit)
        try:
            return MatchOutcome(jobs=self.search(query))
        except PersistenceError as e:
            logger.error(
                f"Combined job search failed for owner {alerts[0].owner_id}: {e}",
                extra={
                    "event": "alert.match.failed",
                    "owner_id": alerts[0].owner_id,
                    "alert_count": len(alerts),
                    "error_type": type(e).__name__,
                },
            )
            return MatchOutcome(error=str(e))
