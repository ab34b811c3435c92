"""Alert pipeline: per-cycle processing, manual test sends and ad-hoc queries."""

import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set
from uuid import uuid4

from job_alerts.alerts.exceptions import AlertAccessDeniedError, AlertNotFoundError
from job_alerts.config.models import MatchingConfig
from job_alerts.domain.models import Alert, AlertFrequency, JobListing, User
from job_alerts.logging import get_logger
from job_alerts.logging.context import log_context
from job_alerts.matching.engine import JobMatcher
from job_alerts.notifications.composer import DigestComposer
from job_alerts.notifications.dispatcher import NotificationDispatcher
from job_alerts.persistence import (
    AlertRepository,
    PersistenceError,
    RecordNotFoundError,
    SessionScope,
    UserRepository,
    get_session,
)
from job_alerts.utils.timestamps import days_ago, format_timestamp_for_log, utc_now

from .models import (
    ERROR,
    MATCH_FAILED,
    NO_MATCHES,
    SEND_FAILED,
    SENT,
    SKIPPED,
    AlertOutcome,
    AlertTestResult,
    CycleResult,
    RecentMatchesResult,
)

logger = get_logger(__name__, component="pipeline")


class AlertPipeline:
    """
    Drives the match, compose, dispatch and watermark steps for alerts.

    One cycle handles every active alert of one frequency, sequentially. A
    failure on one alert is logged and recorded but never stops the cycle.
    Cycles of different frequencies may overlap; two cycles of the same
    frequency may not, and no alert is ever processed by two cycles at once.
    """

    def __init__(
        self,
        matcher: JobMatcher,
        composer: DigestComposer,
        dispatcher: NotificationDispatcher,
        matching_config: Optional[MatchingConfig] = None,
        session_scope: SessionScope = get_session,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            matcher: Job matcher used for every search
            composer: Builds digests from matched jobs
            dispatcher: Sends digests
            matching_config: Caps and lookback windows
            session_scope: Context manager factory yielding a database session
            clock: Returns the current UTC time
        """
        self.matcher = matcher
        self.composer = composer
        self.dispatcher = dispatcher
        self.matching_config = matching_config or MatchingConfig()
        self.session_scope = session_scope
        self.clock = clock

        self._cycle_locks: Dict[AlertFrequency, threading.Lock] = {
            frequency: threading.Lock() for frequency in AlertFrequency
        }
        self._in_flight: Set[str] = set()
        self._in_flight_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Scheduled cycles
    # ------------------------------------------------------------------

    def run_cycle(self, frequency) -> CycleResult:
        """
        Process every active alert of ``frequency``.

        Returns:
            CycleResult with per-alert outcomes. ``skipped`` is set when a cycle
            of the same frequency is already running, ``failed`` when the
            alerts could not be loaded.
        """
        frequency = AlertFrequency(frequency)
        cycle_id = uuid4().hex
        started_at = self.clock()
        lock = self._cycle_locks[frequency]

        if not lock.acquire(blocking=False):
            with log_context(cycle_id=cycle_id, frequency=frequency.value):
                logger.warning(
                    f"Skipping {frequency.value} cycle: previous cycle still in progress",
                    extra={"event": "alert.cycle.skipped", "reason": "lock_held"},
                )
            return CycleResult(
                frequency=frequency.value,
                cycle_id=cycle_id,
                started_at=started_at,
                finished_at=self.clock(),
                skipped=True,
            )

        try:
            with log_context(cycle_id=cycle_id, frequency=frequency.value):
                return self._run_cycle_locked(frequency, cycle_id, started_at)
        finally:
            lock.release()

    def _run_cycle_locked(self, frequency: AlertFrequency, cycle_id: str, started_at: datetime) -> CycleResult:
        logger.info(
            f"Starting {frequency.value} alert cycle",
            extra={"event": "alert.cycle.started"},
        )

        try:
            with self.session_scope() as session:
                alerts = AlertRepository(session).list_active(frequency)
        except PersistenceError as e:
            logger.error(
                f"Could not load active {frequency.value} alerts: {e}",
                extra={"event": "alert.cycle.failed", "error_type": type(e).__name__},
            )
            return CycleResult(
                frequency=frequency.value,
                cycle_id=cycle_id,
                started_at=started_at,
                finished_at=self.clock(),
                failed=True,
                error=str(e),
            )

        logger.info(
            f"Found {len(alerts)} active {frequency.value} alert(s)",
            extra={"event": "alert.cycle.loaded", "alert_count": len(alerts)},
        )

        outcomes = [self._process_isolated(alert) for alert in alerts]

        result = CycleResult(
            frequency=frequency.value,
            cycle_id=cycle_id,
            started_at=started_at,
            finished_at=self.clock(),
            outcomes=outcomes,
        )

        log = logger.warning if result.failed_count else logger.info
        log(
            f"Completed {frequency.value} alert cycle: {result.sent_count} sent, "
            f"{result.no_match_count} without matches, {result.skipped_count} skipped, "
            f"{result.failed_count} failed",
            extra={
                "event": "alert.cycle.completed",
                "alert_count": result.total_alerts,
                "sent_count": result.sent_count,
                "no_match_count": result.no_match_count,
                "skipped_count": result.skipped_count,
                "failed_count": result.failed_count,
                "duration_seconds": round(result.duration_seconds, 3),
            },
        )
        return result

    def _process_isolated(self, alert: Alert) -> AlertOutcome:
        """Process one alert; any exception becomes an ``error`` outcome."""
        with self._in_flight_lock:
            if alert.id in self._in_flight:
                logger.info(
                    f"Skipping alert {alert.id}: already being processed",
                    extra={"event": "alert.skipped", "alert_id": alert.id, "reason": "in_flight"},
                )
                return AlertOutcome(alert.id, alert.owner_id, SKIPPED, reason="in_flight")
            self._in_flight.add(alert.id)

        try:
            with log_context(alert_id=alert.id, owner_id=alert.owner_id):
                try:
                    return self._process_alert(alert)
                except Exception as e:
                    logger.error(
                        f"Error processing alert {alert.id}: {e}",
                        exc_info=True,
                        extra={"event": "alert.process.failed", "error_type": type(e).__name__},
                    )
                    return AlertOutcome(alert.id, alert.owner_id, ERROR, error=str(e))
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(alert.id)

    def _process_alert(self, alert: Alert) -> AlertOutcome:
        with self.session_scope() as session:
            owner = UserRepository(session).get_by_id(alert.owner_id)

        skip_reason = _skip_reason(owner)
        if skip_reason:
            logger.info(
                f"Skipping alert {alert.id}: {skip_reason}",
                extra={"event": "alert.skipped", "reason": skip_reason},
            )
            return AlertOutcome(alert.id, alert.owner_id, SKIPPED, reason=skip_reason)

        # Watermark candidate, must be read before matching
        now = self.clock()

        outcome = self.matcher.find_matches(
            alert,
            since=alert.last_sent_at,
            limit=self.matching_config.digest_limit,
        )
        if outcome.failed:
            return AlertOutcome(alert.id, alert.owner_id, MATCH_FAILED, error=outcome.error)
        if not outcome.jobs:
            logger.debug(
                f"No new matches for alert {alert.id} since "
                f"{format_timestamp_for_log(alert.last_sent_at) or 'the beginning'}",
                extra={"event": "alert.match.none"},
            )
            return AlertOutcome(alert.id, alert.owner_id, NO_MATCHES)

        digest = self.composer.compose(owner, alert, outcome.jobs)
        result = self.dispatcher.send(owner, digest)
        if not result.is_success():
            return AlertOutcome(
                alert.id, alert.owner_id, SEND_FAILED, job_count=len(outcome.jobs), error=result.error
            )

        watermark = self._advance_watermark(alert, now)
        logger.info(
            f"Alert {alert.id} delivered {len(outcome.jobs)} job(s)",
            extra={
                "event": "alert.delivered",
                "job_count": len(outcome.jobs),
                "watermark": format_timestamp_for_log(watermark),
            },
        )
        return AlertOutcome(
            alert.id, alert.owner_id, SENT, job_count=len(outcome.jobs), watermark=watermark
        )

    def _advance_watermark(self, alert: Alert, sent_at: datetime) -> Optional[datetime]:
        try:
            with self.session_scope() as session:
                return AlertRepository(session).update_last_sent(alert.id, sent_at)
        except RecordNotFoundError:
            logger.warning(
                f"Alert {alert.id} was deleted before its watermark could be updated",
                extra={"event": "alert.watermark.missing"},
            )
            return None

    # ------------------------------------------------------------------
    # Owner-triggered operations
    # ------------------------------------------------------------------

    def test_alert(self, owner_id: str, alert_id: str) -> AlertTestResult:
        """
        Send one alert's matches from the test lookback window right now.

        The watermark is never touched.

        Raises:
            AlertAccessDeniedError: If the caller is not a job seeker or not the owner
            AlertNotFoundError: If the alert does not exist
        """
        with self.session_scope() as session:
            owner = _require_job_seeker(UserRepository(session), owner_id, "test alerts")
            alert = AlertRepository(session).get_by_id(alert_id)

        if alert is None:
            raise AlertNotFoundError("Alert not found")
        if alert.owner_id != owner_id:
            raise AlertAccessDeniedError("Access denied. You can only test your own alerts.")

        lookback = self.matching_config.test_lookback_days
        with log_context(alert_id=alert.id, owner_id=owner_id):
            outcome = self.matcher.find_matches(
                alert,
                since=days_ago(lookback, now=self.clock()),
                limit=self.matching_config.digest_limit,
            )
            if outcome.failed:
                return AlertTestResult(
                    success=False,
                    message="Could not search for matching jobs. Please try again later.",
                )
            if not outcome.jobs:
                return AlertTestResult(
                    success=False,
                    message=(
                        f"No matching jobs found in the last {lookback} days. "
                        "Try broadening your alert criteria."
                    ),
                )

            digest = self.composer.compose(owner, alert, outcome.jobs)
            result = self.dispatcher.send(owner, digest)

        if result.is_success():
            return AlertTestResult(
                success=True,
                message=f"Test alert sent to {owner.email} with {len(outcome.jobs)} matches.",
                job_count=len(outcome.jobs),
                notification=result,
            )
        return AlertTestResult(
            success=False,
            message="Failed to send test alert email. Please try again later.",
            job_count=len(outcome.jobs),
            notification=result,
        )

    def recent_matches(self, owner_id: str) -> RecentMatchesResult:
        """Newest unique matches of the owner's active alerts in the recent window."""
        alerts = self._active_alerts_for(owner_id, "access matches")
        if not alerts:
            return RecentMatchesResult()

        aggregated = self.matcher.find_recent_matches(
            alerts,
            since=days_ago(self.matching_config.recent_lookback_days, now=self.clock()),
            limit=self.matching_config.recent_matches_limit,
        )
        return RecentMatchesResult(jobs=aggregated.jobs, total_matches=aggregated.total)

    def matching_jobs(self, owner_id: str) -> List[JobListing]:
        """Open jobs matching any of the owner's active alerts, newest first."""
        alerts = self._active_alerts_for(owner_id, "access matching jobs")
        return self.matcher.find_matching_jobs(
            alerts, limit=self.matching_config.matching_jobs_limit
        ).jobs

    def _active_alerts_for(self, owner_id: str, action: str) -> List[Alert]:
        with self.session_scope() as session:
            _require_job_seeker(UserRepository(session), owner_id, action)
            return AlertRepository(session).list_for_owner(owner_id, active_only=True)


def _skip_reason(owner: Optional[User]) -> Optional[str]:
    if owner is None:
        return "owner_not_found"
    if not owner.alert_settings.enabled:
        return "alerts_disabled"
    if not owner.alert_settings.email:
        return "email_disabled"
    return None


def _require_job_seeker(users: UserRepository, owner_id: str, action: str) -> User:
    owner = users.get_by_id(owner_id)
    if owner is None or not owner.is_job_seeker:
        raise AlertAccessDeniedError(f"Access denied. Only job seekers can {action}.")
    return owner
