"""Unit tests for the alert pipeline.

Tests the AlertPipeline orchestration including:
- Skip rules for owners without e-mail alerts
- Watermark handling after successful and failed sends
- Error isolation between alerts
- Lock behavior (prevents concurrent cycles of one frequency)
- Manual test sends and ad-hoc match queries
"""

import threading
from datetime import timedelta
from unittest.mock import Mock

import pytest

from job_alerts.alerts.exceptions import AlertAccessDeniedError, AlertNotFoundError
from job_alerts.config.models import MatchingConfig
from job_alerts.domain.models import AlertFrequency, AlertSettings, UserType
from job_alerts.matching.engine import JobMatcher
from job_alerts.matching.models import MatchOutcome
from job_alerts.notifications.composer import DigestComposer
from job_alerts.notifications.dispatcher import NotificationDispatcher
from job_alerts.notifications.models import NotificationResult
from job_alerts.persistence import AlertRepository, PersistenceError, get_session
from job_alerts.pipeline import AlertPipeline
from job_alerts.pipeline.models import ERROR, MATCH_FAILED, NO_MATCHES, SEND_FAILED, SENT, SKIPPED
from tests.helpers import (
    BASE_TIME,
    invalid_alert_row,
    invalid_job_row,
    make_alert,
    make_job,
    make_user,
    seed,
    store_rows,
)

NOW = BASE_TIME + timedelta(hours=2)


def _sent(recipient, digest):
    return NotificationResult(
        alert_id=digest.alert.id, recipient=recipient.email, status="sent", job_count=digest.job_count
    )


def _failed(recipient, digest):
    return NotificationResult(
        alert_id=digest.alert.id,
        recipient=recipient.email,
        status="failed",
        job_count=digest.job_count,
        error="SMTP error during message delivery: 451",
    )


@pytest.fixture
def dispatcher():
    mock = Mock(spec=NotificationDispatcher)
    mock.send.side_effect = _sent
    return mock


@pytest.fixture
def pipeline(temp_database, dispatcher):
    return AlertPipeline(
        matcher=JobMatcher(),
        composer=DigestComposer(),
        dispatcher=dispatcher,
        matching_config=MatchingConfig(digest_limit=10),
        clock=lambda: NOW,
    )


def _watermark(alert_id="alert-1"):
    with get_session() as session:
        return AlertRepository(session).get_by_id(alert_id).last_sent_at


class TestRunCycle:
    """Tests for AlertPipeline.run_cycle()."""

    def test_sends_and_advances_watermark(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job("j1"), make_job("j2", minutes=5)], alerts=[make_alert()])

        result = pipeline.run_cycle("daily")

        assert result.frequency == "daily"
        assert result.sent_count == 1
        assert not result.had_errors
        outcome = result.outcomes[0]
        assert outcome.status == SENT
        assert outcome.job_count == 2
        assert outcome.watermark == NOW
        assert _watermark() == NOW

        recipient, digest = dispatcher.send.call_args[0]
        assert recipient.id == "seeker-1"
        assert [job.job_id for job in digest.jobs] == ["j2", "j1"]

    def test_only_jobs_after_watermark(self, pipeline, dispatcher):
        seed(
            users=[make_user()],
            jobs=[make_job("old", minutes=0), make_job("new", minutes=30)],
            alerts=[make_alert(last_sent_at=BASE_TIME)],
        )

        pipeline.run_cycle("daily")

        digest = dispatcher.send.call_args[0][1]
        assert [job.job_id for job in digest.jobs] == ["new"]

    def test_no_matches_leaves_watermark(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job(title="Go Developer", description="")], alerts=[make_alert()])

        result = pipeline.run_cycle("daily")

        assert result.outcomes[0].status == NO_MATCHES
        dispatcher.send.assert_not_called()
        assert _watermark() is None

    def test_send_failure_leaves_watermark(self, pipeline, dispatcher):
        dispatcher.send.side_effect = _failed
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert(last_sent_at=BASE_TIME - timedelta(days=1))])

        result = pipeline.run_cycle("daily")

        assert result.outcomes[0].status == SEND_FAILED
        assert "451" in result.outcomes[0].error
        assert result.had_errors
        assert _watermark() == BASE_TIME - timedelta(days=1)

    def test_digest_capped(self, temp_database, dispatcher):
        seed(users=[make_user()], jobs=[make_job(f"j{i}", minutes=i) for i in range(5)], alerts=[make_alert()])
        pipeline = AlertPipeline(
            JobMatcher(), DigestComposer(), dispatcher, MatchingConfig(digest_limit=3), clock=lambda: NOW
        )

        pipeline.run_cycle("daily")

        digest = dispatcher.send.call_args[0][1]
        assert [job.job_id for job in digest.jobs] == ["j4", "j3", "j2"]

    @pytest.mark.parametrize(
        "user_kwargs,reason",
        [
            ({"alert_settings": AlertSettings(enabled=False)}, "alerts_disabled"),
            ({"alert_settings": AlertSettings(enabled=True, email=False)}, "email_disabled"),
        ],
    )
    def test_owner_preferences_skip(self, pipeline, dispatcher, user_kwargs, reason):
        seed(users=[make_user(**user_kwargs)], jobs=[make_job()], alerts=[make_alert()])

        result = pipeline.run_cycle("daily")

        assert result.outcomes[0].status == SKIPPED
        assert result.outcomes[0].reason == reason
        dispatcher.send.assert_not_called()
        assert _watermark() is None

    def test_missing_owner_skipped(self, pipeline, dispatcher):
        matcher = Mock(spec=JobMatcher)
        pipeline.matcher = matcher

        outcome = pipeline._process_isolated(make_alert(owner_id="ghost"))

        assert outcome.status == SKIPPED
        assert outcome.reason == "owner_not_found"
        matcher.find_matches.assert_not_called()

    def test_only_active_alerts_of_frequency(self, pipeline, dispatcher):
        seed(
            users=[make_user()],
            jobs=[make_job()],
            alerts=[
                make_alert("daily-1"),
                make_alert("daily-off", is_active=False),
                make_alert("weekly-1", frequency="weekly"),
            ],
        )

        result = pipeline.run_cycle("daily")

        assert [o.alert_id for o in result.outcomes] == ["daily-1"]

    def test_match_failure_isolated(self, pipeline, dispatcher):
        seed(
            users=[make_user()],
            jobs=[make_job()],
            alerts=[make_alert("a1", created_at=BASE_TIME - timedelta(days=60)), make_alert("a2")],
        )
        real_matcher = pipeline.matcher
        matcher = Mock(spec=JobMatcher)

        def find_matches(alert, since=None, limit=None):
            if alert.id == "a1":
                return MatchOutcome(error="database is locked")
            return real_matcher.find_matches(alert, since=since, limit=limit)

        matcher.find_matches.side_effect = find_matches
        pipeline.matcher = matcher

        result = pipeline.run_cycle("daily")

        statuses = {o.alert_id: o.status for o in result.outcomes}
        assert statuses == {"a1": MATCH_FAILED, "a2": SENT}
        assert _watermark("a1") is None
        assert _watermark("a2") == NOW

    def test_unexpected_exception_isolated(self, pipeline, dispatcher):
        seed(
            users=[make_user()],
            jobs=[make_job()],
            alerts=[make_alert("a1", created_at=BASE_TIME - timedelta(days=60)), make_alert("a2")],
        )
        calls = []

        def send(recipient, digest):
            calls.append(digest.alert.id)
            if digest.alert.id == "a1":
                raise RuntimeError("boom")
            return _sent(recipient, digest)

        dispatcher.send.side_effect = send

        result = pipeline.run_cycle("daily")

        statuses = {o.alert_id: o.status for o in result.outcomes}
        assert statuses == {"a1": ERROR, "a2": SENT}
        assert calls == ["a1", "a2"]
        assert result.failed_count == 1

    def test_invalid_alert_row_does_not_block_cycle(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert("healthy")])
        store_rows(invalid_alert_row("bad-alert"))

        result = pipeline.run_cycle("daily")

        assert not result.failed
        assert [(o.alert_id, o.status) for o in result.outcomes] == [("healthy", SENT)]
        assert _watermark("healthy") == NOW

    def test_load_failure_marks_cycle_failed(self, pipeline):
        def failing_scope():
            raise PersistenceError("database is locked")

        pipeline.session_scope = failing_scope

        result = pipeline.run_cycle("daily")

        assert result.failed
        assert result.had_errors
        assert "database is locked" in result.error

    def test_watermark_uses_time_before_matching(self, temp_database, dispatcher):
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert()])
        # cycle start, watermark candidate, cycle end
        times = iter([NOW - timedelta(minutes=1), NOW, NOW + timedelta(minutes=1)])
        pipeline = AlertPipeline(JobMatcher(), DigestComposer(), dispatcher, clock=lambda: next(times))

        result = pipeline.run_cycle("daily")

        assert result.outcomes[0].watermark == NOW
        assert _watermark() == NOW

    def test_concurrent_cycle_of_same_frequency_skipped(self, pipeline):
        lock = pipeline._cycle_locks[AlertFrequency.DAILY]
        lock.acquire()
        try:
            result = pipeline.run_cycle("daily")
        finally:
            lock.release()

        assert result.skipped
        assert result.outcomes == []

    def test_other_frequency_not_blocked(self, pipeline):
        lock = pipeline._cycle_locks[AlertFrequency.DAILY]
        lock.acquire()
        try:
            result = pipeline.run_cycle("weekly")
        finally:
            lock.release()

        assert not result.skipped

    def test_alert_in_flight_is_skipped(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert()])
        pipeline._in_flight.add("alert-1")

        result = pipeline.run_cycle("daily")

        assert result.outcomes[0].status == SKIPPED
        assert result.outcomes[0].reason == "in_flight"
        dispatcher.send.assert_not_called()

    def test_parallel_cycles_send_once(self, temp_database):
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert()])
        release = threading.Event()
        entered = threading.Event()
        dispatcher = Mock(spec=NotificationDispatcher)

        def slow_send(recipient, digest):
            entered.set()
            release.wait(timeout=5)
            return _sent(recipient, digest)

        dispatcher.send.side_effect = slow_send
        pipeline = AlertPipeline(JobMatcher(), DigestComposer(), dispatcher, clock=lambda: NOW)

        results = []
        worker = threading.Thread(target=lambda: results.append(pipeline.run_cycle("daily")))
        worker.start()
        assert entered.wait(timeout=5)

        second = pipeline.run_cycle("daily")
        release.set()
        worker.join(timeout=5)

        assert second.skipped
        assert results[0].sent_count == 1
        assert dispatcher.send.call_count == 1


class TestTestAlert:
    """Tests for AlertPipeline.test_alert()."""

    def test_sends_without_touching_watermark(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert(last_sent_at=NOW)])

        result = pipeline.test_alert("seeker-1", "alert-1")

        assert result.success
        assert result.message == "Test alert sent to seeker@example.com with 1 matches."
        assert result.job_count == 1
        assert _watermark() == NOW

    def test_uses_lookback_window(self, pipeline, dispatcher):
        seed(
            users=[make_user()],
            jobs=[make_job("recent"), make_job("ancient", minutes=-60 * 24 * 40)],
            alerts=[make_alert()],
        )

        pipeline.test_alert("seeker-1", "alert-1")

        digest = dispatcher.send.call_args[0][1]
        assert [job.job_id for job in digest.jobs] == ["recent"]

    def test_no_matches(self, pipeline, dispatcher):
        seed(users=[make_user()], alerts=[make_alert()])

        result = pipeline.test_alert("seeker-1", "alert-1")

        assert not result.success
        assert result.message == (
            "No matching jobs found in the last 30 days. Try broadening your alert criteria."
        )
        dispatcher.send.assert_not_called()

    def test_send_failure(self, pipeline, dispatcher):
        dispatcher.send.side_effect = _failed
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert()])

        result = pipeline.test_alert("seeker-1", "alert-1")

        assert not result.success
        assert result.message == "Failed to send test alert email. Please try again later."

    def test_works_for_inactive_alert(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job()], alerts=[make_alert(is_active=False)])
        assert pipeline.test_alert("seeker-1", "alert-1").success

    def test_unknown_alert(self, pipeline):
        seed(users=[make_user()])
        with pytest.raises(AlertNotFoundError, match="Alert not found"):
            pipeline.test_alert("seeker-1", "missing")

    def test_other_owner_denied(self, pipeline):
        seed(
            users=[make_user(), make_user("seeker-2", email="other@example.com")],
            alerts=[make_alert(owner_id="seeker-2")],
        )
        with pytest.raises(AlertAccessDeniedError, match="only test your own alerts"):
            pipeline.test_alert("seeker-1", "alert-1")

    def test_invalid_job_rows_left_out(self, pipeline, dispatcher):
        seed(users=[make_user()], jobs=[make_job("react", minutes=10)], alerts=[make_alert()])
        store_rows(invalid_job_row("bad-job"))

        assert [job.id for job in pipeline.matching_jobs("seeker-1")] == ["react"]
        assert [job.id for job in pipeline.recent_matches("seeker-1").jobs] == ["react"]
        assert pipeline.test_alert("seeker-1", "alert-1").job_count == 1

    def test_employer_denied(self, pipeline):
        seed(users=[make_user("emp", email="emp@example.com", user_type=UserType.EMPLOYER)])
        with pytest.raises(AlertAccessDeniedError, match="Only job seekers can test alerts"):
            pipeline.test_alert("emp", "alert-1")


class TestOwnerQueries:
    """Tests for recent_matches() and matching_jobs()."""

    def test_recent_matches(self, pipeline):
        seed(
            users=[make_user()],
            jobs=[
                make_job("react", minutes=10),
                make_job("python", title="Python Developer", description="", minutes=20),
                make_job("stale", minutes=-60 * 24 * 8),
            ],
            alerts=[
                make_alert("a1", keywords=["react"]),
                make_alert("a2", keywords=["python"]),
                make_alert("a3", keywords=["python"], is_active=False),
            ],
        )

        result = pipeline.recent_matches("seeker-1")

        assert [job.id for job in result.jobs] == ["python", "react"]
        assert result.total_matches == 2

    def test_recent_matches_without_alerts(self, pipeline):
        seed(users=[make_user()])
        result = pipeline.recent_matches("seeker-1")
        assert result.jobs == []
        assert result.total_matches == 0

    def test_matching_jobs(self, pipeline):
        seed(
            users=[make_user()],
            jobs=[make_job("react"), make_job("stale", minutes=-60 * 24 * 400)],
            alerts=[make_alert(last_sent_at=NOW)],
        )
        assert [job.id for job in pipeline.matching_jobs("seeker-1")] == ["react", "stale"]

    def test_employer_denied(self, pipeline):
        seed(users=[make_user("emp", email="emp@example.com", user_type=UserType.EMPLOYER)])
        with pytest.raises(AlertAccessDeniedError, match="access matches"):
            pipeline.recent_matches("emp")
        with pytest.raises(AlertAccessDeniedError, match="access matching jobs"):
            pipeline.matching_jobs("emp")
