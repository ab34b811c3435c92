"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Log level priority (CLI > env > config)
- Run-once mode and its exit codes
- Daemon mode start and shutdown
- Error handling
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest

from job_alerts.config.environment import EnvironmentConfig
from job_alerts.config.exceptions import ConfigurationError
from job_alerts.config.models import AppConfig, LoggingConfig, MatchingConfig, TextGenerationConfig
from job_alerts.main import build_parser, build_pipeline, frequencies_for, load_runtime_config, main
from job_alerts.notifications.text_generation import GeminiTextGenerator, NullTextGenerator
from job_alerts.pipeline import CycleResult
from job_alerts.pipeline.models import SEND_FAILED, SENT, AlertOutcome

STARTED = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)


def _env(**overrides):
    data = {"smtp_host": "smtp.example.com", "smtp_port": 587, "database_url": "sqlite:///:memory:"}
    data.update(overrides)
    return EnvironmentConfig(**data)


def _cycle(frequency, *statuses):
    return CycleResult(
        frequency=frequency,
        cycle_id=f"{frequency}-cycle",
        started_at=STARTED,
        finished_at=STARTED,
        outcomes=[AlertOutcome(f"a{i}", "u1", status) for i, status in enumerate(statuses)],
    )


@pytest.fixture
def runtime():
    """Patch everything main() touches outside the process."""
    with patch("job_alerts.main.load_config") as load_config, patch(
        "job_alerts.main.configure_logging"
    ) as configure_logging, patch("job_alerts.main.init_database") as init_database, patch(
        "job_alerts.main.close_database"
    ) as close_database, patch("job_alerts.main.build_pipeline") as build_pipeline_mock:
        load_config.return_value = (AppConfig(), _env())
        pipeline = MagicMock()
        build_pipeline_mock.return_value = pipeline
        yield {
            "load_config": load_config,
            "configure_logging": configure_logging,
            "init_database": init_database,
            "close_database": close_database,
            "pipeline": pipeline,
        }


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_log_level_priority(self):
        app_config = AppConfig(logging=LoggingConfig(level="WARNING"))
        env_config = _env(log_level="INFO")

        with patch("job_alerts.main.load_config", return_value=(app_config, env_config)):
            _, env = load_runtime_config(None, "DEBUG")
            assert env.log_level == "DEBUG"

            env_config.log_level = "INFO"
            _, env = load_runtime_config(None, None)
            assert env.log_level == "INFO"

            env_config.log_level = None
            _, env = load_runtime_config(None, None)
            assert env.log_level == "WARNING"


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.config is None
        assert args.run_once is None
        assert args.log_level is None

    def test_run_once_choices(self):
        assert build_parser().parse_args(["--run-once", "weekly"]).run_once == "weekly"
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--run-once", "monthly"])

    def test_frequencies_for_all(self):
        assert [f.value for f in frequencies_for("all")] == ["daily", "weekly", "immediate"]
        assert [f.value for f in frequencies_for("immediate")] == ["immediate"]


class TestBuildPipeline:
    def test_wires_configuration(self):
        app_config = AppConfig(
            matching=MatchingConfig(digest_limit=7),
            text_generation=TextGenerationConfig(enabled=True),
            frontend_url="https://jobs.example.com",
        )
        pipeline = build_pipeline(app_config, _env(gemini_api_key="key"))

        assert pipeline.matcher.default_limit == 7
        assert pipeline.matching_config.digest_limit == 7
        assert pipeline.composer.frontend_url == "https://jobs.example.com"
        assert isinstance(pipeline.composer.text_generator, GeminiTextGenerator)
        assert pipeline.dispatcher.email_config is app_config.email

    def test_personalization_off_by_default(self):
        pipeline = build_pipeline(AppConfig(), _env(gemini_api_key="key"))
        assert isinstance(pipeline.composer.text_generator, NullTextGenerator)


class TestRunOnce:
    """Tests for --run-once."""

    def test_single_frequency_success(self, runtime):
        runtime["pipeline"].run_cycle.return_value = _cycle("daily", SENT)

        exit_code = main(["--run-once", "daily"])

        assert exit_code == 0
        runtime["pipeline"].run_cycle.assert_called_once()
        assert runtime["pipeline"].run_cycle.call_args[0][0].value == "daily"
        runtime["init_database"].assert_called_once_with("sqlite:///:memory:")
        runtime["close_database"].assert_called()

    def test_all_runs_every_frequency(self, runtime):
        runtime["pipeline"].run_cycle.side_effect = lambda f: _cycle(f.value, SENT)

        assert main(["--run-once", "all"]) == 0

        called = [c[0][0].value for c in runtime["pipeline"].run_cycle.call_args_list]
        assert called == ["daily", "weekly", "immediate"]

    def test_failures_give_non_zero_exit(self, runtime):
        runtime["pipeline"].run_cycle.return_value = _cycle("daily", SENT, SEND_FAILED)
        assert main(["--run-once", "daily"]) == 1

    def test_log_level_passed_to_logging(self, runtime):
        runtime["pipeline"].run_cycle.return_value = _cycle("daily")

        main(["--run-once", "daily", "--log-level", "DEBUG"])

        kwargs = runtime["configure_logging"].call_args.kwargs
        assert kwargs["level"] == "DEBUG"
        assert kwargs["format_type"] == "key-value"


class TestDaemonMode:
    def test_starts_scheduler_and_waits_for_shutdown(self, runtime):
        created = {}

        def make_scheduler(cycle_runner, schedule_config, shutdown_event):
            scheduler = Mock()
            scheduler.start.side_effect = shutdown_event.set
            created.update(cycle_runner=cycle_runner, scheduler=scheduler)
            return scheduler

        with patch("job_alerts.main.AlertScheduler", side_effect=make_scheduler), patch(
            "job_alerts.main.signal.signal"
        ) as signal_mock:
            exit_code = main([])

        assert exit_code == 0
        assert created["cycle_runner"] == runtime["pipeline"].run_cycle
        created["scheduler"].start.assert_called_once()
        assert signal_mock.call_count == 2
        runtime["close_database"].assert_called()


class TestErrorHandling:
    def test_configuration_error(self, runtime, capsys):
        runtime["load_config"].side_effect = ConfigurationError("Bad config", errors=["SMTP_HOST missing"])

        assert main(["--run-once", "daily"]) == 1

        assert "Configuration Error" in capsys.readouterr().err
        runtime["init_database"].assert_not_called()

    def test_fatal_error(self, runtime, capsys):
        runtime["init_database"].side_effect = RuntimeError("disk full")

        assert main(["--run-once", "daily"]) == 1
        assert "Fatal error: disk full" in capsys.readouterr().err
