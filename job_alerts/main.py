"""Main entry point for the job alert service."""

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from job_alerts.config.environment import EnvironmentConfig
from job_alerts.config.exceptions import ConfigurationError
from job_alerts.config.loader import load_config
from job_alerts.config.models import AppConfig
from job_alerts.domain.models import AlertFrequency
from job_alerts.logging import get_logger
from job_alerts.logging.config import configure_logging
from job_alerts.matching.engine import JobMatcher
from job_alerts.notifications.composer import DigestComposer
from job_alerts.notifications.dispatcher import NotificationDispatcher
from job_alerts.notifications.text_generation import build_text_generator
from job_alerts.persistence.database import close_database, init_database
from job_alerts.pipeline import AlertPipeline, CycleResult
from job_alerts.scheduler import AlertScheduler

logger = get_logger(__name__, component="cli")

# Order used by --run-once all
RUN_ONCE_ORDER = (AlertFrequency.DAILY, AlertFrequency.WEEKLY, AlertFrequency.IMMEDIATE)


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_pipeline(app_config: AppConfig, env_config: EnvironmentConfig) -> AlertPipeline:
    """Wire matcher, composer and dispatcher into an AlertPipeline."""
    matcher = JobMatcher(default_limit=app_config.matching.digest_limit)
    composer = DigestComposer(
        text_generator=build_text_generator(app_config.text_generation, env_config.gemini_api_key),
        frontend_url=app_config.frontend_url,
    )
    dispatcher = NotificationDispatcher(env_config=env_config, email_config=app_config.email)
    return AlertPipeline(
        matcher=matcher,
        composer=composer,
        dispatcher=dispatcher,
        matching_config=app_config.matching,
    )


def frequencies_for(choice: str) -> List[AlertFrequency]:
    if choice == "all":
        return list(RUN_ONCE_ORDER)
    return [AlertFrequency(choice)]


def run_once(pipeline: AlertPipeline, choice: str) -> List[CycleResult]:
    """Run the requested cycles sequentially in the calling thread."""
    results = []
    for frequency in frequencies_for(choice):
        result = pipeline.run_cycle(frequency)
        results.append(result)
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="job-alerts",
        description="Job alert service - matches saved job searches and e-mails digests",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--run-once",
        choices=[frequency.value for frequency in AlertFrequency] + ["all"],
        default=None,
        metavar="{immediate,daily,weekly,all}",
        help="Process alerts of one frequency (or all) immediately and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the service.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    load_dotenv()
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=os.environ.get("ENVIRONMENT", "local"),
        )

        logger.info(
            "Job alert service starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run_once": args.run_once,
                "text_generation_enabled": app_config.text_generation.enabled,
            },
        )

        init_database(env_config.database_url)
        pipeline = build_pipeline(app_config, env_config)

        if args.run_once:
            results = run_once(pipeline, args.run_once)
            close_database()

            had_errors = any(result.had_errors for result in results)
            logger.info(
                f"Run-once completed for {args.run_once}: "
                f"{sum(r.sent_count for r in results)} sent, "
                f"{sum(r.failed_count for r in results)} failed",
                extra={
                    "event": "service.run_once.completed",
                    "cycles": [result.frequency for result in results],
                    "had_errors": had_errors,
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 1 if had_errors else 0

        shutdown_event = threading.Event()
        scheduler = AlertScheduler(
            cycle_runner=pipeline.run_cycle,
            schedule_config=app_config.schedule,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler.start()
        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            scheduler.shutdown(wait=False)
        finally:
            close_database()

        logger.info(
            "Job alert service stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            "Configuration error",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            exc_info=True,
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
            },
        )
        close_database()
        return 1


if __name__ == "__main__":
    sys.exit(main())
