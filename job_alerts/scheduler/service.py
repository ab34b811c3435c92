"""Scheduler service that fires the alert cycles on cron schedules."""

import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from job_alerts.config.models import ScheduleConfig, build_cron_trigger
from job_alerts.domain.models import AlertFrequency
from job_alerts.logging import get_logger
from job_alerts.utils.timestamps import utc_now

logger = get_logger(__name__, component="scheduler")

MISFIRE_GRACE_SECONDS = 300


def job_id_for(frequency: AlertFrequency) -> str:
    return f"alert-cycle-{frequency.value}"


class AlertScheduler:
    """
    Wraps APScheduler to run one alert cycle per frequency on its cron schedule.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown. Each cycle job allows a single running instance
    and coalesces missed runs.
    """

    def __init__(
        self,
        cycle_runner: Callable[[str], Any],
        schedule_config: Optional[ScheduleConfig] = None,
        shutdown_event: Optional[threading.Event] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        """
        Args:
            cycle_runner: Called with a frequency value on each firing (e.g. pipeline.run_cycle)
            schedule_config: Cron expressions and timezone
            shutdown_event: Optional event set on shutdown for coordination
            scheduler: APScheduler instance to drive (created if None)
        """
        self.cycle_runner = cycle_runner
        self.schedule_config = schedule_config or ScheduleConfig()
        self.shutdown_event = shutdown_event

        self.scheduler = scheduler or BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
            timezone=self.schedule_config.timezone,
        )

        self.triggers: Dict[AlertFrequency, CronTrigger] = {
            frequency: build_cron_trigger(
                self.schedule_config.cron_for(frequency.value),
                timezone=self.schedule_config.timezone,
            )
            for frequency in AlertFrequency
        }

    def start(self) -> None:
        """Register one job per frequency and start the scheduler."""
        for frequency, trigger in self.triggers.items():
            self.scheduler.add_job(
                func=self._run_cycle,
                trigger=trigger,
                args=[frequency.value],
                id=job_id_for(frequency),
                name=f"{frequency.value.capitalize()} job alerts",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=MISFIRE_GRACE_SECONDS,
            )

        self.scheduler.start()

        logger.info(
            "Alert scheduler started",
            extra={
                "event": "scheduler.started",
                "timezone": self.schedule_config.timezone,
                **{
                    f"next_{frequency.value}_run": _isoformat(self.get_next_run_time(frequency))
                    for frequency in AlertFrequency
                },
            },
        )

    def _run_cycle(self, frequency: str) -> None:
        logger.info(
            f"Triggering {frequency} alert cycle",
            extra={"event": "scheduler.fired", "frequency": frequency},
        )
        try:
            self.cycle_runner(frequency)
        except Exception as e:
            logger.error(
                f"Unhandled error in {frequency} alert cycle: {e}",
                exc_info=True,
                extra={"event": "scheduler.cycle.error", "frequency": frequency},
            )

    def shutdown(self, wait: bool = False) -> None:
        """
        Stop firing cycles.

        Args:
            wait: If True, wait for running cycles to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, frequency) -> Any:
        """Run one cycle synchronously in the calling thread and return its result."""
        frequency = AlertFrequency(frequency)
        logger.info(
            f"Triggering immediate {frequency.value} alert cycle",
            extra={"event": "scheduler.trigger_now", "frequency": frequency.value},
        )
        return self.cycle_runner(frequency.value)

    def is_running(self) -> bool:
        return bool(self.scheduler.running)

    def get_next_run_time(self, frequency) -> Optional[datetime]:
        """
        Next firing time of a frequency's cycle.

        Falls back to the trigger itself while the scheduler is not running.
        """
        frequency = AlertFrequency(frequency)
        job = self.scheduler.get_job(job_id_for(frequency)) if self.scheduler.running else None
        if job is not None:
            return job.next_run_time
        return self.triggers[frequency].get_next_fire_time(None, utc_now())


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
