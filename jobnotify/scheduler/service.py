"""Scheduler service for the daily refresh/notify cycles and the delivery drain."""

import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from jobnotify.config.models import ScheduleConfig
from jobnotify.logging import get_logger

logger = get_logger(__name__, component="scheduler")

REFRESH_JOB_ID = "refresh-listings"
NOTIFY_JOB_ID = "notify-cycle"
DELIVERY_JOB_ID = "delivery-drain"


class SchedulerService:
    """
    Wraps APScheduler to trigger the three pipeline stages.

    Refresh and notify run on crontab schedules; the delivery drain runs on a
    fixed interval. BackgroundScheduler runs jobs in worker threads while the
    main thread handles signals and coordinates shutdown.
    """

    def __init__(
        self,
        refresh_callable: Callable[[], object],
        notify_callable: Callable[[], object],
        delivery_callable: Callable[[], object],
        schedule: Optional[ScheduleConfig] = None,
        shutdown_event: Optional[threading.Event] = None,
    ):
        self.schedule = schedule or ScheduleConfig()
        self.shutdown_event = shutdown_event
        self._callables: Dict[str, Callable[[], object]] = {
            REFRESH_JOB_ID: refresh_callable,
            NOTIFY_JOB_ID: notify_callable,
            DELIVERY_JOB_ID: delivery_callable,
        }

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": 3600,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register all jobs and start the scheduler.

        The delivery drain runs once immediately so jobs left over from a
        previous process are picked up without waiting a full interval.
        """
        self.scheduler.add_job(
            func=self._callables[REFRESH_JOB_ID],
            trigger=CronTrigger.from_crontab(self.schedule.refresh_cron, timezone=timezone.utc),
            id=REFRESH_JOB_ID,
            name="Refresh listing snapshot",
            replace_existing=True,
        )
        self.scheduler.add_job(
            func=self._callables[NOTIFY_JOB_ID],
            trigger=CronTrigger.from_crontab(self.schedule.notify_cron, timezone=timezone.utc),
            id=NOTIFY_JOB_ID,
            name="Notify cycle",
            replace_existing=True,
        )
        self.scheduler.add_job(
            func=self._callables[DELIVERY_JOB_ID],
            trigger=IntervalTrigger(
                seconds=self.schedule.delivery_interval_seconds, timezone=timezone.utc
            ),
            id=DELIVERY_JOB_ID,
            name="Drain delivery queue",
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
        )

        self.scheduler.start()

        logger.info(
            "Scheduler started",
            extra={
                "event": "scheduler.started",
                "refresh_cron": self.schedule.refresh_cron,
                "notify_cron": self.schedule.notify_cron,
                "delivery_interval_seconds": self.schedule.delivery_interval_seconds,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete before returning
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

    def trigger_now(self, job_id: str) -> object:
        """Run one stage synchronously in the current thread.

        Raises:
            KeyError: If job_id is not a known stage
        """
        if job_id not in self._callables:
            raise KeyError(f"Unknown job: {job_id}")

        logger.info(
            f"Triggering immediate run of {job_id}",
            extra={"event": "scheduler.trigger_now", "job_id": job_id},
        )
        return self._callables[job_id]()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self, job_id: str) -> Optional[datetime]:
        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None
