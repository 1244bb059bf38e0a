"""APScheduler wrapper triggering periodic watch runs."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType

JOB_ID = "syllabus-watch::run"


class APSchedulerAdapter:
    """Register one recurring job and keep the process alive while it runs."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = structlog.get_logger("syllabus_watch").bind(component="scheduler")
        self.started = False
        self._stop = threading.Event()

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")
        self._stop.set()

    def schedule(self, schedule: ScheduleConfig, callback: Callable[[], None]) -> None:
        trigger = build_trigger(schedule)
        # One run at a time; a slow harvest must not overlap the next trigger.
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("job_scheduled", schedule=schedule.model_dump(mode="json"))

    def block(self) -> None:
        """Wait until :meth:`shutdown` is called or the process is interrupted."""

        try:
            while not self._stop.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            self.logger.info("interrupted")
        finally:
            self.shutdown()

    def list_jobs(self) -> list[dict]:
        return [
            {"id": job.id, "next_run_time": job.next_run_time, "trigger": str(job.trigger)}
            for job in self.scheduler.get_jobs()
        ]


def build_trigger(schedule: ScheduleConfig):
    if schedule.type is ScheduleType.CRON:
        return CronTrigger.from_crontab(str(schedule.value))
    if schedule.type is ScheduleType.INTERVAL:
        if isinstance(schedule.value, (int, float)):
            return IntervalTrigger(seconds=float(schedule.value))
        if isinstance(schedule.value, dict):
            return IntervalTrigger(**schedule.value)
        raise ValueError("Interval schedule requires seconds or kwargs dict")
    if schedule.type is ScheduleType.ONCE:
        run_date = datetime.fromisoformat(str(schedule.value)) if schedule.value else datetime.now()
        return DateTrigger(run_date=run_date)
    raise ValueError(f"Unknown schedule type: {schedule.type}")


__all__ = ["APSchedulerAdapter", "JOB_ID", "build_trigger"]
