# scheduler/call_scheduler.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

log = logging.getLogger("call_scheduler")

Job = Callable[..., Awaitable[Any]]


class TaskHandle(Protocol):
    def cancel(self) -> bool: ...


class TaskScheduler(Protocol):
    """One-shot delayed tasks. The recording worker only ever talks to this."""

    def schedule(self, delay_seconds: float, func: Job, *args: Any) -> TaskHandle: ...


class ApsTaskHandle:
    def __init__(self, scheduler: AsyncIOScheduler, job_id: str):
        self._scheduler = scheduler
        self.job_id = job_id

    def cancel(self) -> bool:
        """Remove the pending job. False if it already ran or was removed."""
        try:
            self._scheduler.remove_job(self.job_id)
        except JobLookupError:
            return False
        return True


class ApsTaskScheduler:
    """
    AsyncIOScheduler-backed TaskScheduler (in-memory jobstore).
    Must be started from inside the running event loop.
    """

    def __init__(self, timezone_name: str = "UTC", misfire_grace_seconds: int = 60):
        self._scheduler = AsyncIOScheduler(
            timezone=timezone_name,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": misfire_grace_seconds,
            },
        )

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            log.info("task scheduler started")

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            log.info("task scheduler stopped")

    def schedule(self, delay_seconds: float, func: Job, *args: Any) -> ApsTaskHandle:
        """Fire `func(*args)` once after `delay_seconds`."""
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        job = self._scheduler.add_job(
            func,
            DateTrigger(run_date=run_date),
            args=list(args),
        )
        return ApsTaskHandle(self._scheduler, job.id)

    def pending(self) -> int:
        return len(self._scheduler.get_jobs())


def build_scheduler(timezone_name: Optional[str] = None) -> ApsTaskScheduler:
    return ApsTaskScheduler(timezone_name or "UTC")
