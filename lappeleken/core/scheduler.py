"""
Background job scheduler for live match polling.

Each game session in live mode gets one interval job (see
services/live_monitor.py). Jobs run on the application event loop, so a
poll and an HTTP request never mutate the same session concurrently.

Scheduler: APScheduler AsyncIOScheduler
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class LiveMonitorScheduler:
    """
    Thin wrapper over AsyncIOScheduler.

    Jobs are keyed by id; adding a job with an existing id replaces it.
    """

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    def start(self) -> None:
        """Start the scheduler. Must be called with an event loop running."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting live monitor scheduler...")
        self.scheduler = AsyncIOScheduler(
            timezone='UTC',
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Never two polls of one session at once
                'misfire_grace_time': 60
            }
        )
        self.scheduler.start()
        self.running = True
        logger.info("✅ Live monitor scheduler started")

    def stop(self) -> None:
        """Stop the scheduler and drop all jobs."""
        if not self.running:
            return

        logger.info("Stopping live monitor scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("✅ Live monitor scheduler stopped")

    def _require_running(self) -> AsyncIOScheduler:
        if not self.running or self.scheduler is None:
            raise RuntimeError("Live monitor scheduler is not running")
        return self.scheduler

    def add_interval_job(
        self,
        func: Callable,
        job_id: str,
        seconds: int,
        kwargs: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        self._require_running().add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name or job_id,
            kwargs=kwargs or {},
            replace_existing=True,
            max_instances=1,
        )
        logger.info(f"📅 Scheduled: {name or job_id} (every {seconds}s)")

    def reschedule(self, job_id: str, seconds: int) -> bool:
        """Change a job's interval. Returns False if the job is gone."""
        if not self.running:
            return False
        try:
            self.scheduler.reschedule_job(job_id, trigger=IntervalTrigger(seconds=seconds))
        except JobLookupError:
            return False
        return True

    def remove_job(self, job_id: str) -> bool:
        if not self.running:
            return False
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            return False
        return True

    def has_job(self, job_id: str) -> bool:
        return self.running and self.scheduler.get_job(job_id) is not None

    def job_ids(self) -> List[str]:
        if not self.running:
            return []
        return [job.id for job in self.scheduler.get_jobs()]


# Global scheduler instance
_scheduler: Optional[LiveMonitorScheduler] = None


def start_scheduler() -> LiveMonitorScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = LiveMonitorScheduler()
        _scheduler.start()
    return _scheduler


def stop_scheduler() -> None:
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[LiveMonitorScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
