"""
Alert Scheduler

Background loops for the stock alert subsystem:
1. stock_alert_check - evaluate every product (every ALERT_CHECK_INTERVAL_MINUTES)
2. alert_retention_cleanup - purge alerts resolved more than
   ALERT_RETENTION_DAYS ago (every ALERT_CLEANUP_INTERVAL_HOURS)

Each run opens its own session and records a heartbeat that /health reports.
A failed run is logged and counted; the loop keeps going.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from bikeshop_backend.core.config import settings
from bikeshop_backend.core.database import get_db_session
from bikeshop_backend.core.utils import utcnow
from bikeshop_backend.services.alert_service import AlertService

logger = logging.getLogger(__name__)

STARTUP_DELAY_SECONDS = 5


def _new_heartbeat() -> Dict[str, Any]:
    return {
        "last_run": None,
        "last_success": None,
        "records_processed": 0,
        "errors": 0,
    }


heartbeats: Dict[str, Dict[str, Any]] = {
    "stock_alert_check": _new_heartbeat(),
    "alert_retention_cleanup": _new_heartbeat(),
}


async def run_stock_alert_check() -> Dict[str, int]:
    """One evaluation pass over the catalog."""
    heartbeat = heartbeats["stock_alert_check"]
    heartbeat["last_run"] = utcnow().isoformat()

    try:
        async with get_db_session() as db:
            result = await AlertService(db).check_stock_levels()
    except Exception:
        heartbeat["errors"] += 1
        raise

    heartbeat["last_success"] = utcnow().isoformat()
    heartbeat["records_processed"] += result.products_checked
    heartbeat["errors"] += len(result.errors)

    return {
        "products_checked": result.products_checked,
        "alerts": len(result.alerts),
        "resolved": result.resolved_count,
        "errors": len(result.errors),
    }


async def run_alert_retention_cleanup(days_old: Optional[int] = None) -> Dict[str, int]:
    """Delete alerts resolved before the retention window."""
    if days_old is None:
        days_old = settings.ALERT_RETENTION_DAYS
    heartbeat = heartbeats["alert_retention_cleanup"]
    heartbeat["last_run"] = utcnow().isoformat()

    try:
        async with get_db_session() as db:
            deleted = await AlertService(db).cleanup_old_alerts(days_old)
    except Exception:
        heartbeat["errors"] += 1
        raise

    heartbeat["last_success"] = utcnow().isoformat()
    heartbeat["records_processed"] += deleted

    return {"deleted": deleted, "days_old": days_old}


class AlertScheduler:
    """
    Runs the alert jobs as asyncio tasks.

    Call start() from the application lifespan (or run_cron.py) and stop()
    on shutdown.
    """

    def __init__(self):
        self._tasks: List[asyncio.Task] = []
        self._running = False

    @property
    def jobs(self) -> Dict[str, Callable]:
        return {
            "stock_alert_check": run_stock_alert_check,
            "alert_retention_cleanup": run_alert_retention_cleanup,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start all scheduled jobs."""
        if self._running:
            logger.info("Alert scheduler already running")
            return

        self._running = True
        check_minutes = settings.ALERT_CHECK_INTERVAL_MINUTES
        cleanup_minutes = settings.ALERT_CLEANUP_INTERVAL_HOURS * 60

        self._tasks = [
            asyncio.create_task(
                self._run_job_loop("stock_alert_check", run_stock_alert_check, check_minutes)
            ),
            asyncio.create_task(
                self._run_job_loop("alert_retention_cleanup", run_alert_retention_cleanup, cleanup_minutes)
            ),
        ]

        logger.info(
            f"Alert scheduler started: stock_alert_check every {check_minutes} minutes, "
            f"alert_retention_cleanup every {settings.ALERT_CLEANUP_INTERVAL_HOURS} hours "
            f"(retention {settings.ALERT_RETENTION_DAYS} days)"
        )

    async def stop(self):
        """Stop all scheduled jobs."""
        self._running = False
        for task in self._tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Alert scheduler stopped")

    async def _run_job_loop(self, name: str, job_func, interval_minutes: int):
        """Run a job on a schedule."""
        interval_seconds = interval_minutes * 60

        # Initial delay so startup finishes before the first pass
        await asyncio.sleep(STARTUP_DELAY_SECONDS)

        while self._running:
            try:
                logger.info(f"Running {name}...")
                stats = await job_func()
                logger.info(f"Job {name} completed: {stats}")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Job {name} failed: {type(e).__name__}: {e}")

            logger.debug(f"Next {name} run in {interval_minutes} minutes")
            await asyncio.sleep(interval_seconds)

    async def run_job_now(self, job_name: str, **kwargs):
        """Manually trigger a job."""
        jobs = self.jobs
        if job_name not in jobs:
            raise ValueError(f"Unknown job: {job_name}. Available: {list(jobs.keys())}")

        logger.info(f"Manual trigger: {job_name}")
        return await jobs[job_name](**kwargs)


# Global scheduler instance
alert_scheduler = AlertScheduler()
