"""Background refresh of the admin dashboard statistics."""

from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.admin_handlers import refresh_dashboard_stats
from src.utils.logger import scheduler_logger


STATS_REFRESH_SECONDS = 30


class AdminStatsScheduler:
    """Keeps the cached dashboard stats at most 30 seconds old."""

    def __init__(self, interval_seconds: int = STATS_REFRESH_SECONDS):
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.is_running = False
        self.last_refresh: Optional[datetime] = None

    async def refresh(self):
        try:
            stats = await refresh_dashboard_stats()
            self.last_refresh = datetime.now()
            scheduler_logger.debug(
                f"⏰ Stats refreshed: {stats.total_shipments} shipments, "
                f"{stats.pending_approvals} awaiting approval"
            )
        except Exception as e:
            # next tick retries; the endpoint falls back to a live query
            scheduler_logger.error(f"❌ Stats refresh failed: {e}")

    def start(self):
        if self.is_running:
            scheduler_logger.warning("⚠️ Stats scheduler is already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.refresh,
            IntervalTrigger(seconds=self.interval_seconds),
            id="admin_stats_refresh",
            name="Admin dashboard stats refresh",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            next_run_time=datetime.now(),
        )
        self.scheduler.start()
        self.is_running = True
        scheduler_logger.info(
            f"⏰ Stats scheduler started (every {self.interval_seconds}s)"
        )

    def stop(self):
        if self.scheduler and self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            scheduler_logger.info("⏰ Stats scheduler stopped")

    def get_status(self) -> dict:
        jobs = self.scheduler.get_jobs() if self.scheduler else []
        return {
            "is_running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
            "next_run": jobs[0].next_run_time.isoformat() if jobs and jobs[0].next_run_time else None,
        }


admin_stats_scheduler = AdminStatsScheduler()


def start_stats_scheduler():
    admin_stats_scheduler.start()


def stop_stats_scheduler():
    admin_stats_scheduler.stop()
