"""APScheduler-based job scheduler.

Runs the price check and the weekly digest on fixed intervals inside the
API process. Deployments that call the cron endpoints from an external
scheduler leave this disabled (``SCHEDULER_ENABLED=false``).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricedrop.config import settings
from pricedrop.core.exceptions import PriceCheckError
from pricedrop.services.digest_service import DigestService
from pricedrop.services.notification_service import NotificationService
from pricedrop.services.price_check_service import JobSummary, PriceCheckService

logger = structlog.get_logger(__name__)

PRICE_CHECK_JOB_ID = "check_prices"
DIGEST_JOB_ID = "weekly_digest"


class PriceCheckScheduler:
    """Manages the periodic jobs.

    Each job opens its own session. ``max_instances=1`` keeps APScheduler
    from overlapping runs in this process; the database job lock covers
    other processes.
    """

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        notifier: Optional[NotificationService] = None,
    ):
        """Initialize the scheduler.

        Args:
            db_session_factory: Async session factory for database access
            notifier: Notification service shared by the jobs
        """
        self.db_session_factory = db_session_factory
        self.notifier = notifier or NotificationService()
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="scheduler")

    def start(self) -> None:
        """Register both jobs and start the scheduler."""
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return

        now = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self._run_price_check_wrapper,
            trigger=IntervalTrigger(
                minutes=settings.PRICE_CHECK_INTERVAL_MINUTES,
                start_date=now,
                timezone="UTC",
            ),
            id=PRICE_CHECK_JOB_ID,
            name="Check tracked product prices",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=now + timedelta(seconds=30),
        )
        self.scheduler.add_job(
            func=self._run_digest_wrapper,
            trigger=IntervalTrigger(
                days=settings.DIGEST_INTERVAL_DAYS,
                start_date=now,
                timezone="UTC",
            ),
            id=DIGEST_JOB_ID,
            name="Send weekly digest",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        self.logger.info(
            "scheduler_started",
            price_check_interval_minutes=settings.PRICE_CHECK_INTERVAL_MINUTES,
            digest_interval_days=settings.DIGEST_INTERVAL_DAYS,
        )

    def stop(self) -> None:
        """Stop the scheduler, waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    async def run_price_check(self) -> JobSummary:
        async with self.db_session_factory() as db:
            return await PriceCheckService(db, notifier=self.notifier).run()

    async def _run_price_check_wrapper(self) -> None:
        """APScheduler entry point; failures are logged, never raised."""
        try:
            summary = await self.run_price_check()
            self.logger.info("scheduled_price_check_finished", status=summary.status)
        except PriceCheckError as e:
            # JobRun 'failed' is already recorded by the service
            self.logger.error("scheduled_price_check_failed", error=str(e))
        except Exception as e:
            self.logger.error("scheduled_price_check_crashed", error=str(e), exc_info=True)

    async def _run_digest_wrapper(self) -> None:
        try:
            async with self.db_session_factory() as db:
                await DigestService(db, notifier=self.notifier).run(days=settings.DIGEST_INTERVAL_DAYS)
        except Exception as e:
            self.logger.error("scheduled_digest_failed", error=str(e), exc_info=True)

    def get_jobs_status(self) -> dict:
        """Next run time and trigger of each registered job."""
        jobs = {}
        for job in self.scheduler.get_jobs():
            jobs[job.id] = {
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running
