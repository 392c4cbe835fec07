"""Scheduled sweep that queues stale catalog products for reclassification."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from .db import CatalogDB
from .models import utcnow
from .worker import ReclassificationWorker

logger = logging.getLogger(__name__)


class CatalogSweepScheduler:
    """Periodically feeds stale products into the reclassification queue.

    Uses APScheduler for cron-based scheduling.
    """

    def __init__(
        self,
        config,
        catalog: CatalogDB,
        worker: ReclassificationWorker,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize scheduler with a GlutenPeekConfig.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.cron import CronTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install 'glutenpeek[scheduler]'"
            )

        self._config = config
        self._catalog = catalog
        self._worker = worker
        self._clock = clock
        self._scheduler = AsyncIOScheduler()
        self._CronTrigger = CronTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register scheduled jobs based on config."""
        if not self._config.scheduler.enabled:
            logger.info("Stale sweep disabled; no jobs registered")
            return
        schedule = self._config.scheduler.sweep_schedule
        self._scheduler.add_job(
            self._job_sweep_stale,
            trigger=self._parse_cron(schedule),
            id="sweep_stale",
            name="Stale gluten status sweep",
            replace_existing=True,
        )
        logger.info("Registered stale sweep job: %s", schedule)

    def start(self) -> None:
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started")

    def stop(self) -> None:
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    def _parse_cron(self, expr: str):
        """Parse a 5-field cron expression into a CronTrigger."""
        parts = expr.split()
        if len(parts) == 5:
            return self._CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
            )
        raise ValueError(f"Invalid cron expression: {expr}")

    async def _job_sweep_stale(self) -> int:
        """Queue up to sweep_limit stale products. Returns the number queued."""
        logger.info("Running stale status sweep...")
        queued = 0
        try:
            cutoff = self._clock() - timedelta(
                days=self._config.classification.stale_after_days
            )
            products = self._catalog.list_stale(
                cutoff, limit=self._config.scheduler.sweep_limit
            )
            for product in products:
                if self._worker.submit(product.barcode):
                    queued += 1
            logger.info("Queued %d of %d stale products", queued, len(products))
        except Exception:
            logger.exception("Stale status sweep failed")
        return queued
