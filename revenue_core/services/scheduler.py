"""Periodic trigger for the auto-cancellation sweep."""

from __future__ import annotations

import time
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from revenue_core.services.cancellation_service import AutoCancellationPolicy
from revenue_core.utils.config import Settings, get_settings
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

SWEEP_JOB_ID = "auto_cancellation_sweep"


class CancellationSweepScheduler:
    """Runs the cancellation policy on a fixed interval in a background thread."""

    def __init__(
        self,
        policy: AutoCancellationPolicy,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._policy = policy
        self._scheduler = BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def run_sweep(self) -> None:
        """Run one sweep, logging failures without stopping the scheduler."""
        started = time.perf_counter()
        try:
            result = self._policy.run()
        except Exception:
            logger.exception("Scheduled cancellation sweep failed")
            return
        logger.info(
            "Scheduled cancellation sweep finished | cancelled=%s | errors=%s | duration_ms=%s",
            result.cancelled_count,
            len(result.errors),
            int((time.perf_counter() - started) * 1000),
        )

    def start(self) -> None:
        if self.running:
            return
        self._scheduler.add_job(
            self.run_sweep,
            trigger=IntervalTrigger(seconds=self._settings.cancellation_sweep_interval_seconds),
            id=SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Cancellation sweep scheduled every %s seconds",
            self._settings.cancellation_sweep_interval_seconds,
        )

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Cancellation sweep scheduler stopped")
