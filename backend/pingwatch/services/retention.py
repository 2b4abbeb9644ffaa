"""
Retention sweeper
Prunes loss events, latency samples and histogram buckets older than the
retention horizon.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pingwatch.config import Settings, settings
from pingwatch.services.scheduler import drain_tasks
from pingwatch.services.store import Store

logger = logging.getLogger(__name__)


class RetentionSweeper:
    def __init__(
        self,
        store: Store,
        interval: float = 15 * 60,
        horizon: float = 3 * 24 * 60 * 60,
        drain_timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.interval = interval
        self.horizon = horizon
        self.drain_timeout = drain_timeout
        self.clock = clock
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, store: Store, cfg: Settings = settings) -> "RetentionSweeper":
        return cls(
            store,
            interval=cfg.RETENTION_SWEEP_INTERVAL_SECONDS,
            horizon=cfg.RETENTION_HORIZON_SECONDS,
            drain_timeout=cfg.SHUTDOWN_DRAIN_SECONDS,
        )

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._scheduled_sweep,
            "interval",
            seconds=self.interval,
            id="retention_sweep",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info("Retention sweeper started (every %ss, keeping %ss)", self.interval, self.horizon)

    async def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        # shutdown is deferred to the loop, let it run before draining
        await asyncio.sleep(0)
        if self._running is not None:
            await drain_tasks([self._running], self.drain_timeout, what="retention sweep")
            self._running = None
        logger.info("Retention sweeper stopped")

    async def _scheduled_sweep(self) -> None:
        if self._scheduler is None:
            return
        self._running = asyncio.current_task()
        try:
            await self.sweep()
        finally:
            self._running = None

    async def sweep(self) -> Dict[str, Optional[int]]:
        """Delete rows older than now minus the horizon.

        Each log is pruned independently; a failed kind is reported as None.
        """
        cutoff = int(self.clock() - self.horizon)
        jobs = (
            ("losses", self.store.delete_losses_before),
            ("latencies", self.store.delete_latency_samples_before),
            ("histograms", self.store.delete_histogram_buckets_before),
        )
        deleted: Dict[str, Optional[int]] = {}
        for name, delete_before in jobs:
            try:
                deleted[name] = await delete_before(cutoff)
            except Exception as e:
                logger.error("Retention sweep of %s failed: %s", name, e)
                deleted[name] = None

        logger.info(
            "Retention sweep before %s: %s",
            datetime.fromtimestamp(cutoff, timezone.utc).strftime("%Y-%m-%d %H:%M"),
            ", ".join(f"{k}={v if v is not None else 'failed'}" for k, v in deleted.items()),
        )
        return deleted
