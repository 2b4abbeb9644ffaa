"""Probe scheduler and retention sweeper run together as one restartable unit."""
import asyncio
import logging
from typing import Optional
from pingwatch.config import Settings, settings
from pingwatch.services.prober import ping_target
from pingwatch.services.retention import RetentionSweeper
from pingwatch.services.scheduler import ProbeFunc, ProbeScheduler
from pingwatch.services.store import Store

logger = logging.getLogger(__name__)


class Monitor:
    def __init__(self, store: Store, cfg: Settings = settings, probe: ProbeFunc = ping_target):
        self.store = store
        self.cfg = cfg
        self.probe = probe
        self.scheduler: Optional[ProbeScheduler] = None
        self.sweeper: Optional[RetentionSweeper] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    async def start(self) -> None:
        async with self._lock:
            self._start()

    async def stop(self) -> None:
        async with self._lock:
            await self._stop()

    async def restart(self) -> None:
        """Tear everything down and start fresh components, e.g. on SIGHUP."""
        async with self._lock:
            logger.info("Restarting monitor")
            await self._stop()
            self._start()

    def _start(self) -> None:
        if self.scheduler is not None:
            return
        self.scheduler = ProbeScheduler.from_settings(self.store, self.cfg, probe=self.probe)
        self.sweeper = RetentionSweeper.from_settings(self.store, self.cfg)
        self.scheduler.start()
        self.sweeper.start()

    async def _stop(self) -> None:
        if self.scheduler is None:
            return
        # Stop both even if one fails
        results = await asyncio.gather(self.scheduler.stop(), self.sweeper.stop(), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Error while stopping monitor: %s", result)
        self.scheduler = None
        self.sweeper = None
