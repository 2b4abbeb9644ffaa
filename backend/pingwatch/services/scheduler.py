"""
Probe scheduler
Sweeps every target on a fixed interval, probing each one concurrently and
folding the outcome into its statistics.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Tuple
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pingwatch.config import Settings, settings
from pingwatch.services.prober import ProbeOutcome, ProbeTransportError, ping_target
from pingwatch.services.stats_calculator import (
    HistogramEntry, LatencyEntry, LogEntry, LossEntry, SmoothingFactors, StatsSnapshot, apply_outcome,
)
from pingwatch.services.store import Store

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[str, float], Awaitable[ProbeOutcome]]


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


async def drain_tasks(tasks: Iterable[asyncio.Task], timeout: float, what: str = "task") -> None:
    """Give ``tasks`` up to ``timeout`` seconds to finish, then cancel the rest and wait for them."""
    current = asyncio.current_task()
    pending = {t for t in tasks if t is not current and not t.done()}
    if not pending:
        return
    _, pending = await asyncio.wait(pending, timeout=timeout)
    if pending:
        logger.warning("Cancelling %d %s(s) still running after %.1fs", len(pending), what, timeout)
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)


class ProbeScheduler:
    """Owns the probe cadence and the per-target probe-and-update tasks.

    Sweeps never wait for the previous sweep's probes, so ticks may overlap and
    two updates of the same target can race; the statistics upsert is
    last-writer-wins.
    """

    def __init__(
        self,
        store: Store,
        probe: ProbeFunc = ping_target,
        interval: float = 15,
        timeout: float = 10.0,
        horizons: Tuple[float, float, float] = (15 * 60, 6 * 60 * 60, 24 * 60 * 60),
        drain_timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
    ):
        if timeout >= interval:
            raise ValueError("probe timeout must be shorter than the probe interval")
        self.store = store
        self.probe = probe
        self.interval = interval
        self.timeout = timeout
        self.drain_timeout = drain_timeout
        self.clock = clock
        # Fixed for the scheduler's lifetime
        self.factors = SmoothingFactors.for_interval(interval, *horizons)
        self.state = SchedulerState.STOPPED
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, store: Store, cfg: Settings = settings, probe: ProbeFunc = ping_target) -> "ProbeScheduler":
        return cls(
            store,
            probe=probe,
            interval=cfg.PROBE_INTERVAL_SECONDS,
            timeout=cfg.PROBE_TIMEOUT_SECONDS,
            horizons=(
                cfg.AVG_SHORT_HORIZON_SECONDS,
                cfg.AVG_MEDIUM_HORIZON_SECONDS,
                cfg.AVG_LONG_HORIZON_SECONDS,
            ),
            drain_timeout=cfg.SHUTDOWN_DRAIN_SECONDS,
        )

    @property
    def in_flight(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def start(self) -> None:
        """Begin sweeping: once right away, then every ``interval`` seconds."""
        if self.state is not SchedulerState.STOPPED:
            return
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._scheduled_sweep,
            "interval",
            seconds=self.interval,
            id="probe_sweep",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        self.state = SchedulerState.RUNNING
        logger.info("Probe scheduler started (interval %ss, timeout %ss)", self.interval, self.timeout)

    def reload(self) -> None:
        # Reload is handled one level up by restarting the whole monitor
        logger.debug("Probe scheduler reload requested, nothing to do")

    async def stop(self) -> None:
        """Stop sweeping and return once every spawned task has finished or been cancelled."""
        if self.state is not SchedulerState.RUNNING:
            return
        self.state = SchedulerState.STOPPING
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        # shutdown is deferred to the loop, let it run before draining
        await asyncio.sleep(0)
        await drain_tasks(list(self._tasks), self.drain_timeout, what="probe task")
        self._tasks.clear()
        self.state = SchedulerState.STOPPED
        logger.info("Probe scheduler stopped")

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _scheduled_sweep(self) -> None:
        if self.state is not SchedulerState.RUNNING:
            return
        self._track(asyncio.current_task())
        await self.run_sweep()

    async def run_sweep(self) -> List[asyncio.Task]:
        """Launch one probe-and-update task per target and return them without waiting."""
        try:
            targets = await self.store.list_targets()
        except Exception as e:
            logger.warning("Sweep skipped, cannot list targets: %s", e)
            return []

        if not targets:
            logger.debug("No targets configured")
            return []
        if self.state is SchedulerState.STOPPING:
            return []

        tasks = []
        for target in targets:
            task = asyncio.create_task(
                self.probe_and_update(target.uuid, target.address),
                name=f"probe-{target.uuid}",
            )
            self._track(task)
            tasks.append(task)
        logger.debug("Sweep dispatched %d probe(s)", len(tasks))
        return tasks

    async def probe_and_update(self, uuid: str, address: str) -> Optional[StatsSnapshot]:
        """Probe one target and write back its statistics and log rows."""
        if self.state is SchedulerState.STOPPING:
            return None

        try:
            outcome = await self.probe(address, self.timeout)
        except ProbeTransportError as e:
            logger.error("Probe transport error for %s: %s", address, e)
            outcome = ProbeOutcome.resolution_failure()
        except Exception as e:
            logger.error("Probe failed for %s: %s", address, e, exc_info=True)
            outcome = ProbeOutcome.resolution_failure()

        if outcome.unresolved:
            logger.debug("Cannot resolve %s, counted as loss", address)
        elif outcome.packet_loss:
            logger.debug("Packet loss for %s", address)

        try:
            previous = await self.store.get_stats(uuid)
            stats, entries = apply_outcome(previous, uuid, outcome, self.factors, int(self.clock()))
            await self.store.upsert_stats(stats)
            await self._append_entries(entries)
        except Exception as e:
            logger.warning("Statistics update failed for %s (%s): %s", address, uuid, e)
            return None
        return stats

    async def _append_entries(self, entries: List[LogEntry]) -> None:
        for entry in entries:
            if isinstance(entry, LossEntry):
                await self.store.append_loss(entry.target_uuid, entry.timestamp)
            elif isinstance(entry, LatencyEntry):
                await self.store.append_latency_sample(entry.target_uuid, entry.timestamp, entry.latency)
            elif isinstance(entry, HistogramEntry):
                await self.store.increment_histogram_bucket(entry.target_uuid, entry.timestamp, entry.bucket)
