import asyncio
from collections import deque

import pytest

from pingwatch.database import init_db, make_engine
from pingwatch.models import Target, LossEvent, LatencySample, HistogramBucket
from pingwatch.services.prober import ProbeOutcome
from pingwatch.services.store import SqlStore, Store


class FakeProber:
    """
    script: dict[address] -> list of ProbeOutcome (or exceptions to raise) returned in order.
    Once a script runs dry the default outcome is returned.
    """
    def __init__(self, script=None, default=None, delay=0.0):
        self.script = {k: deque(v) for k, v in (script or {}).items()}
        self.default = default or ProbeOutcome.completed(packet_loss=False, max_rtt_ms=10.0)
        self.delay = delay
        self.calls = []

    async def __call__(self, address: str, timeout: float) -> ProbeOutcome:
        self.calls.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        queue = self.script.get(address)
        if queue:
            item = queue.popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        return self.default


class FakeStore(Store):
    """In-memory store with switchable failures."""

    def __init__(self):
        self.targets = {}
        self.stats = {}
        self.losses = []
        self.latencies = []
        self.histograms = {}
        self.fail_get_stats = set()
        self.fail_list_targets = False
        self.fail_deletes = set()
        self.delete_calls = []

    def add(self, uuid, address, name=None):
        self.targets[uuid] = Target(uuid=uuid, name=name or uuid, address=address)
        return self.targets[uuid]

    async def list_targets(self):
        if self.fail_list_targets:
            raise RuntimeError("database unavailable")
        return list(self.targets.values())

    async def add_target(self, name, address, uuid=None):
        return self.add(uuid or f"uuid-{len(self.targets)}", address, name)

    async def get_target(self, uuid):
        return self.targets.get(uuid)

    async def delete_target(self, uuid):
        self.stats.pop(uuid, None)
        return self.targets.pop(uuid, None) is not None

    async def get_stats(self, uuid):
        if uuid in self.fail_get_stats:
            raise RuntimeError("read failed")
        return self.stats.get(uuid)

    async def list_stats(self):
        return list(self.stats.values())

    async def upsert_stats(self, stats):
        self.stats[stats.target_uuid] = stats

    async def append_loss(self, uuid, timestamp):
        self.losses.append(LossEvent(target_uuid=uuid, timestamp=timestamp))

    async def append_latency_sample(self, uuid, timestamp, latency):
        self.latencies.append(LatencySample(target_uuid=uuid, timestamp=timestamp, latency=latency))

    async def increment_histogram_bucket(self, uuid, hour_timestamp, bucket):
        key = (uuid, hour_timestamp, bucket)
        self.histograms[key] = self.histograms.get(key, 0) + 1

    async def get_losses(self, uuid):
        return [r for r in self.losses if r.target_uuid == uuid]

    async def get_latency_samples(self, uuid):
        return [r for r in self.latencies if r.target_uuid == uuid]

    async def get_histogram(self, uuid):
        return [
            HistogramBucket(target_uuid=u, timestamp=ts, bucket=b, count=c)
            for (u, ts, b), c in sorted(self.histograms.items())
            if u == uuid
        ]

    async def _delete(self, kind, cutoff):
        self.delete_calls.append((kind, cutoff))
        if kind in self.fail_deletes:
            raise RuntimeError(f"cannot prune {kind}")
        return 0

    async def delete_losses_before(self, cutoff):
        return await self._delete("losses", cutoff)

    async def delete_latency_samples_before(self, cutoff):
        return await self._delete("latencies", cutoff)

    async def delete_histogram_buckets_before(self, cutoff):
        return await self._delete("histograms", cutoff)


async def wait_until(predicate, timeout=3.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
async def sql_store(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'pingwatch-test.db'}")
    await init_db(engine)
    yield SqlStore(engine)
    await engine.dispose()
