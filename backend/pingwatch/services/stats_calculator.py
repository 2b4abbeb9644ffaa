"""
Statistics calculator
Pure functions that fold one probe outcome into a target's running statistics.
"""
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple, Union
from pingwatch.services.prober import ProbeOutcome

STATE_UP = "up"
STATE_DOWN = "down"

HOUR_SECONDS = 3600
BUCKET_PRECISION = 2


@dataclass(frozen=True)
class SmoothingFactors:
    """Per-tick decay factors of the three exponential moving averages."""
    short: float
    medium: float
    long: float

    @classmethod
    def for_interval(
        cls,
        interval: float,
        short_horizon: float = 15 * 60,
        medium_horizon: float = 6 * 60 * 60,
        long_horizon: float = 24 * 60 * 60,
    ) -> "SmoothingFactors":
        return cls(
            short=math.exp(-interval / short_horizon),
            medium=math.exp(-interval / medium_horizon),
            long=math.exp(-interval / long_horizon),
        )


@dataclass
class StatsSnapshot:
    target_uuid: str
    state: str = STATE_DOWN
    sent: int = 0
    recv: int = 0
    last: float = 0.0
    loss: int = 0
    sum: float = 0.0
    max: float = 0.0
    min: Optional[float] = None
    avg15m: float = 0.0
    avg6h: float = 0.0
    avg24h: float = 0.0
    timestamp: int = 0


@dataclass(frozen=True)
class LossEntry:
    target_uuid: str
    timestamp: int


@dataclass(frozen=True)
class LatencyEntry:
    target_uuid: str
    timestamp: int
    latency: float


@dataclass(frozen=True)
class HistogramEntry:
    target_uuid: str
    timestamp: int  # hour-aligned
    bucket: float


LogEntry = Union[LossEntry, LatencyEntry, HistogramEntry]


def exp_avg(current_avg: float, new_value: float, factor: float) -> float:
    return current_avg * factor + new_value * (1 - factor)


def round_half_away(value: float, precision: int = BUCKET_PRECISION) -> float:
    """Round half away from zero; ``round()`` would round half to even."""
    ratio = 10 ** precision
    return math.copysign(math.floor(abs(value) * ratio + 0.5), value) / ratio


def hour_floor(timestamp: int) -> int:
    return int(timestamp) // HOUR_SECONDS * HOUR_SECONDS


def next_min(previous: Optional[float], latency: float) -> Optional[float]:
    if previous is None:
        return latency
    # A zero reading never lowers an existing minimum
    if latency <= 0:
        return previous
    return min(previous, latency)


def apply_outcome(
    previous: Optional[StatsSnapshot],
    target_uuid: str,
    outcome: ProbeOutcome,
    factors: SmoothingFactors,
    now: int,
) -> Tuple[StatsSnapshot, List[LogEntry]]:
    """Return the next statistics for ``target_uuid`` and the log rows to append.

    ``previous`` is left untouched. ``None`` means the target has never been
    probed and starts from zeroed counters with no minimum.
    """
    stats = replace(previous) if previous is not None else StatsSnapshot(target_uuid=target_uuid)
    stats.target_uuid = target_uuid
    stats.sent += 1
    stats.timestamp = now
    entries: List[LogEntry] = []

    if outcome.unresolved:
        # Nothing was measured, latency fields stay as they were
        stats.loss += 1
        stats.state = STATE_DOWN
        entries.append(LossEntry(target_uuid, now))
        return stats, entries

    latency = outcome.max_rtt_ms
    if outcome.packet_loss:
        stats.loss += 1
        stats.state = STATE_DOWN
        entries.append(LossEntry(target_uuid, now))
    else:
        stats.recv += 1
        stats.state = STATE_UP
        entries.append(LatencyEntry(target_uuid, now, latency))
        entries.append(HistogramEntry(target_uuid, hour_floor(now), round_half_away(latency)))

    stats.last = latency
    stats.sum += latency
    stats.max = max(stats.max, latency)
    stats.min = next_min(stats.min, latency)
    stats.avg15m = exp_avg(stats.avg15m, latency, factors.short)
    stats.avg6h = exp_avg(stats.avg6h, latency, factors.medium)
    stats.avg24h = exp_avg(stats.avg24h, latency, factors.long)
    return stats, entries
