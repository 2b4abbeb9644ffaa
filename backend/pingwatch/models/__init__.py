from pingwatch.models.target import Target
from pingwatch.models.statistics import Statistics
from pingwatch.models.events import LossEvent, LatencySample, HistogramBucket

__all__ = [
    "Target",
    "Statistics",
    "LossEvent", "LatencySample", "HistogramBucket",
]
