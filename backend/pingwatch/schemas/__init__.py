from pingwatch.schemas.target import TargetCreate, TargetResponse
from pingwatch.schemas.statistics import (
    StatisticsResponse, TargetStatistics, StatisticsListResponse,
    LatencyResponse, LossResponse, Timeseries, TimeseriesResponse, HistogramResponse,
)

__all__ = [
    "TargetCreate", "TargetResponse",
    "StatisticsResponse", "TargetStatistics", "StatisticsListResponse",
    "LatencyResponse", "LossResponse", "Timeseries", "TimeseriesResponse", "HistogramResponse",
]
