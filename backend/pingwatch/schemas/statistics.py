from pydantic import BaseModel, Field
from typing import Any, List, Optional
from pingwatch.schemas.target import TargetResponse


class StatisticsResponse(BaseModel):
    target_uuid: str
    state: str = ""
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

    model_config = {"from_attributes": True}


class TargetStatistics(BaseModel):
    target: TargetResponse = Field(alias="Target")
    statistics: StatisticsResponse = Field(alias="Statistics")

    model_config = {"populate_by_name": True}


class StatisticsListResponse(BaseModel):
    targets: List[TargetStatistics]


class LatencyResponse(BaseModel):
    target_uuid: str
    timestamp: int
    latency: float

    model_config = {"from_attributes": True}


class LossResponse(BaseModel):
    target_uuid: str
    timestamp: int

    model_config = {"from_attributes": True}


class Timeseries(BaseModel):
    target: TargetResponse = Field(alias="Target")
    latencies: List[LatencyResponse] = Field(default_factory=list, alias="Latencies")
    losses: List[LossResponse] = Field(default_factory=list, alias="Losses")

    model_config = {"populate_by_name": True}


class TimeseriesResponse(BaseModel):
    response: Timeseries


class HistogramResponse(BaseModel):
    # [iso8601 hour, bucket, count]
    buckets: List[List[Any]]
