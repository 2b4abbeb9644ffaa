from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException
from pingwatch.extensions import get_store
from pingwatch.schemas.statistics import (
    HistogramResponse, LatencyResponse, LossResponse, StatisticsListResponse, StatisticsResponse,
    TargetStatistics, Timeseries, TimeseriesResponse,
)
from pingwatch.schemas.target import TargetResponse
from pingwatch.services.store import Store

router = APIRouter(prefix="/api", tags=["Statistics"])


@router.get("/statistics", response_model=StatisticsListResponse)
async def get_statistics(store: Store = Depends(get_store)):
    """Every target with its latest statistics; never-probed targets get zeroed ones."""
    targets = await store.list_targets()
    stats_by_uuid = {s.target_uuid: s for s in await store.list_stats()}

    result = []
    for target in targets:
        stats = stats_by_uuid.get(target.uuid)
        result.append(TargetStatistics(
            target=TargetResponse.model_validate(target),
            statistics=(
                StatisticsResponse.model_validate(stats)
                if stats else StatisticsResponse(target_uuid=target.uuid)
            ),
        ))
    return StatisticsListResponse(targets=result)


@router.get("/timeseries/{uuid}", response_model=TimeseriesResponse)
async def get_timeseries(uuid: str, store: Store = Depends(get_store)):
    target = await store.get_target(uuid)
    if not target:
        raise HTTPException(status_code=404, detail="Target not found")

    return TimeseriesResponse(response=Timeseries(
        target=TargetResponse.model_validate(target),
        latencies=[LatencyResponse.model_validate(r) for r in await store.get_latency_samples(uuid)],
        losses=[LossResponse.model_validate(r) for r in await store.get_losses(uuid)],
    ))


@router.get("/histograms/{uuid}", response_model=HistogramResponse)
async def get_histogram(uuid: str, store: Store = Depends(get_store)):
    rows = await store.get_histogram(uuid)
    buckets = [
        [datetime.fromtimestamp(r.timestamp, timezone.utc).isoformat(), r.bucket, r.count]
        for r in rows
    ]
    return HistogramResponse(buckets=buckets)
