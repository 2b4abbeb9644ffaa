"""
Store
Persistence for targets, per-target statistics and the three probe event logs.
"""
import logging
import uuid as uuid_lib
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, Dict, List, Optional
from sqlalchemy import select, delete
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine
from pingwatch.database import make_session_factory
from pingwatch.models import Target, Statistics, LossEvent, LatencySample, HistogramBucket
from pingwatch.services.stats_calculator import StatsSnapshot

logger = logging.getLogger(__name__)

STATS_FIELDS = (
    "target_uuid", "state", "sent", "recv", "last", "loss", "sum", "max", "min",
    "avg15m", "avg6h", "avg24h", "timestamp",
)


class Store(ABC):
    """Everything the probing engine and the HTTP API need from storage."""

    # Targets
    @abstractmethod
    async def list_targets(self) -> List[Target]: ...

    @abstractmethod
    async def add_target(self, name: str, address: str, uuid: Optional[str] = None) -> Target: ...

    @abstractmethod
    async def get_target(self, uuid: str) -> Optional[Target]: ...

    @abstractmethod
    async def delete_target(self, uuid: str) -> bool: ...

    # Statistics
    @abstractmethod
    async def get_stats(self, uuid: str) -> Optional[StatsSnapshot]: ...

    @abstractmethod
    async def list_stats(self) -> List[StatsSnapshot]: ...

    @abstractmethod
    async def upsert_stats(self, stats: StatsSnapshot) -> None: ...

    # Event logs
    @abstractmethod
    async def append_loss(self, uuid: str, timestamp: int) -> None: ...

    @abstractmethod
    async def append_latency_sample(self, uuid: str, timestamp: int, latency: float) -> None: ...

    @abstractmethod
    async def increment_histogram_bucket(self, uuid: str, hour_timestamp: int, bucket: float) -> None: ...

    @abstractmethod
    async def get_losses(self, uuid: str) -> List[LossEvent]: ...

    @abstractmethod
    async def get_latency_samples(self, uuid: str) -> List[LatencySample]: ...

    @abstractmethod
    async def get_histogram(self, uuid: str) -> List[HistogramBucket]: ...

    # Retention
    @abstractmethod
    async def delete_losses_before(self, cutoff: int) -> int: ...

    @abstractmethod
    async def delete_latency_samples_before(self, cutoff: int) -> int: ...

    @abstractmethod
    async def delete_histogram_buckets_before(self, cutoff: int) -> int: ...


def _to_snapshot(row: Statistics) -> StatsSnapshot:
    return StatsSnapshot(**{f: getattr(row, f) for f in STATS_FIELDS})


class SqlStore(Store):
    """Store on an async SQLAlchemy engine (SQLite, MySQL/MariaDB or PostgreSQL).

    Every write is a single statement, so concurrent per-target writers need
    no locking on this side. The dialects differ only in upsert syntax.
    """

    def __init__(self, engine: AsyncEngine):
        self.dialect = engine.dialect.name
        if self.dialect not in ("sqlite", "mysql", "mariadb", "postgresql"):
            raise ValueError(f"Unsupported database dialect: {self.dialect}")
        self._session_factory = make_session_factory(engine)

    def _upsert(self, model, values: Dict[str, Any], keys: List[str], updates: Optional[Dict[str, Any]] = None):
        table = model.__table__
        if self.dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(table).values(**values)
            set_ = updates if updates is not None else {
                c: stmt.inserted[c] for c in values if c not in keys
            }
            return stmt.on_duplicate_key_update(**set_)

        insert = pg_insert if self.dialect == "postgresql" else sqlite_insert
        stmt = insert(table).values(**values)
        set_ = updates if updates is not None else {
            c: stmt.excluded[c] for c in values if c not in keys
        }
        return stmt.on_conflict_do_update(index_elements=keys, set_=set_)

    async def _execute(self, stmt) -> int:
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            count = result.rowcount or 0
            await db.commit()
        return count

    # Targets

    async def list_targets(self) -> List[Target]:
        async with self._session_factory() as db:
            result = await db.execute(select(Target).order_by(Target.created_at, Target.name))
            return list(result.scalars().all())

    async def add_target(self, name: str, address: str, uuid: Optional[str] = None) -> Target:
        target = Target(uuid=uuid or str(uuid_lib.uuid4()), name=name, address=address)
        async with self._session_factory() as db:
            db.add(target)
            await db.commit()
            await db.refresh(target)
        logger.info("Target added: %s (%s) %s", target.name, target.address, target.uuid)
        return target

    async def get_target(self, uuid: str) -> Optional[Target]:
        async with self._session_factory() as db:
            result = await db.execute(select(Target).where(Target.uuid == uuid))
            return result.scalar_one_or_none()

    async def delete_target(self, uuid: str) -> bool:
        """Delete a target with its statistics and event logs in one transaction."""
        async with self._session_factory() as db:
            result = await db.execute(delete(Target).where(Target.uuid == uuid))
            deleted = bool(result.rowcount)
            await db.execute(delete(Statistics).where(Statistics.target_uuid == uuid))
            await db.execute(delete(LossEvent).where(LossEvent.target_uuid == uuid))
            await db.execute(delete(LatencySample).where(LatencySample.target_uuid == uuid))
            await db.execute(delete(HistogramBucket).where(HistogramBucket.target_uuid == uuid))
            await db.commit()
        if deleted:
            logger.info("Target deleted: %s", uuid)
        return deleted

    # Statistics

    async def get_stats(self, uuid: str) -> Optional[StatsSnapshot]:
        async with self._session_factory() as db:
            result = await db.execute(select(Statistics).where(Statistics.target_uuid == uuid))
            row = result.scalar_one_or_none()
        return _to_snapshot(row) if row else None

    async def list_stats(self) -> List[StatsSnapshot]:
        async with self._session_factory() as db:
            result = await db.execute(select(Statistics))
            return [_to_snapshot(row) for row in result.scalars().all()]

    async def upsert_stats(self, stats: StatsSnapshot) -> None:
        await self._execute(self._upsert(Statistics, asdict(stats), ["target_uuid"]))

    # Event logs

    async def append_loss(self, uuid: str, timestamp: int) -> None:
        async with self._session_factory() as db:
            db.add(LossEvent(target_uuid=uuid, timestamp=timestamp))
            await db.commit()

    async def append_latency_sample(self, uuid: str, timestamp: int, latency: float) -> None:
        async with self._session_factory() as db:
            db.add(LatencySample(target_uuid=uuid, timestamp=timestamp, latency=latency))
            await db.commit()

    async def increment_histogram_bucket(self, uuid: str, hour_timestamp: int, bucket: float) -> None:
        stmt = self._upsert(
            HistogramBucket,
            {"target_uuid": uuid, "timestamp": hour_timestamp, "bucket": bucket, "count": 1},
            ["target_uuid", "timestamp", "bucket"],
            updates={"count": HistogramBucket.__table__.c["count"] + 1},
        )
        await self._execute(stmt)

    async def get_losses(self, uuid: str) -> List[LossEvent]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(LossEvent).where(LossEvent.target_uuid == uuid).order_by(LossEvent.timestamp)
            )
            return list(result.scalars().all())

    async def get_latency_samples(self, uuid: str) -> List[LatencySample]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(LatencySample)
                .where(LatencySample.target_uuid == uuid)
                .order_by(LatencySample.timestamp)
            )
            return list(result.scalars().all())

    async def get_histogram(self, uuid: str) -> List[HistogramBucket]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(HistogramBucket)
                .where(HistogramBucket.target_uuid == uuid)
                .order_by(HistogramBucket.timestamp, HistogramBucket.bucket)
            )
            return list(result.scalars().all())

    # Retention

    async def delete_losses_before(self, cutoff: int) -> int:
        return await self._execute(delete(LossEvent).where(LossEvent.timestamp < cutoff))

    async def delete_latency_samples_before(self, cutoff: int) -> int:
        return await self._execute(delete(LatencySample).where(LatencySample.timestamp < cutoff))

    async def delete_histogram_buckets_before(self, cutoff: int) -> int:
        return await self._execute(delete(HistogramBucket).where(HistogramBucket.timestamp < cutoff))
