"""Append-only probe event logs, pruned by the retention sweeper."""
from sqlalchemy import Column, Integer, BigInteger, String, Float, Index, UniqueConstraint
from pingwatch.database import Base


class LossEvent(Base):
    __tablename__ = "losses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    target_uuid = Column(String(36), nullable=False)
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("ix_losses_target_ts", "target_uuid", "timestamp"),
        Index("ix_losses_ts", "timestamp"),
    )


class LatencySample(Base):
    __tablename__ = "latencies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    target_uuid = Column(String(36), nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    latency = Column(Float, nullable=False)  # ms

    __table_args__ = (
        Index("ix_latencies_target_ts", "target_uuid", "timestamp"),
        Index("ix_latencies_ts", "timestamp"),
    )


class HistogramBucket(Base):
    """Hourly latency histogram counter, one row per (target, hour, bucket)."""
    __tablename__ = "histograms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    target_uuid = Column(String(36), nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # hour-aligned epoch seconds
    bucket = Column(Float, nullable=False)           # latency rounded to 2 decimals
    count = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("target_uuid", "timestamp", "bucket", name="uq_histograms_key"),
        Index("ix_histograms_ts", "timestamp"),
    )
