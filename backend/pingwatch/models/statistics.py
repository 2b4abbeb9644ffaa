"""Per-target running statistics model."""
from sqlalchemy import Column, BigInteger, String, Float
from pingwatch.database import Base


class Statistics(Base):
    """Latest statistics for one target, upserted once per probe."""
    __tablename__ = "statistics"

    target_uuid = Column(String(36), primary_key=True)
    state = Column(String(10), nullable=False)  # up, down
    sent = Column(BigInteger, nullable=False, default=0)
    recv = Column(BigInteger, nullable=False, default=0)
    last = Column(Float, default=0.0)
    loss = Column(BigInteger, nullable=False, default=0)
    sum = Column(Float, default=0.0)
    max = Column(Float, default=0.0)
    min = Column(Float, nullable=True)  # NULL until the first completed probe
    avg15m = Column(Float, default=0.0)
    avg6h = Column(Float, default=0.0)
    avg24h = Column(Float, default=0.0)
    timestamp = Column(BigInteger, nullable=False)  # epoch seconds
