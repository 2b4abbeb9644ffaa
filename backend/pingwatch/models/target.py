from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from pingwatch.database import Base


class Target(Base):
    """A monitored network endpoint."""
    __tablename__ = "targets"

    uuid = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)  # IP or hostname
    created_at = Column(DateTime(timezone=True), server_default=func.now())
