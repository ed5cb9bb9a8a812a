"""SQLAlchemy models for Abacus Academy progress persistence."""
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, JSON
from abacus_academy.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snapshot(Base):
    """Durable subset of the progress store, serialized as one JSON document."""
    __tablename__ = "snapshots"

    key = Column(Text, primary_key=True)  # e.g., "abacus_academy_state"
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
