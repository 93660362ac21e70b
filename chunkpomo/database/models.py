"""SQLAlchemy ORM models for ChunkPomo."""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class KeyValue(Base):
    """One JSON document per storage key."""

    __tablename__ = "kv_entries"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    def __repr__(self) -> str:
        return f"<KeyValue key={self.key} updated={self.updated_at}>"
