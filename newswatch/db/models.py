from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from .session import Base


class StoredValue(Base):
    """One opaque string value per key (token, profile JSON, flow state)."""
    __tablename__ = "stored_values"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
