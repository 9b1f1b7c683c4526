"""Key-Value Entry ORM - one durable palette storage slot.

Invariants:
    - key is the primary key (namespaced by the caller, e.g. "<profile>:recent-searches")
    - value is any JSON-serializable document
    - updated_at refreshed on every write
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from palette.db.base import Base


class KeyValueEntry(Base):
    """Durable storage slot for history data."""
    __tablename__ = "palette_kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
