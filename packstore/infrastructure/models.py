"""SQLAlchemy models for database tables.

Provides the ORM model for durable cart records.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String

from packstore.infrastructure.database import Base


# ============================================================================
# Cart Models
# ============================================================================


class CartModel(Base):
    """Durable cart record.

    One row per actor key. Lines are stored as a JSON array of
    serialized cart items; the row is deleted when the cart empties.
    """

    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    actor_key = Column(String(255), nullable=False, unique=True, index=True)
    items = Column(JSON, nullable=False, default=list)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "actor_key": self.actor_key,
            "items": self.items,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
