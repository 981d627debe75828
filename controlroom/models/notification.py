"""
Notification model.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import String, DateTime, Boolean, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from controlroom.models.database import Base, utcnow


class NotificationType(str, Enum):
    """Why a notification was sent."""

    POLICY_ASSIGNED = "policy_assigned"
    POLICY_PUBLISHED = "policy_published"
    POLICY_UPDATED = "policy_updated"


class Notification(Base):
    """In-app notification. Append-only; only is_read ever changes."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    # Plain reference so notifications survive policy deletion
    policy_id: Mapped[str] = mapped_column(String(36), index=True)
    type: Mapped[NotificationType] = mapped_column(SQLEnum(NotificationType))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(String(500))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user_id={self.user_id}, "
            f"type={self.type.value}, is_read={self.is_read})>"
        )
