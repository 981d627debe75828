"""
Pinned policy model.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from controlroom.models.database import Base, utcnow


class PinnedPolicy(Base):
    """A policy a user keeps at hand."""

    __tablename__ = "pinned_policies"
    __table_args__ = (UniqueConstraint("user_id", "policy_id"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    policy_id: Mapped[str] = mapped_column(String(36), index=True)
    pinned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<PinnedPolicy(user_id={self.user_id}, policy_id={self.policy_id})>"
