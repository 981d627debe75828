"""
Policy signature model.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from controlroom.models.database import Base, utcnow


class PolicySignature(Base):
    """A user's acknowledgement of a policy that requires a signature."""

    __tablename__ = "policy_signatures"
    __table_args__ = (UniqueConstraint("policy_id", "user_id"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # Plain reference so signatures survive policy deletion
    policy_id: Mapped[str] = mapped_column(String(36), index=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    name: Mapped[str] = mapped_column(String(200))
    signed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<PolicySignature(policy_id={self.policy_id}, user_id={self.user_id})>"
