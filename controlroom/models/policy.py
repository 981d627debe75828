"""
Policy models: live policy records and the deleted-policy archive.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import String, Text, Integer, Boolean, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from controlroom.models.database import Base, TimestampMixin, utcnow


class PolicyStatus(str, Enum):
    """Policy lifecycle states."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    ARCHIVED = "archived"


class PolicyFieldsMixin:
    """Columns shared by live and deleted policies."""

    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(String(500), default="")
    content: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(50), index=True)
    organization: Mapped[str] = mapped_column(String(100), default="all")
    status: Mapped[PolicyStatus] = mapped_column(
        SQLEnum(PolicyStatus), default=PolicyStatus.DRAFT, index=True
    )
    # JSON columns are always reassigned, never mutated in place
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    assigned_users: Mapped[list[str]] = mapped_column(JSON, default=list)
    pending_changes: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    require_signature: Mapped[bool] = mapped_column(Boolean, default=False)
    views: Mapped[int] = mapped_column(Integer, default=0)
    created_by: Mapped[str] = mapped_column(String(36), index=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)


class Policy(PolicyFieldsMixin, TimestampMixin, Base):
    """A managed policy document."""

    __tablename__ = "policies"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Every UPDATE is guarded by the previous version
    __mapper_args__ = {"version_id_col": version}

    @property
    def has_pending_changes(self) -> bool:
        return bool(self.pending_changes)

    def __repr__(self) -> str:
        return f"<Policy(id={self.id}, title={self.title!r}, status={self.status.value})>"


class DeletedPolicy(PolicyFieldsMixin, Base):
    """Snapshot of a policy taken when it is deleted."""

    __tablename__ = "deleted_policies"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    original_policy_id: Mapped[str] = mapped_column(String(36), index=True)
    version: Mapped[int] = mapped_column(Integer, default=1)
    original_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    deleted_by: Mapped[str] = mapped_column(String(36))
    deleted_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<DeletedPolicy(id={self.id}, original={self.original_policy_id})>"
