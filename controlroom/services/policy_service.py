"""
Policy service: the policy lifecycle applied to the record store.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, List

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from controlroom.config import PolicyRulesConfig
from controlroom.models.notification import Notification
from controlroom.models.pin import PinnedPolicy
from controlroom.models.policy import Policy, PolicyStatus, DeletedPolicy
from controlroom.models.user import User
from controlroom.services import lifecycle, queries
from controlroom.services.errors import (
    AssignmentRequiredError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from controlroom.services.notification_service import NotificationService
from controlroom.services.user_service import UserService
from controlroom.utils.pagination import Page, normalize_page


logger = logging.getLogger(__name__)


class PolicyAction(str, Enum):
    """Explicit lifecycle actions accepted by update_policy."""

    PUBLISH = "publish"
    ARCHIVE = "archive"
    DISCARD_CHANGES = "discard_changes"


SNAPSHOT_FIELDS = lifecycle.EDITABLE_FIELDS + (
    "status",
    "assigned_users",
    "pending_changes",
    "views",
    "created_by",
    "updated_by",
)


class PolicyService:
    """Service for managing policies."""

    def __init__(self, session: AsyncSession, rules: Optional[PolicyRulesConfig] = None):
        self.session = session
        self.rules = rules or PolicyRulesConfig()
        self.users = UserService(session, self.rules)
        self.notifications = NotificationService(session)

    # ============== Create ==============

    async def create_policy(
        self,
        fields: dict[str, Any],
        actor: User,
        assigned_users: Optional[List[str]] = None,
        publish: bool = False,
    ) -> Policy:
        """
        Create a policy.

        Admins may publish directly. Non-admins always create a draft, which
        must have at least one admin assigned; the creator is assigned too.

        Raises:
            PermissionDeniedError: Non-admin asked to publish
            ValidationError: Missing or invalid fields
            NotFoundError: Unknown assigned user id
            AssignmentRequiredError: Non-admin draft without an admin assignee
        """
        if publish and not actor.is_admin:
            raise PermissionDeniedError("Only admins can publish policies")

        values = {
            "title": "",
            "description": "",
            "content": "",
            "category": "",
            "organization": "",
            "tags": [],
            "attachments": [],
            "require_signature": False,
        }
        values.update(lifecycle.normalize_fields(fields))
        values["attachments"] = self._stamp_attachments(values["attachments"], actor)
        lifecycle.validate_policy_fields(values, self.rules)

        assigned = await self._resolve_assignees(assigned_users or [], actor)

        status = PolicyStatus.ACTIVE if publish else PolicyStatus.DRAFT
        policy = Policy(
            **values,
            status=status,
            assigned_users=assigned,
            created_by=actor.id,
            updated_by=actor.id,
        )
        self.session.add(policy)
        await self.session.commit()
        await self.session.refresh(policy)

        logger.info(f"Policy {policy.id} created as {status.value} by {actor.email}")

        if status == PolicyStatus.ACTIVE:
            await self._notify(policy, self.notifications.notify_published(policy, actor))

        return policy

    # ============== Read ==============

    async def get_policy(self, policy_id: str, actor: User) -> Policy:
        """
        Raises:
            NotFoundError: No such policy
            PermissionDeniedError: Actor may not see it
        """
        policy = await self._load(policy_id)
        if not lifecycle.can_view(policy, actor):
            raise PermissionDeniedError("Access denied")
        return policy

    async def list_policies(
        self,
        actor: User,
        status: Optional[PolicyStatus] = None,
        category: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> List[Policy]:
        """Policies visible to the actor, newest first."""
        query = select(Policy).where(queries.visible_to(actor, self.dialect))

        if status is not None:
            query = query.where(Policy.status == status)
        if category:
            query = query.where(Policy.category == category)
        if organization:
            query = query.where(Policy.organization == organization)

        query = query.order_by(Policy.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_assigned(self, actor: User) -> List[Policy]:
        """Unarchived policies the actor is assigned to, most recently updated first."""
        result = await self.session.execute(
            select(Policy)
            .where(
                Policy.status != PolicyStatus.ARCHIVED,
                queries.assigned_to(actor, self.dialect),
            )
            .order_by(Policy.updated_at.desc())
        )
        return list(result.scalars().all())

    async def track_view(self, policy_id: str, actor: User) -> int:
        """
        Count a view of a published policy.

        Returns:
            The view count after this call.
        """
        policy = await self.get_policy(policy_id, actor)

        if policy.status == PolicyStatus.ACTIVE:
            # Core UPDATE: no revision bump, no updated_at change
            await self.session.execute(
                update(Policy)
                .where(Policy.id == policy_id)
                .values(views=Policy.views + 1, updated_at=Policy.updated_at)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
            await self.session.refresh(policy)

        return policy.views

    # ============== Update ==============

    async def update_policy(
        self,
        policy_id: str,
        fields: dict[str, Any],
        actor: User,
        action: Optional[PolicyAction] = None,
        assigned_users: Optional[List[str]] = None,
        expected_version: Optional[int] = None,
    ) -> Policy:
        """
        Update a policy.

        Without an action, edits to an active policy are staged in
        pending_changes and the live fields stay untouched; edits to a draft
        or pending-review policy are applied directly. The publish action
        merges staged and supplied changes into the live record.

        Raises:
            NotFoundError: No such policy or assigned user
            PermissionDeniedError: Actor may not edit, or non-admin publish/archive
            ValidationError: Invalid fields or status transition
            AssignmentRequiredError: Non-admin left a draft without an admin
            ConflictError: expected_version is stale or a concurrent write won
        """
        policy = await self._load(policy_id)

        if not lifecycle.can_edit(policy, actor):
            raise PermissionDeniedError("Insufficient permissions to edit this policy")

        if expected_version is not None and expected_version != policy.version:
            raise ConflictError(
                "Policy was modified by someone else; reload and try again",
                field="version",
            )

        changes = lifecycle.normalize_fields(fields)
        if "attachments" in changes:
            changes["attachments"] = self._stamp_attachments(changes["attachments"], actor)

        if assigned_users is not None:
            policy.assigned_users = await self._resolve_assignees(
                assigned_users, actor, policy.status
            )

        was_active = policy.status == PolicyStatus.ACTIVE
        emit = None

        if action == PolicyAction.PUBLISH:
            emit = self._publish(policy, changes, actor, was_active)
        elif action == PolicyAction.ARCHIVE:
            self._require_admin(actor, "Only admins can archive policies")
            lifecycle.check_transition(policy.status, PolicyStatus.ARCHIVED)
            policy.status = PolicyStatus.ARCHIVED
        elif action == PolicyAction.DISCARD_CHANGES:
            policy.pending_changes = None
        elif policy.status == PolicyStatus.ACTIVE:
            staged = lifecycle.stage_changes(policy, changes)
            merged = lifecycle.live_values(policy)
            merged.update(staged or {})
            lifecycle.validate_policy_fields(merged, self.rules)
            policy.pending_changes = staged
        elif policy.status == PolicyStatus.ARCHIVED:
            raise ValidationError(
                "Archived policies cannot be edited; publish to restore", field="status"
            )
        else:
            values = lifecycle.live_values(policy)
            values.update(changes)
            lifecycle.validate_policy_fields(values, self.rules)
            self._apply(policy, values)

        policy.updated_by = actor.id
        await self._commit_guarded(policy)

        logger.info(
            f"Policy {policy.id} updated by {actor.email} "
            f"(action={action.value if action else 'edit'}, status={policy.status.value})"
        )

        if emit is not None:
            await self._notify(policy, emit(policy, actor))

        return policy

    def _publish(
        self, policy: Policy, changes: dict[str, Any], actor: User, was_active: bool
    ) -> Optional[Callable[[Policy, User], Awaitable[List[Notification]]]]:
        """Merge staged and supplied changes into the live record and go active."""
        self._require_admin(actor, "Only admins can publish policies")
        lifecycle.check_transition(policy.status, PolicyStatus.ACTIVE)

        before = lifecycle.live_values(policy)
        values = lifecycle.effective_values(policy)
        values.update(changes)
        lifecycle.validate_policy_fields(values, self.rules)

        self._apply(policy, values)
        policy.pending_changes = None
        policy.status = PolicyStatus.ACTIVE

        if not was_active:
            return self.notifications.notify_published
        if values != before:
            return self.notifications.notify_updated
        return None

    # ============== Review routing ==============

    async def assign_for_review(
        self, policy_id: str, admin_ids: List[str], actor: User
    ) -> tuple[Policy, List[Notification]]:
        """
        Submit a draft for review by one or more admins.

        Returns:
            Tuple of (policy, notifications). One notification per distinct admin id.

        Raises:
            ValidationError: Empty admin list, non-admin id, or wrong status
            NotFoundError: No such policy or user
            PermissionDeniedError: Actor is not an admin, the creator, or assigned
        """
        admin_ids = list(dict.fromkeys(admin_ids or []))
        if not admin_ids:
            raise ValidationError("Admin IDs array is required", field="admin_ids")

        policy = await self._load(policy_id)

        if not lifecycle.can_edit(policy, actor):
            raise PermissionDeniedError(
                "Insufficient permissions to assign this policy for review"
            )

        if policy.status not in (PolicyStatus.DRAFT, PolicyStatus.PENDING_REVIEW):
            raise ValidationError(
                "Only draft policies can be assigned for review", field="status"
            )

        admins = await self.users.get_users(admin_ids, field="admin_ids")
        if not all(user.is_admin for user in admins):
            raise ValidationError("One or more users are not admin users", field="admin_ids")

        lifecycle.check_transition(policy.status, PolicyStatus.PENDING_REVIEW)
        policy.assigned_users = lifecycle.merge_assignees(policy.assigned_users, admin_ids)
        policy.status = PolicyStatus.PENDING_REVIEW
        policy.updated_by = actor.id
        await self._commit_guarded(policy)

        logger.info(f"Policy {policy.id} submitted for review to {len(admin_ids)} admin(s)")

        notifications = await self._notify(
            policy, self.notifications.notify_assigned_for_review(policy, admin_ids, actor)
        )
        return policy, notifications

    # ============== Pins ==============

    async def pin_policy(self, policy_id: str, actor: User) -> PinnedPolicy:
        """
        Pin a visible policy for the actor. Pinning twice keeps the first pin.

        Raises:
            NotFoundError: No such policy
            PermissionDeniedError: Actor may not see it
        """
        await self.get_policy(policy_id, actor)

        existing = await self._load_pin(policy_id, actor)
        if existing is not None:
            return existing

        pin = PinnedPolicy(user_id=actor.id, policy_id=policy_id)
        self.session.add(pin)
        try:
            await self.session.commit()
        except IntegrityError:
            # Concurrent pin from another request
            await self.session.rollback()
            return await self._load_pin(policy_id, actor)

        await self.session.refresh(pin)
        logger.info(f"Policy {policy_id} pinned by {actor.email}")
        return pin

    async def unpin_policy(self, policy_id: str, actor: User) -> bool:
        """
        Returns:
            True if a pin was removed.
        """
        result = await self.session.execute(
            delete(PinnedPolicy).where(
                PinnedPolicy.user_id == actor.id,
                PinnedPolicy.policy_id == policy_id,
            )
        )
        await self.session.commit()
        return result.rowcount > 0

    async def list_pinned(self, actor: User, limit: Optional[int] = None) -> tuple[List[Policy], int]:
        """
        Pinned policies the actor can still see, most recently pinned first.

        Pins on deleted policies are kept and reappear if the policy is restored.

        Returns:
            Tuple of (policies, total pinned and visible).
        """
        query = (
            select(Policy)
            .join(PinnedPolicy, PinnedPolicy.policy_id == Policy.id)
            .where(
                PinnedPolicy.user_id == actor.id,
                queries.visible_to(actor, self.dialect),
            )
        )

        total_result = await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )

        query = query.order_by(PinnedPolicy.pinned_at.desc())
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)

        return list(result.scalars().all()), total_result.scalar() or 0

    # ============== Delete / restore ==============

    async def delete_policy(self, policy_id: str, actor: User) -> DeletedPolicy:
        """
        Move a policy into the deleted-policy archive.

        Raises:
            PermissionDeniedError: Actor is not an admin
            NotFoundError: No such policy
        """
        self._require_admin(actor, "Only admins can delete policies")
        policy = await self._load(policy_id)

        snapshot = DeletedPolicy(
            **{key: getattr(policy, key) for key in SNAPSHOT_FIELDS},
            original_policy_id=policy.id,
            version=policy.version,
            original_created_at=policy.created_at,
            deleted_by=actor.id,
        )
        self.session.add(snapshot)
        await self.session.delete(policy)
        await self.session.commit()
        await self.session.refresh(snapshot)

        logger.info(f"Policy {policy_id} deleted by {actor.email}")
        return snapshot

    async def list_deleted(self, actor: User, page: int = 1, limit: int = 20) -> Page[DeletedPolicy]:
        self._require_admin(actor, "Insufficient permissions to view deleted policies")
        page, limit = normalize_page(page, limit)

        result = await self.session.execute(
            select(DeletedPolicy)
            .order_by(DeletedPolicy.deleted_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total_result = await self.session.execute(select(func.count(DeletedPolicy.id)))

        return Page(
            items=list(result.scalars().all()),
            page=page,
            limit=limit,
            total_count=total_result.scalar() or 0,
        )

    async def restore_policy(self, deleted_policy_id: str, actor: User) -> Policy:
        """
        Re-create a deleted policy under its original id.

        Raises:
            PermissionDeniedError: Actor is not an admin
            NotFoundError: No such archive entry
            ConflictError: A policy with the original id exists again
        """
        self._require_admin(actor, "Insufficient permissions to restore policies")

        result = await self.session.execute(
            select(DeletedPolicy).where(DeletedPolicy.id == deleted_policy_id)
        )
        deleted = result.scalar_one_or_none()
        if deleted is None:
            raise NotFoundError("Deleted policy not found")

        existing = await self.session.get(Policy, deleted.original_policy_id)
        if existing is not None:
            raise ConflictError("A policy with this ID already exists")

        policy = Policy(
            id=deleted.original_policy_id,
            **{key: getattr(deleted, key) for key in SNAPSHOT_FIELDS},
        )
        if deleted.original_created_at is not None:
            policy.created_at = deleted.original_created_at
        policy.updated_by = actor.id

        self.session.add(policy)
        await self.session.delete(deleted)
        await self.session.commit()
        await self.session.refresh(policy)

        logger.info(f"Policy {policy.id} restored by {actor.email}")
        return policy

    # ============== Helpers ==============

    @property
    def dialect(self) -> str:
        return queries.dialect_name(self.session)

    async def _load(self, policy_id: str) -> Policy:
        result = await self.session.execute(select(Policy).where(Policy.id == policy_id))
        policy = result.scalar_one_or_none()
        if policy is None:
            raise NotFoundError("Policy not found")
        return policy

    async def _load_pin(self, policy_id: str, actor: User) -> Optional[PinnedPolicy]:
        result = await self.session.execute(
            select(PinnedPolicy).where(
                PinnedPolicy.user_id == actor.id,
                PinnedPolicy.policy_id == policy_id,
            )
        )
        return result.scalar_one_or_none()

    async def _resolve_assignees(
        self,
        user_ids: List[str],
        actor: User,
        status: PolicyStatus = PolicyStatus.DRAFT,
    ) -> List[str]:
        """Check assigned ids exist and enforce the admin-reviewer rule for non-admins."""
        assignees = await self.users.get_users(user_ids)
        assigned = [user.id for user in assignees]

        if actor.is_admin:
            return assigned

        if status in (PolicyStatus.DRAFT, PolicyStatus.PENDING_REVIEW):
            if not any(user.is_admin for user in assignees):
                raise AssignmentRequiredError()

        return lifecycle.merge_assignees(assigned, [actor.id])

    @staticmethod
    def _require_admin(actor: User, message: str) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError(message)

    @staticmethod
    def _apply(policy: Policy, values: dict[str, Any]) -> None:
        for key in lifecycle.EDITABLE_FIELDS:
            if key in values:
                setattr(policy, key, values[key])

    @staticmethod
    def _stamp_attachments(attachments: List[dict], actor: User) -> List[dict]:
        """Record uploader and upload time on attachments that lack them."""
        now = datetime.now(timezone.utc).isoformat()
        stamped = []
        for attachment in attachments:
            attachment = dict(attachment)
            if not attachment.get("uploaded_by"):
                attachment["uploaded_by"] = actor.id
            if not attachment.get("uploaded_at"):
                attachment["uploaded_at"] = now
            elif isinstance(attachment["uploaded_at"], datetime):
                attachment["uploaded_at"] = attachment["uploaded_at"].isoformat()
            stamped.append(attachment)
        return stamped

    async def _commit_guarded(self, policy: Policy) -> None:
        """Commit, translating a lost compare-and-swap into ConflictError."""
        try:
            await self.session.commit()
        except StaleDataError:
            await self.session.rollback()
            raise ConflictError(
                "Policy was modified by someone else; reload and try again",
                field="version",
            )
        await self.session.refresh(policy)

    async def _notify(self, policy: Policy, emission: Awaitable[List[Notification]]) -> List[Notification]:
        """Best-effort notification write; the policy change is already committed."""
        try:
            return await emission
        except Exception as e:
            logger.error(f"Failed to create notifications for policy {policy.id}: {e}")
            await self.session.rollback()
            await self.session.refresh(policy)
            return []
