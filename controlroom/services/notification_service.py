"""
Notification service: emits and reads in-app notifications.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.models.notification import Notification, NotificationType
from controlroom.models.policy import Policy
from controlroom.models.user import User
from controlroom.utils.pagination import Page, normalize_page


logger = logging.getLogger(__name__)


class NotificationService:
    """Service for user notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ============== Emission ==============

    async def notify_assigned_for_review(
        self, policy: Policy, admin_ids: Iterable[str], actor: User
    ) -> list[Notification]:
        """One notification per admin asked to review the policy."""
        return await self._emit(
            policy,
            admin_ids,
            NotificationType.POLICY_ASSIGNED,
            title=f"Policy ready for review: {policy.title}",
            message=f'{actor.full_name} assigned you to review policy "{policy.title}".',
        )

    async def notify_published(self, policy: Policy, actor: User) -> list[Notification]:
        """Notify assigned users (other than the publisher) that the policy is live."""
        recipients = [user_id for user_id in policy.assigned_users if user_id != actor.id]
        return await self._emit(
            policy,
            recipients,
            NotificationType.POLICY_PUBLISHED,
            title=f"New Policy: {policy.title}",
            message=f'Policy "{policy.title}" has been published by {actor.full_name}.',
        )

    async def notify_updated(self, policy: Policy, actor: User) -> list[Notification]:
        """Notify assigned users that staged changes were published."""
        recipients = [user_id for user_id in policy.assigned_users if user_id != actor.id]
        return await self._emit(
            policy,
            recipients,
            NotificationType.POLICY_UPDATED,
            title=f"Policy updated: {policy.title}",
            message=f'Policy "{policy.title}" has been updated by {actor.full_name}.',
        )

    async def _emit(
        self,
        policy: Policy,
        user_ids: Iterable[str],
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> list[Notification]:
        notifications = [
            Notification(
                user_id=user_id,
                policy_id=policy.id,
                type=notification_type,
                title=title[:200],
                message=message[:500],
            )
            for user_id in dict.fromkeys(user_ids)
        ]
        if not notifications:
            return []

        self.session.add_all(notifications)
        await self.session.commit()

        logger.info(
            f"Created {len(notifications)} {notification_type.value} notifications "
            f"for policy {policy.id}"
        )
        return notifications

    # ============== Reading ==============

    async def list_for_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> Page[Notification]:
        """Newest first, paginated."""
        page, limit = normalize_page(page, limit)

        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        query = (
            query.order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(query)

        total_result = await self.session.execute(
            select(func.count(Notification.id)).where(Notification.user_id == user_id)
        )

        return Page(
            items=list(result.scalars().all()),
            page=page,
            limit=limit,
            total_count=total_result.scalar() or 0,
        )

    async def unread_count(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    # ============== Read flag ==============

    async def mark_as_read(self, notification_id: str, user_id: str) -> Optional[Notification]:
        """
        Mark one notification read.

        Returns:
            The notification, or None if it does not exist or belongs to someone else.
        """
        result = await self.session.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            return None

        notification.is_read = True
        await self.session.commit()
        await self.session.refresh(notification)
        return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        """
        Mark every unread notification of a user read in one statement.

        Returns:
            Number of notifications updated.
        """
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await self.session.commit()
        return result.rowcount
