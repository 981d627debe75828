"""
Tests for notification service.
"""

import pytest
import pytest_asyncio

from controlroom.models import Notification, NotificationType, Policy, PolicyStatus
from controlroom.services.notification_service import NotificationService

from tests.unit.factories import policy_fields


@pytest.fixture
def notification_service(db_session):
    return NotificationService(db_session)


@pytest_asyncio.fixture
async def policy(db_session, users):
    policy = Policy(
        **policy_fields(),
        status=PolicyStatus.ACTIVE,
        assigned_users=[users["manager"].id, users["admin"].id, users["associate"].id],
        created_by=users["manager"].id,
    )
    db_session.add(policy)
    await db_session.commit()
    await db_session.refresh(policy)
    return policy


async def _add_notifications(db_session, user_id, count, is_read=False):
    for i in range(count):
        db_session.add(Notification(
            user_id=user_id,
            policy_id="policy-1",
            type=NotificationType.POLICY_PUBLISHED,
            title=f"Notice {i}",
            message="Something happened",
            is_read=is_read,
        ))
    await db_session.commit()


class TestEmission:

    @pytest.mark.asyncio
    async def test_assigned_for_review_one_per_admin(
        self, notification_service, policy, users
    ):
        admin_ids = [users["admin"].id, users["admin2"].id, users["admin"].id]

        created = await notification_service.notify_assigned_for_review(
            policy, admin_ids, users["manager"]
        )

        assert len(created) == 2
        assert {n.user_id for n in created} == {users["admin"].id, users["admin2"].id}
        assert all(n.type == NotificationType.POLICY_ASSIGNED for n in created)
        assert all(n.policy_id == policy.id for n in created)
        assert "Mia Manager" in created[0].message

    @pytest.mark.asyncio
    async def test_published_skips_actor(self, notification_service, policy, users):
        created = await notification_service.notify_published(policy, users["admin"])

        assert {n.user_id for n in created} == {users["manager"].id, users["associate"].id}
        assert created[0].title == "New Policy: Remote Work Policy"

    @pytest.mark.asyncio
    async def test_updated(self, notification_service, policy, users):
        created = await notification_service.notify_updated(policy, users["admin"])

        assert len(created) == 2
        assert all(n.type == NotificationType.POLICY_UPDATED for n in created)

    @pytest.mark.asyncio
    async def test_no_recipients(self, notification_service, policy, users):
        policy.assigned_users = [users["admin"].id]

        created = await notification_service.notify_published(policy, users["admin"])

        assert created == []


class TestReading:

    @pytest.mark.asyncio
    async def test_list_paginates(self, notification_service, db_session, users):
        user_id = users["manager"].id
        await _add_notifications(db_session, user_id, 5)

        page = await notification_service.list_for_user(user_id, page=2, limit=2)

        assert len(page.items) == 2
        assert page.total_count == 5
        assert page.total_pages == 3

    @pytest.mark.asyncio
    async def test_list_unread_only(self, notification_service, db_session, users):
        user_id = users["manager"].id
        await _add_notifications(db_session, user_id, 2)
        await _add_notifications(db_session, user_id, 3, is_read=True)

        page = await notification_service.list_for_user(user_id, unread_only=True)

        assert len(page.items) == 2
        assert all(not n.is_read for n in page.items)
        assert await notification_service.unread_count(user_id) == 2

    @pytest.mark.asyncio
    async def test_list_only_own(self, notification_service, db_session, users):
        await _add_notifications(db_session, users["admin"].id, 3)

        page = await notification_service.list_for_user(users["manager"].id)

        assert page.items == []
        assert page.total_count == 0


class TestReadFlag:

    @pytest.mark.asyncio
    async def test_mark_as_read(self, notification_service, db_session, users):
        user_id = users["manager"].id
        await _add_notifications(db_session, user_id, 1)
        page = await notification_service.list_for_user(user_id)

        notification = await notification_service.mark_as_read(page.items[0].id, user_id)

        assert notification.is_read is True
        assert await notification_service.unread_count(user_id) == 0

    @pytest.mark.asyncio
    async def test_mark_as_read_other_users_notification(
        self, notification_service, db_session, users
    ):
        await _add_notifications(db_session, users["admin"].id, 1)
        page = await notification_service.list_for_user(users["admin"].id)

        result = await notification_service.mark_as_read(page.items[0].id, users["manager"].id)

        assert result is None
        assert await notification_service.unread_count(users["admin"].id) == 1

    @pytest.mark.asyncio
    async def test_mark_all_as_read_leaves_others_untouched(
        self, notification_service, db_session, users
    ):
        await _add_notifications(db_session, users["manager"].id, 3)
        await _add_notifications(db_session, users["admin"].id, 2)

        updated = await notification_service.mark_all_as_read(users["manager"].id)

        assert updated == 3
        assert await notification_service.unread_count(users["manager"].id) == 0
        assert await notification_service.unread_count(users["admin"].id) == 2
