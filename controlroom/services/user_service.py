"""
User directory service.
"""

import logging
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.config import PolicyRulesConfig
from controlroom.models.user import User, Role
from controlroom.services.errors import ValidationError, ConflictError, NotFoundError
from controlroom.utils.crypto import (
    hash_password,
    verify_password,
    is_acceptable_password,
    MIN_PASSWORD_LENGTH,
)


logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50
MAX_DEPARTMENT_LENGTH = 100
MAX_POSITION_LENGTH = 100


class UserService:
    """Service for managing user accounts."""

    def __init__(self, session: AsyncSession, rules: Optional[PolicyRulesConfig] = None):
        self.session = session
        self.rules = rules or PolicyRulesConfig()

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        organization: str,
        role: Role = Role.ASSOCIATE,
        department: Optional[str] = None,
        position: Optional[str] = None,
    ) -> User:
        """
        Create a new user.

        Raises:
            ValidationError: Missing or invalid field
            ConflictError: Email already registered
        """
        email = (email or "").strip().lower()
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()

        missing = [
            name for name, value in (
                ("email", email),
                ("password", password),
                ("first_name", first_name),
                ("last_name", last_name),
                ("organization", organization),
            )
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        if "@" not in email:
            raise ValidationError("Please enter a valid email", field="email")

        if not is_acceptable_password(password):
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="password",
            )

        if organization not in self.rules.organizations:
            raise ValidationError(f"Invalid organization: {organization}", field="organization")

        if await self.get_user_by_email(email) is not None:
            raise ConflictError("User with this email already exists", field="email")

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            organization=organization,
            department=department,
            position=position,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info(f"Created user {user.email} with role {user.role.value}")
        return user

    async def update_profile(
        self,
        user: User,
        first_name: str,
        last_name: str,
        department: Optional[str] = None,
        position: Optional[str] = None,
    ) -> User:
        """
        Update the caller's own name, department and position.

        Email, role and organization are managed by admins and never change here.

        Raises:
            ValidationError: Missing names or a value over its length limit
        """
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        department = (department or "").strip() or None
        position = (position or "").strip() or None

        missing = [
            name for name, value in (("first_name", first_name), ("last_name", last_name))
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        for name, value, limit in (
            ("first_name", first_name, MAX_NAME_LENGTH),
            ("last_name", last_name, MAX_NAME_LENGTH),
            ("department", department, MAX_DEPARTMENT_LENGTH),
            ("position", position, MAX_POSITION_LENGTH),
        ):
            if value and len(value) > limit:
                raise ValidationError(
                    f"{name.replace('_', ' ').capitalize()} cannot be more than {limit} characters",
                    field=name,
                )

        user.first_name = first_name
        user.last_name = last_name
        user.department = department
        user.position = position
        await self.session.commit()
        await self.session.refresh(user)

        logger.info(f"Profile updated for {user.email}")
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the caller's password after checking the current one.

        Tokens already issued stay valid until they expire.

        Raises:
            ValidationError: Missing value, short or unchanged new password,
                or wrong current password
        """
        missing = [
            name for name, value in (
                ("current_password", current_password),
                ("new_password", new_password),
            )
            if not value
        ]
        if missing:
            raise ValidationError(
                "Current password and new password are required", fields=missing
            )

        if not is_acceptable_password(new_password):
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="new_password",
            )

        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")

        if verify_password(new_password, user.password_hash):
            raise ValidationError(
                "New password must be different from current password", field="new_password"
            )

        user.password_hash = hash_password(new_password)
        await self.session.commit()

        logger.info(f"Password changed for {user.email}")

    async def get_user(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_users(self, role: Optional[Role] = None, include_inactive: bool = False) -> List[User]:
        """List users ordered by name, optionally filtered by role."""
        query = select(User)

        if role is not None:
            query = query.where(User.role == role)

        if not include_inactive:
            query = query.where(User.is_active.is_(True))

        query = query.order_by(User.first_name, User.last_name)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_users(self, user_ids: List[str], field: str = "assigned_users") -> List[User]:
        """
        Load several users by id.

        Raises:
            NotFoundError: If any id does not exist.
        """
        unique_ids = list(dict.fromkeys(user_ids))
        if not unique_ids:
            return []

        result = await self.session.execute(
            select(User).where(User.id.in_(unique_ids))
        )
        users = {user.id: user for user in result.scalars().all()}

        missing = [user_id for user_id in unique_ids if user_id not in users]
        if missing:
            raise NotFoundError(f"User not found: {', '.join(missing)}", field=field)

        return [users[user_id] for user_id in unique_ids]
