"""
Authentication service: password login and JWT bearer tokens.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.config import AuthConfig
from controlroom.models.user import User
from controlroom.utils.crypto import verify_password


logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class AuthService:
    """Service for user authentication."""

    def __init__(self, config: AuthConfig):
        self.config = config

    async def authenticate(self, session: AsyncSession, email: str, password: str) -> Optional[tuple[str, User]]:
        """
        Authenticate a user with email and password.

        Args:
            session: Database session
            email: Login email (case insensitive)
            password: Plain text password

        Returns:
            Tuple of (token, user) if authentication succeeded, None otherwise.
        """
        if not self.config.jwt_secret or not email or not password:
            return None

        result = await session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        user = result.scalar_one_or_none()

        if user is None or not user.is_active:
            return None

        if not verify_password(password, user.password_hash):
            return None

        user.last_login = datetime.now(timezone.utc)
        await session.commit()

        logger.info(f"User {user.email} logged in")
        return self.create_token(user), user

    def create_token(self, user: User) -> str:
        """Create a JWT token for a user."""
        now = datetime.now(timezone.utc)
        expire = now + timedelta(hours=self.config.jwt_expire_hours)

        payload = {
            "sub": user.id,
            "role": user.role.value,
            "iat": now,
            "exp": expire,
        }

        return jwt.encode(payload, self.config.jwt_secret, algorithm=JWT_ALGORITHM)

    def decode_token(self, token: str) -> Optional[str]:
        """
        Verify a JWT token.

        Args:
            token: The JWT token to verify

        Returns:
            The user id from the token if valid, None otherwise.
        """
        if not self.config.jwt_secret or not token:
            return None

        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError:
            return None

        return payload.get("sub")


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """
    Extract a bearer token from the Authorization header.

    Expected format: "Bearer <token>"
    """
    if not authorization:
        return None

    parts = authorization.split(" ", 1)
    if len(parts) != 2:
        return None

    scheme, token = parts
    if scheme.lower() != "bearer":
        return None

    return token.strip() if token.strip() else None
