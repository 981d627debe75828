"""
Request-scoped dependencies shared by the API routers.

Application-wide objects (config, session factory, auth service) live on
app.state; everything derived from a request is resolved per request.
"""

from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.config import PolicyRulesConfig
from controlroom.models.user import User
from controlroom.services.auth import AuthService, extract_token_from_header
from controlroom.services.errors import ControlRoomError
from controlroom.services.user_service import UserService


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """One database session per request, closed when the request ends."""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise HTTPException(status_code=503, detail="Service not configured")

    async with session_factory() as session:
        yield session


def get_auth_service(request: Request) -> AuthService:
    auth_service = getattr(request.app.state, "auth_service", None)
    if auth_service is None:
        raise HTTPException(status_code=503, detail="Service not configured")
    return auth_service


def get_rules(request: Request) -> PolicyRulesConfig:
    return request.app.state.config.policies


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the bearer token to an active user."""
    token = extract_token_from_header(request.headers.get("Authorization"))
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"error": "unauthorized", "message": "Missing or invalid token"}
        )

    user_id = auth_service.decode_token(token)
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail={"error": "unauthorized", "message": "Invalid or expired token"}
        )

    user = await UserService(session).get_user(user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=401,
            detail={"error": "unauthorized", "message": "User not found or inactive"}
        )

    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"error": "forbidden", "message": "Admin role required"}
        )
    return user


async def control_room_error_handler(request: Request, exc: ControlRoomError) -> JSONResponse:
    """Render service errors with the same detail shape as HTTPException."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})
