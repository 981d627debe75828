"""
Authentication and user directory routes.
"""

from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.api.deps import (
    get_auth_service,
    get_current_user,
    get_rules,
    get_session,
    require_admin,
)
from controlroom.config import PolicyRulesConfig
from controlroom.models.user import User, Role
from controlroom.services.auth import AuthService
from controlroom.services.user_service import UserService


router = APIRouter()


# ============== Request/Response Models ==============

class LoginRequest(BaseModel):
    """Login request body."""
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    organization: str
    department: Optional[str]
    position: Optional[str]
    is_active: bool
    last_login: Optional[datetime]
    created_at: datetime


class LoginResponse(BaseModel):
    """Login response body."""
    token: str
    expires_in_hours: int
    user: UserResponse


class UserCreateRequest(BaseModel):
    email: str = ""
    password: str = ""
    first_name: str = ""
    last_name: str = ""
    organization: str = ""
    role: Role = Role.ASSOCIATE
    department: Optional[str] = None
    position: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    department: Optional[str] = None
    position: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.full_name,
        role=user.role.value,
        organization=user.organization,
        department=user.department,
        position=user.position,
        is_active=user.is_active,
        last_login=user.last_login,
        created_at=user.created_at,
    )


# ============== Auth Routes ==============

@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email and password and get a JWT token.
    """
    result = await auth_service.authenticate(session, body.email, body.password)
    if not result:
        raise HTTPException(
            status_code=401,
            detail={"error": "unauthorized", "message": "Invalid email or password"}
        )

    token, user = result
    return LoginResponse(
        token=token,
        expires_in_hours=auth_service.config.jwt_expire_hours,
        user=_to_response(user),
    )


# ============== User Routes ==============

@router.get("/users/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return _to_response(user)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[Role] = None,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """
    List active users, e.g. ?role=admin to pick reviewers.
    """
    service = UserService(session)
    users = await service.list_users(role=role)
    return [_to_response(u) for u in users]


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreateRequest,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Create a user (admin only).
    """
    service = UserService(session, rules)
    user = await service.create_user(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        organization=body.organization,
        role=body.role,
        department=body.department,
        position=body.position,
    )
    return _to_response(user)


@router.put("/users/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """
    Update the current user's name, department and position.
    """
    service = UserService(session)
    updated = await service.update_profile(
        user,
        first_name=body.first_name,
        last_name=body.last_name,
        department=body.department,
        position=body.position,
    )
    return _to_response(updated)


@router.post("/users/change-password")
async def change_password(
    body: ChangePasswordRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = UserService(session)
    await service.change_password(user, body.current_password, body.new_password)
    return {"message": "Password updated successfully"}


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = UserService(session)
    found = await service.get_user(user_id)
    if found is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "not_found", "message": "User not found"}
        )
    return _to_response(found)
