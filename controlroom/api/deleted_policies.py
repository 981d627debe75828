"""
Deleted policy archive routes (admin only).
"""

from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.api.deps import get_rules, get_session, require_admin
from controlroom.api.notifications import PaginationResponse
from controlroom.api.policies import PolicyResponse, policy_to_response
from controlroom.config import PolicyRulesConfig
from controlroom.models.policy import DeletedPolicy
from controlroom.models.user import User
from controlroom.services.policy_service import PolicyService


router = APIRouter()


class DeletedPolicyResponse(BaseModel):
    id: str
    original_policy_id: str
    title: str
    category: str
    organization: str
    status: str
    created_by: str
    deleted_by: str
    deleted_at: datetime
    original_created_at: Optional[datetime]


class DeletedPolicyListResponse(BaseModel):
    deleted_policies: List[DeletedPolicyResponse]
    pagination: PaginationResponse


def _to_response(deleted: DeletedPolicy) -> DeletedPolicyResponse:
    return DeletedPolicyResponse(
        id=deleted.id,
        original_policy_id=deleted.original_policy_id,
        title=deleted.title,
        category=deleted.category,
        organization=deleted.organization,
        status=deleted.status.value,
        created_by=deleted.created_by,
        deleted_by=deleted.deleted_by,
        deleted_at=deleted.deleted_at,
        original_created_at=deleted.original_created_at,
    )


@router.get("/deleted-policies", response_model=DeletedPolicyListResponse)
async def list_deleted_policies(
    page: int = 1,
    limit: int = 20,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(require_admin),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    service = PolicyService(session, rules)
    result = await service.list_deleted(user, page=page, limit=limit)
    return DeletedPolicyListResponse(
        deleted_policies=[_to_response(d) for d in result.items],
        pagination=PaginationResponse(**result.pagination()),
    )


@router.post("/deleted-policies/{deleted_policy_id}/restore", response_model=PolicyResponse)
async def restore_deleted_policy(
    deleted_policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(require_admin),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Restore a deleted policy under its original id.
    """
    service = PolicyService(session, rules)
    policy = await service.restore_policy(deleted_policy_id, user)
    return policy_to_response(policy, user)
