"""
Policy API routes.
"""

from datetime import datetime
from typing import Any, Optional, List, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.api.deps import get_current_user, get_rules, get_session
from controlroom.config import PolicyRulesConfig
from controlroom.models.policy import Policy, PolicyStatus
from controlroom.models.user import User
from controlroom.services import lifecycle
from controlroom.services.policy_service import PolicyAction, PolicyService


router = APIRouter()


# ============== Request/Response Models ==============

class AttachmentModel(BaseModel):
    """Reference to a file held by the object store."""
    file_name: str
    file_url: str
    file_path: str = ""
    file_size: int = 0
    file_type: str = ""
    description: str = ""
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[str] = None


class PolicyCreateRequest(BaseModel):
    """Request to create a policy. Missing fields are reported by the service."""
    title: str = ""
    description: str = ""
    content: str = ""
    category: str = ""
    organization: str = ""
    tags: Union[List[str], str, None] = None
    attachments: List[AttachmentModel] = Field(default_factory=list)
    require_signature: bool = False
    assigned_users: List[str] = Field(default_factory=list)
    publish: bool = False


class PolicyUpdateRequest(BaseModel):
    """Request to update a policy; only the fields sent are changed."""
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    organization: Optional[str] = None
    tags: Union[List[str], str, None] = None
    attachments: Optional[List[AttachmentModel]] = None
    require_signature: Optional[bool] = None
    assigned_users: Optional[List[str]] = None
    action: Optional[PolicyAction] = None
    expected_version: Optional[int] = None


class AssignForReviewRequest(BaseModel):
    """Admins to route a draft to."""
    model_config = ConfigDict(populate_by_name=True)

    admin_ids: List[str] = Field(default_factory=list, alias="adminIds")


class PolicyResponse(BaseModel):
    """Policy as seen by the caller."""
    id: str
    title: str
    description: str
    content: str
    category: str
    organization: str
    tags: List[str]
    attachments: List[dict[str, Any]]
    require_signature: bool
    status: str
    display_status: str
    has_pending_changes: bool
    pending_changes: Optional[dict[str, Any]]
    assigned_users: List[str]
    views: int
    version: int
    created_by: str
    updated_by: Optional[str]
    created_at: datetime
    updated_at: datetime


class AssignForReviewResponse(BaseModel):
    message: str
    notified: int
    policy: PolicyResponse


class TrackViewResponse(BaseModel):
    views: int


class PinnedPoliciesResponse(BaseModel):
    policies: List[PolicyResponse]
    total_count: int


class PinResponse(BaseModel):
    policy_id: str
    pinned: bool
    pinned_at: Optional[datetime] = None


def policy_to_response(policy: Policy, actor: User) -> PolicyResponse:
    """Build the response; staged changes are only shown to editors."""
    pending = policy.pending_changes if lifecycle.can_edit(policy, actor) else None
    return PolicyResponse(
        id=policy.id,
        title=policy.title,
        description=policy.description,
        content=policy.content,
        category=policy.category,
        organization=policy.organization,
        tags=list(policy.tags or []),
        attachments=list(policy.attachments or []),
        require_signature=bool(policy.require_signature),
        status=policy.status.value,
        display_status=lifecycle.display_status(policy.status, policy.pending_changes),
        has_pending_changes=policy.has_pending_changes,
        pending_changes=pending,
        assigned_users=list(policy.assigned_users or []),
        views=policy.views,
        version=policy.version,
        created_by=policy.created_by,
        updated_by=policy.updated_by,
        created_at=policy.created_at,
        updated_at=policy.updated_at,
    )


def _editable_fields(body: BaseModel) -> dict[str, Any]:
    return body.model_dump(
        mode="json", exclude_unset=True, include=set(lifecycle.EDITABLE_FIELDS)
    )


# ============== Policy Routes ==============

@router.get("/policies", response_model=List[PolicyResponse])
async def list_policies(
    status: Optional[PolicyStatus] = None,
    category: Optional[str] = None,
    organization: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    List policies visible to the current user.
    """
    service = PolicyService(session, rules)
    policies = await service.list_policies(
        user, status=status, category=category, organization=organization
    )
    return [policy_to_response(p, user) for p in policies]


@router.post("/policies", response_model=PolicyResponse, status_code=201)
async def create_policy(
    body: PolicyCreateRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Create a policy.

    Non-admins create drafts and must assign at least one admin reviewer.
    """
    service = PolicyService(session, rules)
    policy = await service.create_policy(
        _editable_fields(body),
        user,
        assigned_users=body.assigned_users,
        publish=body.publish,
    )
    return policy_to_response(policy, user)


@router.get("/policies/assigned", response_model=List[PolicyResponse])
async def list_assigned_policies(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    List policies the current user is assigned to.
    """
    service = PolicyService(session, rules)
    policies = await service.list_assigned(user)
    return [policy_to_response(p, user) for p in policies]


@router.get("/policies/pinned", response_model=PinnedPoliciesResponse)
async def list_pinned_policies(
    limit: Optional[int] = None,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    List the current user's pinned policies, most recently pinned first.
    """
    service = PolicyService(session, rules)
    policies, total = await service.list_pinned(user, limit=limit)
    return PinnedPoliciesResponse(
        policies=[policy_to_response(p, user) for p in policies],
        total_count=total,
    )


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    service = PolicyService(session, rules)
    policy = await service.get_policy(policy_id, user)
    return policy_to_response(policy, user)


@router.patch("/policies/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: str,
    body: PolicyUpdateRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Update a policy.

    Edits to a published policy are staged as pending changes until an admin
    sends action "publish".
    """
    service = PolicyService(session, rules)
    policy = await service.update_policy(
        policy_id,
        _editable_fields(body),
        user,
        action=body.action,
        assigned_users=body.assigned_users,
        expected_version=body.expected_version,
    )
    return policy_to_response(policy, user)


@router.delete("/policies/{policy_id}")
async def delete_policy(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Delete a policy (admin only). A snapshot is kept for restore.
    """
    service = PolicyService(session, rules)
    snapshot = await service.delete_policy(policy_id, user)
    return {"message": "Policy deleted", "deleted_policy_id": snapshot.id}


@router.post("/policies/{policy_id}/assign-to-publish", response_model=AssignForReviewResponse)
async def assign_for_review(
    policy_id: str,
    body: AssignForReviewRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Submit a draft for review by admins.
    """
    service = PolicyService(session, rules)
    policy, notifications = await service.assign_for_review(policy_id, body.admin_ids, user)

    count = len(set(body.admin_ids))
    return AssignForReviewResponse(
        message=f"Successfully assigned {count} admin{'s' if count != 1 else ''} for policy review",
        notified=len(notifications),
        policy=policy_to_response(policy, user),
    )


@router.post("/policies/{policy_id}/track-view", response_model=TrackViewResponse)
async def track_view(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    service = PolicyService(session, rules)
    views = await service.track_view(policy_id, user)
    return TrackViewResponse(views=views)


@router.put("/policies/{policy_id}/pin", response_model=PinResponse)
async def pin_policy(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    service = PolicyService(session, rules)
    pin = await service.pin_policy(policy_id, user)
    return PinResponse(policy_id=policy_id, pinned=True, pinned_at=pin.pinned_at)


@router.delete("/policies/{policy_id}/pin", response_model=PinResponse)
async def unpin_policy(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    service = PolicyService(session, rules)
    await service.unpin_policy(policy_id, user)
    return PinResponse(policy_id=policy_id, pinned=False)
