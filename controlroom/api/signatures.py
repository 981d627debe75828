"""
Policy signature routes.
"""

from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.api.deps import get_current_user, get_rules, get_session
from controlroom.config import PolicyRulesConfig
from controlroom.models.signature import PolicySignature
from controlroom.models.user import User
from controlroom.services.signature_service import SignatureService


router = APIRouter()


# ============== Request/Response Models ==============

class SignRequest(BaseModel):
    name: str = ""


class SignatureResponse(BaseModel):
    id: str
    policy_id: str
    user_id: str
    name: str
    signed_at: datetime


class SignatureStatusResponse(BaseModel):
    has_signed: bool
    signature: Optional[SignatureResponse] = None


class SignerResponse(BaseModel):
    first_name: str
    last_name: str
    email: str
    department: Optional[str]
    position: Optional[str]


class PolicySignatureEntry(SignatureResponse):
    user: Optional[SignerResponse]


class SignedPolicySummary(BaseModel):
    id: str
    title: str
    require_signature: bool


class SignatureListResponse(BaseModel):
    policy: SignedPolicySummary
    signatures: List[PolicySignatureEntry]
    count: int


def _to_response(signature: PolicySignature) -> SignatureResponse:
    return SignatureResponse(
        id=signature.id,
        policy_id=signature.policy_id,
        user_id=signature.user_id,
        name=signature.name,
        signed_at=signature.signed_at,
    )


# ============== Signature Routes ==============

@router.get("/policies/{policy_id}/signature", response_model=SignatureStatusResponse)
async def get_my_signature(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Whether the current user has signed the policy.
    """
    service = SignatureService(session, rules)
    signature = await service.get_signature(policy_id, user)
    if signature is None:
        return SignatureStatusResponse(has_signed=False)
    return SignatureStatusResponse(has_signed=True, signature=_to_response(signature))


@router.post("/policies/{policy_id}/signature", response_model=SignatureStatusResponse)
async def sign_policy(
    policy_id: str,
    body: SignRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Sign a published policy that requires acknowledgement.
    """
    service = SignatureService(session, rules)
    signature = await service.sign_policy(policy_id, body.name, user)
    return SignatureStatusResponse(has_signed=True, signature=_to_response(signature))


@router.get("/policies/{policy_id}/signatures", response_model=SignatureListResponse)
async def list_signatures(
    policy_id: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    rules: PolicyRulesConfig = Depends(get_rules),
):
    """
    Every signature on a policy (admin only).
    """
    service = SignatureService(session, rules)
    policy, rows = await service.list_signatures(policy_id, user)

    entries = []
    for signature, signer in rows:
        entries.append(PolicySignatureEntry(
            **_to_response(signature).model_dump(),
            user=SignerResponse(
                first_name=signer.first_name,
                last_name=signer.last_name,
                email=signer.email,
                department=signer.department,
                position=signer.position,
            ) if signer is not None else None,
        ))

    return SignatureListResponse(
        policy=SignedPolicySummary(
            id=policy.id,
            title=policy.title,
            require_signature=bool(policy.require_signature),
        ),
        signatures=entries,
        count=len(entries),
    )
