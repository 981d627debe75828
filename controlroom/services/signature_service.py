"""
Signature service: acknowledgements of published policies.
"""

import logging
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.config import PolicyRulesConfig
from controlroom.models.database import utcnow
from controlroom.models.policy import Policy
from controlroom.models.signature import PolicySignature
from controlroom.models.user import User
from controlroom.services import lifecycle
from controlroom.services.errors import PermissionDeniedError, ValidationError
from controlroom.services.policy_service import PolicyService


logger = logging.getLogger(__name__)

MAX_SIGNATURE_NAME_LENGTH = 200


class SignatureService:
    """Record and report who has signed a policy."""

    def __init__(self, session: AsyncSession, rules: Optional[PolicyRulesConfig] = None):
        self.session = session
        self.policies = PolicyService(session, rules)

    async def get_signature(self, policy_id: str, actor: User) -> Optional[PolicySignature]:
        """
        The actor's signature, or None if unsigned or the policy takes no signatures.

        Raises:
            NotFoundError: No such policy
            PermissionDeniedError: Actor may not see it
        """
        policy = await self.policies.get_policy(policy_id, actor)
        if not lifecycle.requires_signature(policy):
            return None
        return await self._load(policy_id, actor.id)

    async def sign_policy(self, policy_id: str, name: str, actor: User) -> PolicySignature:
        """
        Sign a policy with a typed name. Signing again replaces the name and time.

        Raises:
            ValidationError: Blank or overlong name, or policy takes no signatures
            NotFoundError: No such policy
            PermissionDeniedError: Actor may not see it
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required", field="name")
        if len(name) > MAX_SIGNATURE_NAME_LENGTH:
            raise ValidationError(
                f"Name cannot be more than {MAX_SIGNATURE_NAME_LENGTH} characters", field="name"
            )

        policy = await self.policies.get_policy(policy_id, actor)
        if not lifecycle.requires_signature(policy):
            raise ValidationError("Signature not required for this policy", field="policy")

        signature = await self._load(policy_id, actor.id)
        if signature is None:
            signature = PolicySignature(policy_id=policy_id, user_id=actor.id, name=name)
            self.session.add(signature)
        else:
            signature.name = name
            signature.signed_at = utcnow()

        await self.session.commit()
        await self.session.refresh(signature)

        logger.info(f"Policy {policy_id} signed by {actor.email}")
        return signature

    async def list_signatures(
        self, policy_id: str, actor: User
    ) -> tuple[Policy, List[tuple[PolicySignature, Optional[User]]]]:
        """
        Every signature on a policy with the signer, most recent first (admin only).

        Raises:
            PermissionDeniedError: Actor is not an admin
            NotFoundError: No such policy
        """
        if not actor.is_admin:
            raise PermissionDeniedError("Insufficient permissions to view signatures")

        policy = await self.policies.get_policy(policy_id, actor)

        result = await self.session.execute(
            select(PolicySignature, User)
            .outerjoin(User, User.id == PolicySignature.user_id)
            .where(PolicySignature.policy_id == policy_id)
            .order_by(PolicySignature.signed_at.desc())
        )
        return policy, [(signature, user) for signature, user in result.all()]

    async def _load(self, policy_id: str, user_id: str) -> Optional[PolicySignature]:
        result = await self.session.execute(
            select(PolicySignature).where(
                PolicySignature.policy_id == policy_id,
                PolicySignature.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()
