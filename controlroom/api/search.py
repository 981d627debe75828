"""
Search API routes.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.api.deps import get_current_user, get_session
from controlroom.api.notifications import PaginationResponse
from controlroom.api.policies import PolicyResponse, policy_to_response
from controlroom.models.user import User
from controlroom.services.search import SearchService


router = APIRouter()


class SearchResponse(BaseModel):
    policies: List[PolicyResponse]
    pagination: PaginationResponse


@router.get("/search", response_model=SearchResponse)
async def search(
    q: str = "",
    page: int = 1,
    limit: int = 10,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """
    Search policies visible to the current user.
    """
    service = SearchService(session)
    result = await service.search_policies(q, user, page=page, limit=limit)
    return SearchResponse(
        policies=[policy_to_response(p, user) for p in result.items],
        pagination=PaginationResponse(**result.pagination()),
    )
