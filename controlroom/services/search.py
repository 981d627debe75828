"""
Policy search.
"""

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.models.policy import Policy
from controlroom.models.user import User
from controlroom.services import queries
from controlroom.utils.pagination import Page, normalize_page


class SearchService:
    """Case-insensitive substring search over policies visible to a user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def search_policies(self, query: str, actor: User, page: int = 1, limit: int = 10) -> Page[Policy]:
        """
        Search title, description, content, category and tags.

        Tags match element by element. A blank query returns an empty page.
        """
        page, limit = normalize_page(page, limit, default_limit=10)
        query = (query or "").strip()
        if not query:
            return Page(items=[], page=page, limit=limit, total_count=0)

        dialect = queries.dialect_name(self.session)
        pattern = f"%{queries.escape_like(query)}%"
        escape = queries.LIKE_ESCAPE

        matches = select(Policy).where(
            queries.visible_to(actor, dialect),
            or_(
                Policy.title.ilike(pattern, escape=escape),
                Policy.description.ilike(pattern, escape=escape),
                Policy.content.ilike(pattern, escape=escape),
                Policy.category.ilike(pattern, escape=escape),
                queries.array_ilike(Policy.tags, pattern, dialect),
            ),
        )

        result = await self.session.execute(
            matches.order_by(Policy.updated_at.desc(), Policy.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total_result = await self.session.execute(
            select(func.count()).select_from(matches.subquery())
        )

        return Page(
            items=list(result.scalars().all()),
            page=page,
            limit=limit,
            total_count=total_result.scalar() or 0,
        )
