"""
SQL predicates shared by policy listings, pins and search.

Tags and assigned users are stored as JSON arrays. They are expanded with
the dialect's JSON table function (json_each on SQLite,
json_array_elements_text on PostgreSQL) so that matching is done per
element rather than against the serialized text.
"""

from sqlalchemy import String, and_, column, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from controlroom.models.policy import Policy, PolicyStatus
from controlroom.models.user import User
from controlroom.services.lifecycle import ALL_ORGANIZATIONS


LIKE_ESCAPE = "\\"


def dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def escape_like(value: str) -> str:
    """Make %, _ and the escape character match literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _array_elements(array_column, dialect: str):
    if dialect == "postgresql":
        func_call = func.json_array_elements_text(array_column)
    else:
        func_call = func.json_each(array_column)
    return func_call.table_valued(column("value", String))


def array_contains(array_column, value: str, dialect: str) -> ColumnElement[bool]:
    """True when the JSON array holds exactly this string."""
    elements = _array_elements(array_column, dialect)
    return select(1).select_from(elements).where(elements.c.value == value).exists()


def array_ilike(array_column, pattern: str, dialect: str) -> ColumnElement[bool]:
    """True when any string in the JSON array matches the LIKE pattern, ignoring case."""
    elements = _array_elements(array_column, dialect)
    return (
        select(1)
        .select_from(elements)
        .where(elements.c.value.ilike(pattern, escape=LIKE_ESCAPE))
        .exists()
    )


def visible_to(user: User, dialect: str) -> ColumnElement[bool]:
    """SQL form of lifecycle.can_view."""
    if user.is_admin:
        return true()
    return or_(
        Policy.created_by == user.id,
        array_contains(Policy.assigned_users, user.id, dialect),
        and_(
            Policy.status == PolicyStatus.ACTIVE,
            Policy.organization.in_((ALL_ORGANIZATIONS, user.organization)),
        ),
    )


def assigned_to(user: User, dialect: str) -> ColumnElement[bool]:
    return array_contains(Policy.assigned_users, user.id, dialect)
