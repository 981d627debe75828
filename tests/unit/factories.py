"""
Test data builders.
"""

from controlroom.models import User, Role
from controlroom.utils.crypto import hash_password


TEST_PASSWORD = "password123"

# Hashed once; bcrypt is deliberately slow
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def make_user(role: Role, email: str, organization: str = "mertzcrew", **kwargs) -> User:
    """Build an unsaved user with the shared test password."""
    first_name, _, last_name = email.split("@")[0].partition(".")
    return User(
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        first_name=first_name.title(),
        last_name=(last_name or "Tester").title(),
        role=role,
        organization=organization,
        **kwargs,
    )


def policy_fields(**overrides) -> dict:
    """A complete, valid set of policy fields."""
    fields = {
        "title": "Remote Work Policy",
        "description": "Rules for working away from the office",
        "content": "Employees may work remotely two days a week.",
        "category": "HR",
        "organization": "all",
        "tags": ["remote", "hr"],
    }
    fields.update(overrides)
    return fields
