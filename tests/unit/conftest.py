"""
Shared fixtures for unit tests.
"""

import os
import tempfile

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from controlroom.models import Base, Role

from tests.unit.factories import make_user


@pytest_asyncio.fixture
async def db_session():
    """Create a temporary database session for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "test.db")
        engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async_session = async_sessionmaker(
            bind=engine, class_=AsyncSession, expire_on_commit=False
        )

        async with async_session() as session:
            yield session

        await engine.dispose()


@pytest_asyncio.fixture
async def users(db_session):
    """Two admins, a manager, an associate, and an associate from another organization."""
    people = {
        "admin": make_user(Role.ADMIN, "alice.admin@mertz.test"),
        "admin2": make_user(Role.ADMIN, "bob.admin@mertz.test"),
        "manager": make_user(Role.MANAGER, "mia.manager@mertz.test"),
        "associate": make_user(Role.ASSOCIATE, "sam.associate@mertz.test"),
        "outsider": make_user(
            Role.ASSOCIATE, "olga.outsider@mertz.test", organization="mertz_production"
        ),
    }
    db_session.add_all(people.values())
    await db_session.commit()
    for user in people.values():
        await db_session.refresh(user)
    return people
