"""Fixtures for integration tests.

These need a migrated PostgreSQL database at DATABASE_URL:

    uv run alembic upgrade head
    uv run pytest tests/integration -v

Tests are skipped when the database is unreachable.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from missionflow.settings import get_settings


@pytest.fixture
async def db_session() -> AsyncSession:
    """Session on a fresh engine; uncommitted work is rolled back afterwards."""
    engine = create_async_engine(get_settings().database_url, pool_pre_ping=True)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (OSError, OperationalError, DBAPIError) as e:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not available: {e}")

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()
