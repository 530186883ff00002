import os
import pytest_asyncio
import sqlalchemy
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.adapter.models  # noqa: F401 registers the tables
from src.depends import get_session


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """
    Create test database engine

    Uses TEST_DB_URI when set (e.g. a PostgreSQL test database), otherwise a
    throwaway SQLite file per test.
    """
    test_db_url = os.environ.get("TEST_DB_URI") or f"sqlite+aiosqlite:///{tmp_path / 'fiscal_test.db'}"
    is_postgres = test_db_url.startswith("postgresql")

    engine = create_async_engine(test_db_url, echo=False, future=True)

    async with engine.begin() as conn:
        if is_postgres:
            # Drop and recreate the public schema to ensure clean state
            await conn.execute(sqlalchemy.text("DROP SCHEMA IF EXISTS public CASCADE"))
            await conn.execute(sqlalchemy.text("CREATE SCHEMA public"))
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    if is_postgres:
        async with engine.begin() as conn:
            await conn.execute(sqlalchemy.text("DROP SCHEMA IF EXISTS public CASCADE"))
            await conn.execute(sqlalchemy.text("CREATE SCHEMA public"))

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Create test client; every request gets its own session like in production"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
