"""Shared pytest fixtures for API tests and database isolation."""

from __future__ import annotations

import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.engine import make_url  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from chord.api.deps import get_db  # noqa: E402
from chord.core.config import settings  # noqa: E402
from chord.db.base import Base  # noqa: E402
from chord.main import app  # noqa: E402


def _test_engine(database_url: str):
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # One shared connection keeps the in-memory database alive for the whole test.
        return create_async_engine(
            database_url, poolclass=StaticPool, connect_args={"check_same_thread": False}
        ), None
    engine = create_async_engine(database_url, future=True)
    # Isolate each test run in its own schema for parallel-friendly cleanup.
    schema_name = f"test_{uuid.uuid4().hex}"
    return engine.execution_options(schema_translate_map={None: schema_name}), schema_name


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine, schema_name = _test_engine(settings.test_database_url or settings.database_url)
    async with engine.begin() as conn:
        if schema_name:
            await conn.exec_driver_sql(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"')
        await conn.run_sync(Base.metadata.create_all)
    TestingSession = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with TestingSession() as session:
            yield session
    finally:
        async with engine.begin() as conn:
            if schema_name:
                await conn.exec_driver_sql(f'DROP SCHEMA IF EXISTS "{schema_name}" CASCADE')
            else:
                await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(session: AsyncSession) -> AsyncClient:
    async def _get_test_db():
        yield session

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.pop(get_db, None)
