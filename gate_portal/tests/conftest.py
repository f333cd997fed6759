"""
Shared fixtures for the gate_portal test suite.

- db_session: fresh in-memory SQLite database per test
- app / client: the full FastAPI app over httpx, lifespan included
- teacher_headers / student_headers: bearer tokens signed with the test secret
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gate_portal.config.settings import Settings
from gate_portal.main import create_app
from gate_portal.orm.base import Base
from gate_portal.tests.helpers import (
    DEPARTMENT,
    STUDENT_ID,
    TEACHER_ID,
    TEST_DATABASE_URL,
    TEST_SECRET,
    bearer,
    make_token,
)


@pytest.fixture
def settings():
    return Settings(
        database_url=TEST_DATABASE_URL,
        jwt_secret_key=TEST_SECRET,
        environment="test",
        rate_limit_enabled=False,
    )


@pytest_asyncio.fixture
async def db_session():
    """Create a fresh database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def app(settings):
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def teacher_headers():
    return bearer(make_token(TEACHER_ID, "teacher"))


@pytest.fixture
def student_headers():
    return bearer(make_token(STUDENT_ID, "student", department=DEPARTMENT))
