"""
Pytest configuration and fixtures for TaskHub API tests
"""
import os
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_taskhub.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENABLE_OTEL_EXPORTER", "false")
os.environ.setdefault("ENABLE_JSON_LOGGING", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("AVATAR_DIR", tempfile.mkdtemp(prefix="taskhub-avatars-"))

import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub.main import app
from taskhub.db.database import get_db, Base, engine
from taskhub.db.crud.user import create_user_db
from taskhub.db.models import User, UserRole
from taskhub.auth.security import Hasher, create_access_token
from taskhub.policy.identity import Identity

TEST_PASSWORD = "TestPassword123!"

TestSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh schema and session for each test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests share the test session"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for users stored directly through the CRUD layer"""
    password_hash = Hasher.get_password_hash(TEST_PASSWORD)

    async def _make_user(name: str, role: UserRole = UserRole.USER, **extra) -> User:
        return await create_user_db(db_session, {
            "name": name,
            "email": f"{name.lower()}@example.com",
            "hashed_password": password_hash,
            "role": role,
            **extra
        })

    return _make_user


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user("Alice")


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user("Bob")


@pytest.fixture
async def carol(make_user) -> User:
    return await make_user("Carol")


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user("Admin", role=UserRole.ADMIN)


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.uuid), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


def identity_of(user: User) -> Identity:
    return Identity.from_user(user)


async def create_task_as(client: AsyncClient, user: User, **payload) -> dict:
    """Create a task over HTTP and return the response body"""
    payload.setdefault("description", "Write the report")
    response = await client.post("/api/v1/tasks/", json=payload, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def assign_as(client: AsyncClient, admin: User, task_id: str, assignee: User) -> dict:
    response = await client.post(
        f"/api/v1/tasks/{task_id}/assign",
        json={"userId": str(assignee.uuid)},
        headers=auth_headers(admin)
    )
    assert response.status_code == 200, response.text
    return response.json()
