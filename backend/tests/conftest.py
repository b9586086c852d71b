import os

os.environ.setdefault("JWT_SECRET", "test-secret")

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.config import Settings
from app.database import Base, get_db
from app.main import app
from app.services.registry import build_providers, get_providers


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        jwt_secret="test-secret",
        tmdb_access_token="tmdb-token",
        kpapi_key="kp-key",
        frontend_url="",
        gmail_user="",
    )


@pytest.fixture
async def providers(settings):
    providers = build_providers(settings)
    # Nothing in the suite may reach the network; tests that need an
    # upstream answer replace these with their own side effects.
    for client in providers.clients():
        client._get = AsyncMock(side_effect=AssertionError(f"unexpected {client.service_name} GET"))
        client._post = AsyncMock(side_effect=AssertionError(f"unexpected {client.service_name} POST"))
        client._get_text = AsyncMock(side_effect=AssertionError(f"unexpected {client.service_name} page fetch"))
    providers.reactions.cub.set_reaction = AsyncMock()
    providers.reactions.cub.remove_reaction = AsyncMock()
    yield providers
    await providers.close()


@pytest.fixture
async def client(providers, session_factory):
    async def override_db():
        async with session_factory() as session:
            yield session

    async def override_providers():
        return providers

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_providers] = override_providers
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def verified_user(client, db, providers):
    """Registered and verified account; returns (email, password)."""
    email, password = "viewer@example.com", "secret123"
    resp = await client.post("/api/v1/auth/register", json={"email": email, "password": password, "name": "Viewer"})
    assert resp.status_code == 201
    user = await providers.auth.find_by_email(db, email)
    user.verified = True
    await db.commit()
    return email, password


@pytest.fixture
async def auth_headers(client, verified_user):
    email, password = verified_user
    resp = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}
