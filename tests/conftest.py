"""Конфигурация тестов."""

import fnmatch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pr_reviewer.core.database import Base
from pr_reviewer.db.models import Team, User


@pytest.fixture(scope="function")
async def test_db():
    """Создать тестовую БД в памяти."""

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_session_maker

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def session(test_db):
    """Создать сессию БД для теста."""
    async with test_db() as session:
        yield session


class MockRedis:
    """Redis в памяти."""

    def __init__(self):
        self.data = {}

    async def ping(self):
        return True

    async def get(self, key: str):
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str):
        self.data[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def keys(self, pattern: str):
        return [k for k in self.data if fnmatch.fnmatch(k, pattern)]

    async def aclose(self):
        pass


@pytest.fixture(autouse=True)
def mock_cache(monkeypatch):
    """Подменить Redis кешем в памяти."""
    mock_redis = MockRedis()
    monkeypatch.setattr("pr_reviewer.core.cache.redis_client", mock_redis)
    return mock_redis


@pytest.fixture
async def sample_team(session):
    """Создать тестовую команду из четырёх активных участников."""
    team = Team(name="backend")
    session.add(team)
    await session.flush()

    users = [
        User(id="u1", username="Alice", team_id=team.id, is_active=True),
        User(id="u2", username="Bob", team_id=team.id, is_active=True),
        User(id="u3", username="Charlie", team_id=team.id, is_active=True),
        User(id="u4", username="Dave", team_id=team.id, is_active=True),
    ]
    for user in users:
        session.add(user)

    await session.commit()
    return team


@pytest.fixture
async def client(session):
    """HTTP клиент поверх приложения с тестовой сессией."""
    from pr_reviewer.api.dependencies import get_session
    from pr_reviewer.main import app

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
