"""
Pytest configuration and fixtures.
"""

import os

os.environ.setdefault("MAILSTATS_ENV", "test")

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mailstats.common.utils import json_dumps, json_loads
from mailstats.models.base import Base
from mailstats.schemas.internal import Account, Campaign
from mailstats.stats_engine.client import AcelleClient
from mailstats.stats_engine.store.redis_store import RedisStatsStore
from mailstats.stats_engine.store.sql_store import SessionFactory
from mailstats.stats_server.main import app
from mailstats.stats_server.services.stats_service import StatsService, get_stats_service


# Test database URL (use SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ACELLE_ENDPOINT = "https://mail.example.com/api/v1"


class FakeRedisClient:
    """In-memory stand-in for RedisClient, JSON round-tripped like the real one."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail_reads = False
        self.fail_writes = False

    async def get_json(self, key: str) -> Any:
        if self.fail_reads:
            raise ConnectionError("redis down")
        value = self.data.get(key)
        return json_loads(value) if value is not None else None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if self.fail_writes:
            raise ConnectionError("redis down")
        self.data[key] = json_dumps(value)
        self.ttls[key] = ttl
        return True

    async def health_check(self) -> bool:
        return not self.fail_reads


class UpstreamStub:
    """Scripted Acelle API for httpx.MockTransport, recording every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.default = lambda _request: httpx.Response(404, json={"message": "Not found"})

    def on(self, path_suffix: str, handler: Callable[[httpx.Request], httpx.Response] | httpx.Response) -> None:
        if isinstance(handler, httpx.Response):
            template = handler
            self.routes[path_suffix] = lambda _request: httpx.Response(
                template.status_code, headers=template.headers, content=template.content
            )
        else:
            self.routes[path_suffix] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, handler in self.routes.items():
            if request.url.path.endswith(suffix):
                return handler(request)
        return self.default(request)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest_asyncio.fixture(scope="function")
async def session_factory() -> AsyncGenerator[SessionFactory, None]:
    """Session factory over an in-memory SQLite database with the cache table."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def factory() -> AsyncIterator[AsyncSession]:
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def redis_store(fake_redis: FakeRedisClient) -> RedisStatsStore:
    return RedisStatsStore(client=fake_redis, ttl_seconds=24 * 3600, operation_timeout=1.0)


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest_asyncio.fixture
async def acelle_client(upstream: UpstreamStub) -> AsyncGenerator[AcelleClient, None]:
    client = AcelleClient(timeout=2.0, transport=httpx.MockTransport(upstream))
    yield client
    await client.close()


@pytest.fixture
def account() -> Account:
    """Sample Acelle account."""
    return Account(
        id="acc_1",
        api_endpoint=ACELLE_ENDPOINT,
        api_token="secret-token",
        name="Test account",
    )


@pytest.fixture
def campaign() -> Campaign:
    """Campaign without embedded statistics."""
    return Campaign(uid="cmp_123", name="October newsletter", status="sent")


@pytest.fixture
def live_payload() -> dict[str, Any]:
    """Acelle campaign response carrying a statistics object."""
    return {
        "campaign": {
            "uid": "cmp_123",
            "name": "October newsletter",
            "statistics": {
                "subscriber_count": 1000,
                "delivered_count": 950,
                "open_count": 400,
                "unique_open_count": 300,
                "click_count": 95,
                "bounce_count": 50,
                "soft_bounce_count": 30,
                "hard_bounce_count": 20,
                "unsubscribe_count": 5,
                "abuse_complaint_count": 1,
                "delivered_rate": "95%",
                "unique_open_rate": 31.58,
                "click_rate": 0.1,
            },
        }
    }


@pytest_asyncio.fixture(scope="function")
async def stats_service(
    redis_store: RedisStatsStore,
    acelle_client: AcelleClient,
) -> StatsService:
    """Statistics service over the fake Redis store and the scripted upstream."""
    return StatsService(store=redis_store, client=acelle_client, max_concurrency=4)


@pytest_asyncio.fixture(scope="function")
async def client(stats_service: StatsService) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the statistics service overridden."""
    app.dependency_overrides[get_stats_service] = lambda: stats_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def account_payload() -> dict[str, Any]:
    """Account as sent to the HTTP surface."""
    return {
        "id": "acc_1",
        "api_endpoint": ACELLE_ENDPOINT,
        "api_token": "secret-token",
    }
