"""
Tests for the statistics cache stores.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy import select

from mailstats.common.cache import CacheKeys
from mailstats.common.exceptions import ConfigError
from mailstats.models.stats_cache import CampaignStatsCache
from mailstats.schemas.internal import CampaignStatistics, StatsSource
from mailstats.stats_engine.store import RedisStatsStore, SQLStatsStore, create_store
from mailstats.stats_engine.store.sql_store import SessionFactory
from mailstats.stats_engine.validator import validate

from conftest import FakeRedisClient


@pytest.fixture
def sample_stats() -> CampaignStatistics:
    return validate(
        {
            "subscriber_count": 1000,
            "delivered_count": 950,
            "open_count": 400,
            "unique_open_count": 300,
            "click_count": 95,
            "bounce_count": 50,
            "soft_bounce_count": 30,
            "hard_bounce_count": 20,
        }
    ).with_source(StatsSource.LIVE)


def _redis_document(stats: CampaignStatistics, age: timedelta) -> dict[str, Any]:
    return {
        "statistics": stats.to_dict(),
        "last_updated": (datetime.now(timezone.utc) - age).isoformat(),
    }


class TestRedisStatsStore:
    """Tests for the Redis-backed store."""

    @pytest.mark.asyncio
    async def test_put_then_get(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
        sample_stats: CampaignStatistics,
    ) -> None:
        assert await redis_store.put("cmp_1", "acc_1", sample_stats) is True

        key = CacheKeys.campaign_stats("acc_1", "cmp_1")
        assert key == "stats:campaign:acc_1:cmp_1"
        assert key in fake_redis.data
        assert fake_redis.ttls[key] == redis_store.retention_seconds

        hit = await redis_store.get("cmp_1", "acc_1")
        assert hit is not None
        assert hit.statistics == sample_stats
        assert hit.statistics.source is StatsSource.CACHE
        assert hit.age_seconds < 60

    @pytest.mark.asyncio
    async def test_writes_delivery_info_view(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
        sample_stats: CampaignStatistics,
    ) -> None:
        await redis_store.put("cmp_1", "acc_1", sample_stats)

        document = await fake_redis.get_json(CacheKeys.campaign_stats("acc_1", "cmp_1"))
        assert document["delivery_info"]["total"] == 1000
        assert document["delivery_info"]["bounced"] == {"soft": 30, "hard": 20, "total": 50}
        assert document["campaign_uid"] == "cmp_1"

    @pytest.mark.asyncio
    async def test_miss(self, redis_store: RedisStatsStore) -> None:
        assert await redis_store.get("unknown", "acc_1") is None

    @pytest.mark.asyncio
    async def test_keyed_by_account(
        self,
        redis_store: RedisStatsStore,
        sample_stats: CampaignStatistics,
    ) -> None:
        await redis_store.put("cmp_1", "acc_1", sample_stats)
        assert await redis_store.get("cmp_1", "acc_2") is None

    @pytest.mark.asyncio
    async def test_two_hour_old_record_is_fresh(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
        sample_stats: CampaignStatistics,
    ) -> None:
        key = CacheKeys.campaign_stats("acc_1", "cmp_1")
        await fake_redis.set_json(key, _redis_document(sample_stats, timedelta(hours=2)))

        hit = await redis_store.get("cmp_1", "acc_1")
        assert hit is not None
        assert 7100 < hit.age_seconds < 7300

    @pytest.mark.asyncio
    async def test_stale_record_is_miss(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
        sample_stats: CampaignStatistics,
    ) -> None:
        key = CacheKeys.campaign_stats("acc_1", "cmp_1")
        await fake_redis.set_json(key, _redis_document(sample_stats, timedelta(hours=25)))

        assert await redis_store.get("cmp_1", "acc_1") is None

    @pytest.mark.asyncio
    async def test_legacy_delivery_info_record(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
    ) -> None:
        key = CacheKeys.campaign_stats("acc_1", "cmp_1")
        await fake_redis.set_json(
            key,
            {
                "delivery_info": {"total": 500, "delivered": 480, "bounced": {"soft": 10, "hard": 10}},
                "last_updated": datetime.now(timezone.utc).isoformat(),
            },
        )

        hit = await redis_store.get("cmp_1", "acc_1")
        assert hit is not None
        assert hit.statistics.subscriber_count == 500
        assert hit.statistics.bounce_count == 20

    @pytest.mark.asyncio
    async def test_record_without_timestamp_is_miss(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
        sample_stats: CampaignStatistics,
    ) -> None:
        key = CacheKeys.campaign_stats("acc_1", "cmp_1")
        await fake_redis.set_json(key, {"statistics": sample_stats.to_dict()})

        assert await redis_store.get("cmp_1", "acc_1") is None

    @pytest.mark.asyncio
    async def test_read_failure_is_miss(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
    ) -> None:
        fake_redis.fail_reads = True
        assert await redis_store.get("cmp_1", "acc_1") is None

    @pytest.mark.asyncio
    async def test_write_failure_is_not_fatal(
        self,
        redis_store: RedisStatsStore,
        fake_redis: FakeRedisClient,
        sample_stats: CampaignStatistics,
    ) -> None:
        fake_redis.fail_writes = True
        assert await redis_store.put("cmp_1", "acc_1", sample_stats) is False

    @pytest.mark.asyncio
    async def test_read_timeout_is_miss(self, sample_stats: CampaignStatistics) -> None:
        class SlowRedis(FakeRedisClient):
            async def get_json(self, key: str) -> Any:
                await asyncio.sleep(5)
                return None

        store = RedisStatsStore(client=SlowRedis(), operation_timeout=0.05)
        assert await store.get("cmp_1", "acc_1") is None


class TestSQLStatsStore:
    """Tests for the SQL-backed store."""

    @pytest.mark.asyncio
    async def test_put_then_get(
        self,
        session_factory: SessionFactory,
        sample_stats: CampaignStatistics,
    ) -> None:
        store = SQLStatsStore(session_factory=session_factory)

        assert await store.put("cmp_1", "acc_1", sample_stats) is True

        hit = await store.get("cmp_1", "acc_1")
        assert hit is not None
        assert hit.statistics == sample_stats
        assert hit.statistics.source is StatsSource.CACHE

    @pytest.mark.asyncio
    async def test_upsert_keeps_one_row(
        self,
        session_factory: SessionFactory,
        sample_stats: CampaignStatistics,
    ) -> None:
        store = SQLStatsStore(session_factory=session_factory)
        updated = validate({"subscriber_count": 10, "delivered_count": 9})

        await store.put("cmp_1", "acc_1", sample_stats)
        await store.put("cmp_1", "acc_1", updated)
        await store.put("cmp_1", "acc_2", sample_stats)

        async with session_factory() as session:
            rows = (
                await session.execute(
                    select(CampaignStatsCache).where(CampaignStatsCache.campaign_uid == "cmp_1")
                )
            ).scalars().all()
        assert len(rows) == 2

        hit = await store.get("cmp_1", "acc_1")
        assert hit.statistics == updated
        assert rows[0].delivery_info is not None

    @pytest.mark.asyncio
    async def test_stale_row_is_miss(
        self,
        session_factory: SessionFactory,
        sample_stats: CampaignStatistics,
    ) -> None:
        async with session_factory() as session:
            session.add(
                CampaignStatsCache(
                    campaign_uid="cmp_1",
                    account_id="acc_1",
                    statistics=sample_stats.to_dict(),
                    last_updated=datetime.now(timezone.utc) - timedelta(days=2),
                )
            )

        store = SQLStatsStore(session_factory=session_factory)
        assert await store.get("cmp_1", "acc_1") is None

        store = SQLStatsStore(session_factory=session_factory, ttl_seconds=7 * 24 * 3600)
        assert await store.get("cmp_1", "acc_1") is not None

    @pytest.mark.asyncio
    async def test_database_failure_is_not_fatal(self, sample_stats: CampaignStatistics) -> None:
        def broken_factory() -> Any:
            raise RuntimeError("Database not initialized. Call init() first.")

        store = SQLStatsStore(session_factory=broken_factory)

        assert await store.get("cmp_1", "acc_1") is None
        assert await store.put("cmp_1", "acc_1", sample_stats) is False


def test_create_store_backends() -> None:
    assert isinstance(create_store("redis"), RedisStatsStore)
    assert isinstance(create_store("sql"), SQLStatsStore)


def test_create_store_unknown_backend() -> None:
    with pytest.raises(ConfigError):
        create_store("memcached")


@pytest.mark.asyncio
async def test_sql_connection_refused_is_not_fatal(sample_stats: CampaignStatistics) -> None:
    def refused_factory() -> Any:
        raise ConnectionRefusedError(111, "Connect call failed")

    store = SQLStatsStore(session_factory=refused_factory)

    assert await store.get("cmp_1", "acc_1") is None
    assert await store.put("cmp_1", "acc_1", sample_stats) is False
