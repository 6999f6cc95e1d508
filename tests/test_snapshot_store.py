import json

import fakeredis
import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis

from pigmap.services.coordinator import LiveCoordinator
from pigmap.services.events import NewComment, NewReport
from pigmap.services.redis_client import RedisSnapshotStore
from pigmap.services.snapshot_store import MemorySnapshotStore, build_snapshot_store


@pytest_asyncio.fixture
async def redis_client():
    client = fake_aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.mark.asyncio
async def test_redis_store_get_put_ping(redis_client):
    store = RedisSnapshotStore(client=redis_client)

    assert await store.get("pigmap:coordinator:test:snapshot") is None
    await store.put("pigmap:coordinator:test:snapshot", '{"reports": []}')

    assert await store.get("pigmap:coordinator:test:snapshot") == '{"reports": []}'
    assert await store.ping() is True


@pytest.mark.asyncio
async def test_snapshot_round_trip_through_redis(redis_client, report_factory, comment_factory):
    store = RedisSnapshotStore(client=redis_client)
    first = LiveCoordinator(store, name="kc")
    await first.load()
    await first.publish(NewReport(report_factory("r1")))
    await first.publish(NewComment("r1", comment_factory("c1")))

    raw = await redis_client.get("pigmap:coordinator:kc:snapshot")
    assert [r["id"] for r in json.loads(raw)["reports"]] == ["r1"]

    second = LiveCoordinator(RedisSnapshotStore(client=redis_client), name="kc")
    await second.load()

    assert [r.id for r in second.reports] == ["r1"]
    assert [c.id for c in second.comments_for("r1")] == ["c1"]
    assert second.snapshot() == first.snapshot()


@pytest.mark.asyncio
async def test_coordinator_names_do_not_share_snapshots(redis_client, report_factory):
    kc = LiveCoordinator(RedisSnapshotStore(client=redis_client), name="kc")
    await kc.load()
    await kc.publish(NewReport(report_factory("r1")))

    other = LiveCoordinator(RedisSnapshotStore(client=redis_client), name="global")
    await other.load()

    assert other.reports == []
    assert json.loads(await redis_client.get("pigmap:coordinator:global:snapshot")) == {
        "reports": [],
        "comments": {},
    }


def test_build_snapshot_store():
    assert isinstance(build_snapshot_store("redis"), RedisSnapshotStore)
    assert isinstance(build_snapshot_store("MEMORY"), MemorySnapshotStore)
    with pytest.raises(ValueError):
        build_snapshot_store("bogus")
