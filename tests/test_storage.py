"""Tests for the Redis-backed order ledger and duplicate index."""

from __future__ import annotations

from datetime import datetime

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from laser_counter.storage import store
from laser_counter.storage.duplicate_index import (
    UNTAGGED_KEY_TTL_SECONDS,
    DuplicateIndex,
    month_key_pattern,
    month_tag,
)
from laser_counter.storage.ledger import OrderLedger, OrderLedgerEntry, is_order_key


class FakeClock:
    """Epoch-ms clock that moves forward one second per reading."""

    def __init__(self, start: int = 1_760_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1000
        return self.now


class TestOrderLedger:
    def setup_method(self):
        self.clock = FakeClock()

    @pytest.mark.asyncio
    async def test_get_missing(self, ledger):
        assert await ledger.get("1234567") is None

    @pytest.mark.asyncio
    async def test_create(self, redis_client):
        ledger = OrderLedger(redis_client, clock=self.clock)
        entry = await ledger.create("1234567", "7654321")

        assert entry.order_number == "1234567"
        assert entry.counter == 1
        assert entry.part_code == "7654321"
        assert entry.created_at == entry.updated_at == self.clock.now
        assert entry.modified_at == 0

        raw = await redis_client.hgetall("1234567")
        assert set(raw) == {"counter", "partCode", "createdAt", "updatedAt", "modifiedAt"}

    @pytest.mark.asyncio
    async def test_increment(self, redis_client):
        ledger = OrderLedger(redis_client, clock=self.clock)
        created = await ledger.create("1234567", "7654321")
        entry = await ledger.increment("1234567", 1)

        assert entry.counter == 2
        assert entry.created_at == created.created_at
        assert entry.updated_at > created.updated_at
        assert entry.modified_at == 0

    @pytest.mark.asyncio
    async def test_increment_never_decreases(self, redis_client):
        ledger = OrderLedger(redis_client, clock=self.clock)
        previous = await ledger.create("1234567", "7654321")
        for amount in (1, 0, 5, 1):
            entry = await ledger.increment("1234567", amount)
            assert entry.counter >= previous.counter
            assert entry.updated_at >= previous.updated_at
            previous = entry
        assert previous.counter == 8

    @pytest.mark.asyncio
    async def test_negative_increment_rejected(self, ledger):
        await ledger.create("1234567", "7654321")
        with pytest.raises(ValueError):
            await ledger.increment("1234567", -1)

    @pytest.mark.asyncio
    async def test_admin_set(self, redis_client):
        ledger = OrderLedger(redis_client, clock=self.clock)
        await ledger.create("1234567", "7654321")
        entry = await ledger.admin_set("1234567", 40)

        assert entry.counter == 40
        assert entry.modified_at == self.clock.now
        assert entry.part_code == "7654321"

    @pytest.mark.asyncio
    async def test_adjust(self, redis_client):
        ledger = OrderLedger(redis_client, clock=self.clock)
        await ledger.create("1234567", "7654321")
        await ledger.increment("1234567", 9)

        entry = await ledger.adjust("1234567", -3)
        assert entry.counter == 7
        assert entry.modified_at == self.clock.now

        with pytest.raises(ValueError):
            await ledger.adjust("1234567", 0)

    @pytest.mark.asyncio
    async def test_edits_on_unknown_order_create_nothing(self, ledger, redis_client):
        assert await ledger.admin_set("7777777", 5) is None
        assert await ledger.adjust("7777777", 2) is None
        assert not await redis_client.exists("7777777")

    @pytest.mark.asyncio
    async def test_expire_after(self, ledger, redis_client):
        assert await ledger.expire_after("1234567", 60) is False

        await ledger.create("1234567", "7654321")
        assert await ledger.expire_after("1234567", 60) is True
        ttl = await redis_client.ttl("1234567")
        assert 0 < ttl <= 60

    @pytest.mark.asyncio
    async def test_list_orders(self, ledger, redis_client):
        await ledger.create("123456", "1111111")
        await ledger.create("7654321", "2222222")
        await ledger.create("1234567", "3333333")
        await redis_client.zadd("VR12345678ABCDEF", {"PAT001": 1})
        await redis_client.set("12345678901", "x")

        orders = await ledger.list_orders()
        assert [o.order_number for o in orders] == ["7654321", "1234567", "123456"]

    def test_is_order_key(self):
        assert is_order_key("123456")
        assert is_order_key("1234567")
        assert not is_order_key("12345")
        assert not is_order_key("12345678")
        assert not is_order_key("VR1234")

    def test_entry_from_hash(self):
        entry = OrderLedgerEntry.from_hash(
            "1234567",
            {"counter": "3", "partCode": "7654321", "createdAt": "1000", "updatedAt": "4000"},
        )
        assert entry.counter == 3
        assert entry.modified_at == 0
        assert entry.elapsed_ms == 3000


class TestDuplicateIndex:
    @pytest.mark.asyncio
    async def test_check_and_record_twice(self, index):
        assert await index.check_and_record("VR12345678ABCDEF", "7654321", "PAT001") is False
        assert await index.check_and_record("VR12345678ABCDEF", "7654321", "PAT001") is True

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, index):
        assert await index.check_and_record("VR12345678ABCDEF", "7654321", "PAT001") is False
        assert await index.check_and_record("VR87654321ABCDEF", "7654321", "PAT001") is False

    @pytest.mark.asyncio
    async def test_members_scored_by_part_code(self, index, redis_client):
        await index.check_and_record("VR12345678ABCDEF", "7654321", "PAT001")
        await index.check_and_record("VR12345678ABCDEF", "7654321", "VR12345678ABCDEFGHIJ")

        assert sorted(await index.members("VR12345678ABCDEF")) == ["PAT001", "VR12345678ABCDEFGHIJ"]
        assert await redis_client.zscore("VR12345678ABCDEF", "PAT001") == 7654321

    @pytest.mark.asyncio
    async def test_untagged_key_gets_ttl(self, index, redis_client):
        await index.check_and_record("AB12345678SOMEGA", "7654321", "PAT001")
        ttl = await redis_client.ttl("AB12345678SOMEGA")
        assert 0 < ttl <= UNTAGGED_KEY_TTL_SECONDS

        # a later member does not push the expiry back
        await redis_client.expire("AB12345678SOMEGA", 100)
        await index.check_and_record("AB12345678SOMEGA", "7654321", "PAT002")
        assert await redis_client.ttl("AB12345678SOMEGA") <= 100

    @pytest.mark.asyncio
    async def test_marker_key_left_to_the_sweep(self, index, redis_client):
        await index.check_and_record("VR12345678ABCDEF", "7654321", "PAT001")
        assert await redis_client.ttl("VR12345678ABCDEF") == -1

    def test_month_tag(self):
        assert month_tag(datetime(2026, 10, 19), 2) == "2608"
        assert month_tag(datetime(2026, 10, 19), 1) == "2609"
        assert month_tag(datetime(2026, 1, 5), 2) == "2511"
        assert month_tag(datetime(2026, 2, 28), 1) == "2601"
        assert month_tag(datetime(2026, 3, 1), 14) == "2501"

    def test_month_key_pattern(self):
        assert month_key_pattern("2608") == "VR*2608*"

    @pytest.mark.asyncio
    async def test_sweep_drops_month_before_last(self, index, redis_client):
        now = datetime(2026, 10, 19, 8, 30)
        await redis_client.zadd("VRAA260801XXXXXX", {"a": 1})
        await redis_client.zadd("VRAB260815XXXXXX", {"a": 1})
        await redis_client.zadd("VRAA260901XXXXXX", {"a": 1})
        await redis_client.zadd("VRAA261001XXXXXX", {"a": 1})
        await redis_client.hset("1234567", mapping={"counter": 1})

        deleted = await index.sweep_expired(2, now=now)

        assert deleted == 2
        assert not await redis_client.exists("VRAA260801XXXXXX")
        assert not await redis_client.exists("VRAB260815XXXXXX")
        assert await redis_client.exists("VRAA260901XXXXXX")
        assert await redis_client.exists("VRAA261001XXXXXX")
        assert await redis_client.exists("1234567")

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_to_delete(self, index):
        assert await index.sweep_expired(2, now=datetime(2026, 10, 19)) == 0


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_pings(self, redis_client):
        client = await store.connect(client=redis_client)
        assert client is redis_client

    @pytest.mark.asyncio
    async def test_unreachable_store(self):
        class DeadClient:
            async def ping(self):
                raise RedisConnectionError("connection refused")

        with pytest.raises(store.StoreUnavailable):
            await store.connect(client=DeadClient())

    def test_now_ms(self):
        assert store.now_ms() > 1_600_000_000_000
