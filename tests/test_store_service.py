import pytest

from screenbot.db.indexes import create_indexes


class TestKeyedStore:
    @pytest.mark.asyncio
    async def test_put_then_get(self, store):
        await store.put("k", "v", 60)
        assert await store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, store):
        assert await store.get("absent") is None

    @pytest.mark.asyncio
    async def test_expired_value_is_absent(self, store, clock):
        await store.put("k", "v", 60)
        clock.advance(59)
        assert await store.get("k") == "v"
        clock.advance(1)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_put_refreshes_ttl(self, store, clock):
        await store.put("k", "v1", 60)
        clock.advance(50)
        await store.put("k", "v2", 60)
        clock.advance(50)
        assert await store.get("k") == "v2"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.put("k", "v", 60)
        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_json_helpers(self, store):
        await store.put_json("j", {"timestamps": [1, 2]}, 60)
        assert await store.get_json("j") == {"timestamps": [1, 2]}

    @pytest.mark.asyncio
    async def test_malformed_json_is_absent(self, store):
        await store.put("j", "{not json", 60)
        assert await store.get_json("j") is None


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_get_failure_returns_none(self, store, collection):
        collection.fail = True
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_put_and_delete_failures_are_swallowed(self, store, collection):
        collection.fail = True
        await store.put("k", "v", 60)
        await store.delete("k")
        assert collection.docs == {}

    @pytest.mark.asyncio
    async def test_ping_reports_failure(self, store, collection):
        assert await store.ping() is True
        collection.fail = True
        assert await store.ping() is False


@pytest.mark.asyncio
async def test_create_indexes_adds_ttl_index(collection):
    await create_indexes(collection)
    keys, options = collection.indexes[0]
    assert keys == "expires_at"
    assert options["expireAfterSeconds"] == 0
