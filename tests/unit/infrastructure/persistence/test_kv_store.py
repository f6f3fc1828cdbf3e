"""Tests for SqlKeyValueStore."""


class TestSqlKeyValueStore:
    async def test_missing_key(self, sql_kv_store):
        assert await sql_kv_store.get("nope") is None

    async def test_set_then_overwrite(self, sql_kv_store):
        await sql_kv_store.set("APP_SERVICE_TASK_QUEUE", "[]")
        await sql_kv_store.set("APP_SERVICE_TASK_QUEUE", '[{"task": 1}]')

        assert await sql_kv_store.get("APP_SERVICE_TASK_QUEUE") == '[{"task": 1}]'

    async def test_delete(self, sql_kv_store):
        await sql_kv_store.set("k", "v")
        await sql_kv_store.delete("k")
        await sql_kv_store.delete("k")

        assert await sql_kv_store.get("k") is None
