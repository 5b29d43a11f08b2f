"""
tests/test_store.py — Record Store & Boot Reconciliation
=========================================================

Covers the JSON record store (defaults, corruption, atomic writes,
serialized read-modify-write) and the two boot-time reconciliation passes.
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import patch

import pytest

from boarbot.constants import GlobalFile
from boarbot.database.queue import KeyedTaskQueue
from boarbot.database.records import (
    Scope,
    default_record,
    global_record,
    guild_record,
    user_record,
)
from boarbot.database.store import DataStore, RecordCorruptError
from boarbot.services.reconciliation_service import (
    normalize_global_data,
    purge_incomplete_guilds,
)


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.run(coro)


def _write_json(path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Record ids
# ---------------------------------------------------------------------------
class TestRecordIds:
    def test_queue_key_is_scope_and_name(self):
        assert global_record(GlobalFile.POWERUPS).key == ("global", "powerups")
        assert user_record(42).key == ("user", "42")
        assert guild_record("7").key == ("guild", "7")

    def test_defaults_are_fresh_copies(self):
        rid = user_record(1)
        first = default_record(rid)
        first["stats"]["general"]["notificationsOn"] = True
        assert default_record(rid)["stats"]["general"]["notificationsOn"] is False


# ---------------------------------------------------------------------------
# Synchronous primitives
# ---------------------------------------------------------------------------
class TestReadWrite:
    def test_round_trip_survives_new_store(self, store, ctx):
        rid = user_record(123)
        record = {"stats": {"general": {"notificationsOn": True, "boarStreak": 4}}}
        store.write(rid, record)

        fresh = DataStore(ctx.config.paths, KeyedTaskQueue())
        assert fresh.read(rid) == record

    def test_missing_record_returns_default_and_creates_file(self, store):
        rid = global_record(GlobalFile.QUEST)
        assert not store.exists(rid)
        assert store.read(rid) == {"questsStartTimestamp": 0, "curQuestIDs": []}
        assert store.exists(rid)

    def test_read_without_create_leaves_disk_alone(self, store):
        rid = guild_record(99)
        assert store.read(rid, create=False)["fullySetup"] is False
        assert not store.exists(rid)

    def test_existing_file_is_never_overwritten_by_default(self, store):
        rid = global_record(GlobalFile.GITHUB)
        _write_json(store.path_for(rid), {"lastURL": "X", "pastURLs": ["X"]})
        assert store.read(rid)["lastURL"] == "X"

    def test_corrupt_json_raises(self, store):
        rid = user_record(5)
        store.path_for(rid).parent.mkdir(parents=True, exist_ok=True)
        store.path_for(rid).write_text("{not json", encoding="utf-8")
        with pytest.raises(RecordCorruptError) as exc_info:
            store.read(rid)
        assert exc_info.value.record_id == rid

    def test_invalid_utf8_raises(self, store):
        rid = guild_record("C")
        path = store.path_for(rid)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b'{"fullySetup": \xff}')
        with pytest.raises(RecordCorruptError):
            store.read(rid)

    def test_non_object_document_raises(self, store):
        rid = user_record(6)
        _write_json(store.path_for(rid), [1, 2, 3])
        with pytest.raises(RecordCorruptError):
            store.read(rid)

    def test_write_leaves_no_temp_files(self, store):
        rid = global_record(GlobalFile.ITEMS)
        store.write(rid, {"boars": {}})
        store.write(rid, {"boars": {"bacon": {"num": 1}}})
        names = [p.name for p in store.directory(Scope.GLOBAL).iterdir()]
        assert names == ["items.json"]

    def test_unserializable_record_keeps_previous_file(self, store):
        rid = user_record(8)
        store.write(rid, {"ok": True})
        with pytest.raises(TypeError):
            store.write(rid, {"bad": object()})
        assert store.read(rid) == {"ok": True}
        assert len(list(store.directory(Scope.USER).iterdir())) == 1

    def test_failed_dump_removes_temp_file(self, store):
        rid = user_record(9)
        store.write(rid, {"ok": True})
        with patch("boarbot.database.store.json.dump", side_effect=OSError("No space left")):
            with pytest.raises(OSError):
                store.write(rid, {"ok": False})
        assert [p.name for p in store.directory(Scope.USER).iterdir()] == ["9.json"]
        assert store.read(rid) == {"ok": True}

    def test_list_ids_on_missing_directory(self, store):
        assert store.list_ids(Scope.USER) == []
        assert store.count(Scope.GUILD) == 0

    def test_list_ids_ignores_non_json(self, store):
        store.write(user_record(2), {})
        store.write(user_record(1), {})
        (store.directory(Scope.USER) / "notes.txt").write_text("x", encoding="utf-8")
        assert store.list_ids(Scope.USER) == ["1", "2"]

    def test_delete_is_idempotent(self, store):
        rid = guild_record(3)
        store.write(rid, {"fullySetup": True})
        store.delete(rid)
        store.delete(rid)
        assert not store.exists(rid)


# ---------------------------------------------------------------------------
# Queue-serialized access
# ---------------------------------------------------------------------------
class TestReadThenWrite:
    def test_concurrent_updates_are_not_lost(self, store):
        rid = global_record(GlobalFile.POWERUPS)

        def bump(record):
            record["numSpawns"] += 1

        async def scenario():
            await asyncio.gather(*(store.read_then_write(rid, bump) for _ in range(25)))

        run_async(scenario())
        assert store.read(rid)["numSpawns"] == 25

    def test_returned_replacement_is_written(self, store):
        rid = user_record(10)
        result = run_async(store.read_then_write(rid, lambda _rec: {"replaced": True}))
        assert result == {"replaced": True}
        assert store.read(rid) == {"replaced": True}

    def test_failing_mutator_writes_nothing(self, store):
        rid = user_record(11)
        store.write(rid, {"value": 1})

        def broken(record):
            record["value"] = 2
            raise KeyError("missing")

        with pytest.raises(KeyError):
            run_async(store.read_then_write(rid, broken))
        assert store.read(rid) == {"value": 1}

    def test_fetch_sees_queued_write(self, store):
        rid = global_record(GlobalFile.POWERUPS)

        def set_next(record):
            record["nextPowerup"] = 5000

        async def scenario():
            write = asyncio.ensure_future(store.read_then_write(rid, set_next))
            await asyncio.sleep(0)
            read = await store.fetch(rid)
            await write
            return read

        assert run_async(scenario())["nextPowerup"] == 5000


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------
class TestPurgeIncompleteGuilds:
    def test_only_unfinished_guilds_are_deleted(self, store):
        store.write(guild_record("A"), {"fullySetup": False})
        store.write(guild_record("B"), {"fullySetup": True})

        deleted = purge_incomplete_guilds(store)

        assert deleted == ["A"]
        assert store.list_ids(Scope.GUILD) == ["B"]

    def test_creates_missing_directories(self, store):
        assert not store.directory(Scope.GUILD).exists()
        assert purge_incomplete_guilds(store) == []
        assert store.directory(Scope.GUILD).is_dir()

    def test_corrupt_guild_is_left_in_place(self, store):
        path = store.path_for(guild_record("C"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("oops", encoding="utf-8")
        assert purge_incomplete_guilds(store) == []
        assert path.exists()

    def test_undecodable_guild_is_left_in_place(self, store):
        store.write(guild_record("B"), {"fullySetup": True})
        path = store.path_for(guild_record("C"))
        path.write_bytes(b'{"fullySetup": \xff}')

        assert purge_incomplete_guilds(store) == []
        assert store.list_ids(Scope.GUILD) == ["B", "C"]


class TestNormalizeGlobalData:
    def test_orders_catalog_and_creates_globals(self, store, ctx):
        rid = global_record(GlobalFile.ITEMS)
        store.write(rid, {"boars": {"zzz": {}, "golden": {}, "blob": {}, "bacon": {}}})

        run_async(normalize_global_data(store, ctx.config))

        assert list(store.read(rid)["boars"]) == ["bacon", "blob", "golden", "zzz"]
        for name in GlobalFile:
            assert store.exists(global_record(name))

    def test_is_idempotent(self, store, ctx):
        store.write(global_record(GlobalFile.ITEMS), {"boars": {"golden": {}, "bacon": {}}})

        run_async(normalize_global_data(store, ctx.config))
        first = {p.name: p.read_bytes() for p in store.directory(Scope.GLOBAL).iterdir()}
        run_async(normalize_global_data(store, ctx.config))
        second = {p.name: p.read_bytes() for p in store.directory(Scope.GLOBAL).iterdir()}

        assert first == second
