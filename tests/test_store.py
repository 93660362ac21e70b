"""Tests for the key/value store: typed accessors, change signal,
export/import, and the underlying table."""

import json

import pytest

from chunkpomo.database.db import get_session
from chunkpomo.database.models import KeyValue
from chunkpomo.database.store import (
    STORAGE_KEYS, STORAGE_QUOTA_BYTES, PomodoroStore, StorageKeys, within_quota,
)
from chunkpomo.errors import InvalidFormat

from helpers import SignalCollector


def _populate(store):
    store.save_settings({"workDuration": 30, "shortBreakDuration": 5,
                         "longBreakDuration": 15, "longBreakInterval": 4})
    store.save_sessions([{
        "id": "pomodoro_1", "type": "work", "duration": 1_800_000,
        "startTime": "2026-10-19T09:00:00", "endTime": "2026-10-19T09:30:00",
        "completed": True, "taskId": "task_1",
    }])
    store.save_tasks([{
        "id": "task_1", "title": "Résumé draft", "description": "",
        "estimatedPomodoros": 2, "priority": "high", "completed": True,
        "chunkId": "chunk_1",
    }])
    store.save_current_chunk({
        "id": "chunk_1", "startTime": "2026-10-19T09:00:00", "duration": 120,
        "endTime": None, "tasks": [], "pomodoroSessions": [], "status": "active",
    })


# ═══════════════════════════════════════════════════════════════════════════
#  RAW ACCESS
# ═══════════════════════════════════════════════════════════════════════════


class TestKeyValue:

    def test_missing_key_returns_default(self, store):
        assert store.get("nope") is None
        assert store.get("nope", 3) == 3

    def test_set_then_get(self, store):
        store.set("k", {"a": [1, 2]})
        assert store.get("k") == {"a": [1, 2]}

    def test_overwrite(self, store):
        store.set("k", 1)
        store.set("k", 2)
        assert store.get("k") == 2

    def test_none_removes(self, store):
        store.set("k", 1)
        store.set("k", None)
        assert store.get("k") is None
        with get_session() as db:
            assert db.get(KeyValue, "k") is None

    def test_set_many_and_get_all(self, store):
        store.set_many({"b": 2, "a": 1})
        assert list(store.get_all()) == ["a", "b"]

    def test_clear(self, store):
        store.set_many({"a": 1, "b": 2})
        store.clear()
        assert store.get_all() == {}

    def test_changed_signal(self, store):
        changes = SignalCollector()
        store.changed.connect(changes)
        store.set("a", 1)
        store.remove("a")
        assert changes.items == [{"a": 1}, {"a": None}]

    def test_empty_write_is_silent(self, store):
        changes = SignalCollector()
        store.changed.connect(changes)
        store.set_many({})
        assert len(changes) == 0

    def test_rows_are_shared_between_stores(self, qapp, store):
        store.set("a", 1)
        assert PomodoroStore().get("a") == 1


class TestTypedAccessors:

    def test_empty_collections(self, store):
        assert store.get_sessions() == []
        assert store.get_chunks() == []
        assert store.get_tasks() == []
        assert store.get_settings() is None
        assert store.get_current_session() is None
        assert store.get_current_chunk() is None
        assert store.get_statistics() is None

    def test_current_session_round_trip(self, store):
        store.save_current_session({"id": "pomodoro_1"})
        assert store.get(StorageKeys.CURRENT_SESSION) == {"id": "pomodoro_1"}
        store.clear_current_session()
        assert store.get_current_session() is None

    def test_current_chunk_clear(self, store):
        store.save_current_chunk({"id": "chunk_1"})
        store.clear_current_chunk()
        assert store.get_current_chunk() is None

    def test_clear_all_data(self, store):
        _populate(store)
        store.set("unrelated", 1)
        store.clear_all_data()
        assert list(store.get_all()) == ["unrelated"]


# ═══════════════════════════════════════════════════════════════════════════
#  EXPORT / IMPORT
# ═══════════════════════════════════════════════════════════════════════════


class TestExportImport:

    def test_export_is_byte_stable(self, store):
        _populate(store)
        exported = store.export_data()
        store.clear_all_data()
        store.import_data(exported)
        assert store.export_data() == exported

    def test_export_order_and_format(self, store):
        _populate(store)
        exported = store.export_data()
        assert list(json.loads(exported)) == [
            StorageKeys.SETTINGS,
            StorageKeys.SESSIONS,
            StorageKeys.CURRENT_CHUNK,
            StorageKeys.TASKS,
        ]
        assert "\n  " in exported
        assert "Résumé" in exported

    def test_export_skips_unknown_keys(self, store):
        store.set("scratch", 1)
        assert json.loads(store.export_data()) == {}

    def test_empty_store_exports_empty_object(self, store):
        assert store.export_data() == "{}"

    def test_unknown_keys_ignored(self, store):
        written = store.import_data(json.dumps({
            StorageKeys.TASKS: [],
            "somethingElse": {"x": 1},
        }))
        assert written == [StorageKeys.TASKS]
        assert store.get("somethingElse") is None
        assert store.get_tasks() == []

    def test_import_overwrites_only_given_keys(self, store):
        _populate(store)
        store.import_data(json.dumps({StorageKeys.TASKS: []}))
        assert store.get_tasks() == []
        assert store.get_settings()["workDuration"] == 30

    @pytest.mark.parametrize("text", ["", "not json", "{", "[1, 2]", "42", "null"])
    def test_invalid_format(self, store, text):
        with pytest.raises(InvalidFormat):
            store.import_data(text)

    def test_failed_import_writes_nothing(self, store):
        _populate(store)
        before = store.export_data()
        with pytest.raises(InvalidFormat):
            store.import_data("[]")
        assert store.export_data() == before

    def test_storage_keys_listed_once(self):
        assert len(set(STORAGE_KEYS)) == len(STORAGE_KEYS) == 7


# ═══════════════════════════════════════════════════════════════════════════
#  USAGE
# ═══════════════════════════════════════════════════════════════════════════


class TestStorageUsage:

    def test_empty_store_uses_nothing(self, store):
        assert store.storage_usage() == 0

    def test_counts_key_and_compact_value(self, store):
        store.set("k", {"a": 1})
        assert store.storage_usage() == len("k") + len('{"a":1}')

    def test_counts_utf8_bytes(self, store):
        store.set("k", "é")
        assert store.storage_usage() == 1 + len('"é"'.encode("utf-8"))

    def test_grows_with_data_and_shrinks_on_clear(self, store):
        _populate(store)
        used = store.storage_usage()
        assert used > 0
        store.save_tasks([])
        assert store.storage_usage() < used
        store.clear_all_data()
        assert store.storage_usage() == 0

    @pytest.mark.parametrize("used, ok", [
        (0, True),
        (9_437_183, True),
        (9_437_184, False),
        (STORAGE_QUOTA_BYTES, False),
    ])
    def test_within_quota(self, used, ok):
        assert within_quota(used) is ok

    def test_within_custom_quota(self):
        assert within_quota(89, max_bytes=100)
        assert not within_quota(90, max_bytes=100)
