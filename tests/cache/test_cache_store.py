from __future__ import annotations

import logging

from src.gym_system.gym_system.attendance.model import AttendanceRecord
from src.gym_system.gym_system.cache.manager import CacheManager
from src.gym_system.gym_system.cache.store import SQLiteCacheStore
from src.gym_system.gym_system.core.enums import AttendanceType


def _record(record_id: str, synced: bool = False) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=record_id,
        user_id="member-1",
        date="2025-06-10",
        time="09:30:00",
        attendance_type=AttendanceType.CHECK_IN,
        synced=synced,
    )


def test_sqlite_store_round_trip(tmp_path):
    store = SQLiteCacheStore(tmp_path / "nested" / "cache.sqlite3")

    store.set("users", [{"id": "u1", "name": "سارة"}])
    store.set("users", [{"id": "u2"}])

    assert store.get("users") == [{"id": "u2"}]
    assert store.get("missing") is None

    store.remove("users")
    assert store.get("users") is None


def test_sqlite_store_is_fail_soft(tmp_path, caplog):
    # A directory cannot be opened as a database file.
    store = SQLiteCacheStore(tmp_path)

    with caplog.at_level(logging.WARNING):
        store.set("users", [])
        assert store.get("users") is None
        store.remove("users")
        store.clear()

    assert caplog.records


def test_unsynced_records_survive_restart(tmp_path, make_user):
    path = tmp_path / "cache.sqlite3"
    first = CacheManager(SQLiteCacheStore(path))
    first.upsert_user(make_user("member-1", "Sara"))
    first.append_attendance(_record("a1"))
    first.append_attendance(_record("a2"))
    first.mark_synced(["a1"])

    second = CacheManager(SQLiteCacheStore(path))
    second.load()

    assert [(r.record_id, r.synced) for r in second.attendance()] == [("a1", True), ("a2", False)]
    assert second.find_user("member-1").name == "Sara"


def test_load_skips_unreadable_rows(cache, caplog):
    store = cache._store
    store.set("attendance", [_record("ok").to_dict(), {"id": "broken"}])

    with caplog.at_level(logging.WARNING):
        cache.load()

    assert [r.record_id for r in cache.attendance()] == ["ok"]


def test_mark_synced_is_idempotent(cache):
    cache.append_attendance(_record("a1"))

    assert cache.mark_synced(["a1"]) == 1
    assert cache.mark_synced(["a1"]) == 0
    assert cache.attendance()[0].synced is True


def test_claimed_records_are_not_claimed_twice(cache):
    cache.append_attendance(_record("a1"))
    cache.append_attendance(_record("a2"))

    first = cache.claim_for_push(cache.attendance())
    second = cache.claim_for_push(cache.attendance())

    assert [r.record_id for r in first] == ["a1", "a2"]
    assert second == []
    assert cache.unsynced_attendance(include_in_flight=False) == []
    assert len(cache.unsynced_attendance()) == 2

    cache.mark_synced(["a1"])
    cache.release_push(["a1", "a2"])

    assert [r.record_id for r in cache.claim_for_push(cache.attendance())] == ["a2"]


def test_teardown_keeps_attendance(cache, make_user):
    user = make_user("member-1", "Sara")
    cache.set_current_user(user)
    cache.append_attendance(_record("a1"))

    cache.teardown(user.user_id)
    cache.load()

    assert cache.current_user(user.user_id) is None
    assert [r.record_id for r in cache.attendance()] == ["a1"]
