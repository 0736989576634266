from __future__ import annotations

import threading
from datetime import timedelta

from src.gym_system.gym_system.attendance.service import AttendanceService
from src.gym_system.gym_system.core.enums import AttendanceType
from src.gym_system.gym_system.sync import scheduler as sync_scheduler
from src.gym_system.gym_system.sync.service import SyncService


def _record_offline(cache, gateway, user_id, now, count):
    gateway.online = False
    svc = AttendanceService(cache, gateway)
    records = [svc.record(user_id, AttendanceType.CHECK_IN, now=now + timedelta(minutes=i)) for i in range(count)]
    gateway.online = True
    gateway.calls.clear()
    return records


def test_sync_pushes_offline_records_in_one_batch(cache, gateway, member, fixed_now):
    records = _record_offline(cache, gateway, member.user_id, fixed_now, 3)

    report = SyncService(cache, gateway).sync_offline_data()

    assert (report.attempted, report.synced, report.failed, report.refreshed) == (3, 3, 0, True)
    assert gateway.calls["record_attendance_batch"] == 1
    assert gateway.calls["record_attendance"] == 0
    assert set(gateway.attendance) == {r.record_id for r in records}
    assert cache.unsynced_attendance() == []


def test_offline_record_round_trips_through_sync(cache, gateway, member, fixed_now):
    (original,) = _record_offline(cache, gateway, member.user_id, fixed_now, 1)
    assert original.synced is False

    SyncService(cache, gateway).sync_offline_data()

    (cached,) = cache.attendance()
    assert cached.synced is True
    assert (cached.record_id, cached.user_id, cached.date, cached.time, cached.attendance_type) == (
        original.record_id,
        original.user_id,
        original.date,
        original.time,
        original.attendance_type,
    )

    remote = gateway.attendance[original.record_id]
    assert remote["synced"] is True
    assert {k: remote[k] for k in ("userId", "date", "time", "type")} == {
        "userId": member.user_id,
        "date": "2025-06-10",
        "time": "09:30:00",
        "type": "check-in",
    }


def test_second_sync_makes_no_attendance_writes(cache, gateway, member, fixed_now):
    _record_offline(cache, gateway, member.user_id, fixed_now, 2)
    svc = SyncService(cache, gateway)
    svc.sync_offline_data()
    writes = gateway.calls["record_attendance"] + gateway.calls["record_attendance_batch"]

    report = svc.sync_offline_data()

    assert report.attempted == 0
    assert gateway.calls["record_attendance"] + gateway.calls["record_attendance_batch"] == writes


def test_failed_batch_falls_back_to_per_record(cache, gateway, member, fixed_now):
    records = _record_offline(cache, gateway, member.user_id, fixed_now, 3)
    gateway.fail_batch = True
    gateway.reject_attendance_ids = {records[1].record_id}

    report = SyncService(cache, gateway).sync_offline_data()

    assert (report.synced, report.failed) == (2, 1)
    assert gateway.calls["record_attendance"] == 3
    assert [r.record_id for r in cache.unsynced_attendance()] == [records[1].record_id]


def test_gateway_without_batch_gets_per_record_calls(cache, gateway, member, fixed_now):
    gateway.supports_batch = False
    _record_offline(cache, gateway, member.user_id, fixed_now, 4)

    SyncService(cache, gateway).sync_offline_data()

    assert gateway.calls["record_attendance_batch"] == 0
    assert cache.unsynced_attendance() == []


def test_sync_while_offline_keeps_everything(cache, gateway, member, fixed_now):
    records = _record_offline(cache, gateway, member.user_id, fixed_now, 2)
    gateway.online = False

    report = SyncService(cache, gateway).sync_offline_data()

    assert (report.attempted, report.synced, report.failed, report.refreshed) == (2, 0, 2, False)
    assert {r.record_id for r in cache.unsynced_attendance()} == {r.record_id for r in records}
    assert cache.find_user(member.user_id) is not None


def test_refresh_never_drops_unacknowledged_records(cache, gateway, member, fixed_now):
    gateway.supports_batch = False
    (record,) = _record_offline(cache, gateway, member.user_id, fixed_now, 1)
    gateway.reject_attendance_ids = {record.record_id}

    report = SyncService(cache, gateway).sync_offline_data()

    assert report.refreshed is True
    assert [r.record_id for r in cache.attendance()] == [record.record_id]
    assert cache.attendance()[0].synced is False


def test_synced_flag_never_reverts_on_refresh(cache, gateway, member, fixed_now):
    rec = AttendanceService(cache, gateway).record(member.user_id, AttendanceType.CHECK_IN, now=fixed_now)
    gateway.attendance.clear()

    SyncService(cache, gateway).refresh_data()

    (cached,) = cache.attendance()
    assert cached.record_id == rec.record_id
    assert cached.synced is True


def test_refresh_pulls_remote_attendance_as_synced(cache, gateway, member):
    gateway.attendance["remote-1"] = {
        "id": "remote-1",
        "userId": member.user_id,
        "date": "2025-06-01",
        "time": "07:00:00",
        "type": "check-in",
        "synced": "false",
    }

    assert SyncService(cache, gateway).refresh_data() is True
    assert [(r.record_id, r.synced) for r in cache.attendance()] == [("remote-1", True)]


def test_scheduler_disabled_with_zero_interval(cache, gateway):
    assert sync_scheduler.start_scheduler(SyncService(cache, gateway), 0) is None
    assert sync_scheduler.scheduler is None


def test_scheduler_registers_sync_job(cache, gateway):
    started = sync_scheduler.start_scheduler(SyncService(cache, gateway), 60)
    try:
        assert started.get_job("attendance_sync") is not None
    finally:
        sync_scheduler.shutdown_scheduler()
    assert sync_scheduler.scheduler is None


def test_sync_during_a_push_does_not_resend_the_record(cache, gateway, member, fixed_now):
    pushing = threading.Event()
    release = threading.Event()
    remote_write = gateway.record_attendance

    def slow_record_attendance(record):
        pushing.set()
        release.wait(timeout=5)
        return remote_write(record)

    gateway.record_attendance = slow_record_attendance
    recorded = []
    worker = threading.Thread(
        target=lambda: recorded.append(
            AttendanceService(cache, gateway).record(member.user_id, AttendanceType.CHECK_IN, now=fixed_now)
        )
    )
    worker.start()
    assert pushing.wait(timeout=5)

    report = SyncService(cache, gateway).sync_offline_data()
    release.set()
    worker.join(timeout=5)

    assert report.attempted == 0
    assert gateway.calls["record_attendance"] == 1
    assert gateway.calls["record_attendance_batch"] == 0
    assert recorded[0].synced is True
    assert cache.unsynced_attendance() == []
