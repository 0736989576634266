from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.gym_system.gym_system.attendance.service import AttendanceService
from src.gym_system.gym_system.core.enums import AttendanceType
from src.gym_system.gym_system.core.exceptions import QRParseError, ValidationError
from src.gym_system.gym_system.qr.codec import generate_gym_payload


def test_record_online_is_synced_and_stamped(cache, gateway, member, fixed_now):
    svc = AttendanceService(cache, gateway)

    rec = svc.record(member.user_id, AttendanceType.CHECK_IN, now=fixed_now)

    assert rec.synced is True
    assert rec.date == "2025-06-10"
    assert rec.time == "09:30:00"
    assert rec.attendance_type == AttendanceType.CHECK_IN
    assert gateway.attendance[rec.record_id]["userId"] == member.user_id
    assert cache.attendance()[0].synced is True
    assert svc.unsynced_count() == 0


def test_record_offline_keeps_record_unsynced(cache, gateway, member, fixed_now):
    svc = AttendanceService(cache, gateway)
    gateway.online = False

    rec = svc.record(member.user_id, "check-in", now=fixed_now)

    assert rec.synced is False
    assert [r.record_id for r in cache.attendance()] == [rec.record_id]
    assert svc.unsynced_count() == 1


def test_record_is_cached_before_remote_write(cache, gateway, member, fixed_now):
    seen_in_cache = []
    original = gateway.record_attendance

    def spying_record(record: dict):
        seen_in_cache.append(any(r.record_id == record["id"] for r in cache.attendance()))
        return original(record)

    gateway.record_attendance = spying_record
    AttendanceService(cache, gateway).record(member.user_id, AttendanceType.CHECK_OUT, now=fixed_now)

    assert seen_in_cache == [True]


def test_record_rejects_unknown_type_without_writing(cache, gateway, member, fixed_now):
    svc = AttendanceService(cache, gateway)

    with pytest.raises(ValidationError):
        svc.record(member.user_id, "lunch-break", now=fixed_now)

    assert cache.attendance() == []
    assert gateway.calls["record_attendance"] == 0


def test_record_rejects_unknown_user_without_writing(cache, gateway, fixed_now):
    svc = AttendanceService(cache, gateway)

    with pytest.raises(ValidationError):
        svc.record("ghost", AttendanceType.CHECK_IN, now=fixed_now)

    assert cache.attendance() == []
    assert gateway.attendance == {}


def test_record_resolves_user_from_remote_when_not_cached(cache, gateway, make_user, fixed_now):
    remote_only = make_user("member-9", "Omar")
    gateway.users[remote_only.user_id] = remote_only.to_dict()

    rec = AttendanceService(cache, gateway).record("member-9", AttendanceType.CHECK_IN, now=fixed_now)

    assert rec.user_id == "member-9"
    assert cache.find_user("member-9") is not None


def test_record_ids_are_unique_for_same_instant(cache, gateway, member, fixed_now):
    svc = AttendanceService(cache, gateway)
    gateway.online = False

    ids = {svc.record(member.user_id, AttendanceType.CHECK_IN, now=fixed_now).record_id for _ in range(20)}

    assert len(ids) == 20


def test_history_is_newest_first_and_filterable(cache, gateway, admin, member, fixed_now):
    svc = AttendanceService(cache, gateway)
    a = svc.record(member.user_id, AttendanceType.CHECK_IN, now=fixed_now)
    b = svc.record(admin.user_id, AttendanceType.CHECK_IN, now=fixed_now + timedelta(minutes=5))
    c = svc.record(member.user_id, AttendanceType.CHECK_OUT, now=fixed_now + timedelta(hours=2))
    d = svc.record(admin.user_id, AttendanceType.CHECK_OUT, now=fixed_now - timedelta(days=1))

    assert [r.record_id for r in svc.get_history()] == [c.record_id, b.record_id, a.record_id, d.record_id]
    assert [r.record_id for r in svc.get_history(user_id=member.user_id)] == [c.record_id, a.record_id]
    assert [r.record_id for r in svc.get_history(date="2025-06-09")] == [d.record_id]


def test_admin_scanning_member_card_checks_member_in(cache, gateway, admin_session, member, fixed_now):
    svc = AttendanceService(cache, gateway)

    rec = svc.check_in_from_scan(admin_session, member.qr_code, now=fixed_now)

    assert rec.user_id == member.user_id
    assert rec.attendance_type == AttendanceType.CHECK_IN


def test_member_scanning_gym_code_checks_self_in(cache, gateway, member_session, fixed_now):
    svc = AttendanceService(cache, gateway)
    payload = generate_gym_payload("DADA GYM", timestamp=1_700_000_000_000)

    rec = svc.check_in_from_scan(member_session, payload, now=fixed_now)

    assert rec.user_id == member_session.user_id


def test_scan_rejects_wrong_code_for_role(cache, gateway, admin_session, member_session, member, fixed_now):
    svc = AttendanceService(cache, gateway)

    with pytest.raises(ValidationError):
        svc.check_in_from_scan(member_session, member.qr_code, now=fixed_now)
    with pytest.raises(ValidationError):
        svc.check_in_from_scan(admin_session, generate_gym_payload("DADA GYM"), now=fixed_now)
    assert cache.attendance() == []


def test_scan_with_malformed_payload_is_a_parse_error(cache, gateway, admin_session, fixed_now):
    with pytest.raises(QRParseError):
        AttendanceService(cache, gateway).check_in_from_scan(admin_session, "not-json", now=fixed_now)


def test_check_out_records_for_session_user(cache, gateway, member_session):
    rec = AttendanceService(cache, gateway).check_out(member_session, now=datetime(2025, 6, 10, 21, 5, 7))

    assert rec.attendance_type == AttendanceType.CHECK_OUT
    assert rec.user_id == member_session.user_id
    assert rec.time == "21:05:07"
