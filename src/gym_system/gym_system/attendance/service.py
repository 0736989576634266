from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..cache.manager import CacheManager
from ..common.datetime_utils import format_date, format_time, now_local
from ..common.ids import generate_local_id
from ..core.enums import AttendanceType, Role
from ..core.exceptions import ValidationError
from ..gateway.base import RemoteGateway
from ..qr.codec import GymCheckinQR, MemberQR, parse_qr
from ..sync.policy import push_attendance
from ..users.model import User
from ..users.service import SessionUser, fetch_users
from .model import AttendanceRecord

logger = logging.getLogger(__name__)


class AttendanceService:
    """Use case: record check-ins/check-outs, offline first.

    The record is appended to the cache before the remote write is attempted;
    a remote failure leaves it unsynced for the sync service to push later.
    """

    def __init__(self, cache: CacheManager, gateway: RemoteGateway):
        self._cache = cache
        self._gateway = gateway

    def _resolve_user(self, user_id: str) -> User:
        user = self._cache.find_user(user_id)
        if user:
            return user

        users = fetch_users(self._cache, self._gateway) or []
        user = next((u for u in users if u.user_id == user_id), None)
        if not user:
            raise ValidationError("Member does not exist")
        return user

    def _new_record_id(self) -> str:
        seen = {r.record_id for r in self._cache.attendance()}
        record_id = generate_local_id()
        while record_id in seen:
            record_id = generate_local_id()
        return record_id

    def record(
        self,
        user_id: str,
        attendance_type: AttendanceType | str,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        try:
            attendance_type = AttendanceType(attendance_type)
        except ValueError:
            raise ValidationError("Attendance type must be check-in or check-out")

        user = self._resolve_user(str(user_id))
        now = now or now_local()

        record = AttendanceRecord(
            record_id=self._new_record_id(),
            user_id=user.user_id,
            date=format_date(now),
            time=format_time(now),
            attendance_type=attendance_type,
            synced=False,
        )
        self._cache.append_attendance(record)

        if push_attendance(self._gateway, self._cache, [record]):
            return record.mark_synced()

        logger.info("Recorded %s for %s offline (id=%s)", attendance_type.value, user.user_id, record.record_id)
        return record

    def check_in_from_scan(self, session: SessionUser, payload: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        """Admin scans a member card, or a member scans the gym self check-in code."""
        scanned = parse_qr(payload)

        if session.role == Role.ADMIN:
            if not isinstance(scanned, MemberQR):
                raise ValidationError("Scan a member QR code to record attendance")
            return self.record(scanned.user_id, AttendanceType.CHECK_IN, now=now)

        if not isinstance(scanned, GymCheckinQR):
            raise ValidationError("This QR code is not valid for check-in")
        return self.record(session.user_id, AttendanceType.CHECK_IN, now=now)

    def check_out(self, session: SessionUser, *, now: Optional[datetime] = None) -> AttendanceRecord:
        return self.record(session.user_id, AttendanceType.CHECK_OUT, now=now)

    def get_history(self, user_id: Optional[str] = None, date: Optional[str] = None) -> list[AttendanceRecord]:
        records = self._cache.attendance()
        if user_id:
            records = [r for r in records if r.user_id == user_id]
        if date:
            records = [r for r in records if r.date == date]
        return sorted(records, key=lambda r: r.sort_key, reverse=True)

    def unsynced_count(self) -> int:
        return len(self._cache.unsynced_attendance())
