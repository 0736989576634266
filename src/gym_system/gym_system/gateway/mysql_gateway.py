from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

import mysql.connector

from ..common.ids import generate_local_id
from ..core.enums import SubscriptionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_date, normalize_mysql_time
from .base import GatewayResult, RemoteGateway

logger = logging.getLogger(__name__)

# wire name -> column
_USER_COLUMNS = {
    "name": "name",
    "password": "password",
    "role": "role",
    "qrCode": "qr_code",
    "subscriptionStatus": "subscription_status",
    "phone": "phone",
    "email": "email",
}

_USER_SELECT = """
    SELECT user_id, name, password, role, qr_code, subscription_status, created_at, phone, email
    FROM users
"""


def _user_row(r: dict) -> dict:
    return {
        "id": r["user_id"],
        "name": r["name"],
        "password": r["password"],
        "role": r["role"],
        "qrCode": r.get("qr_code") or "",
        "subscriptionStatus": r["subscription_status"],
        "createdAt": str(r.get("created_at") or ""),
        "phone": r.get("phone"),
        "email": r.get("email"),
    }


def _subscription_row(r: dict) -> dict:
    return {
        "id": r["subscription_id"],
        "userId": r["user_id"],
        "startDate": normalize_mysql_date(r["start_date"]),
        "endDate": normalize_mysql_date(r["end_date"]),
        "type": r["plan_type"],
        "status": r["status"],
    }


def _attendance_row(r: dict) -> dict:
    return {
        "id": r["attendance_id"],
        "userId": r["user_id"],
        "date": normalize_mysql_date(r["work_date"]),
        "time": normalize_mysql_time(r["work_time"]),
        "type": r["attendance_type"],
        "synced": True,
    }


class MySQLGateway(RemoteGateway):
    """Remote store on MySQL. Every failure comes back as `success=False`."""

    supports_batch = True

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _run(self, op: str, fn: Callable[[], Any]) -> GatewayResult:
        try:
            return GatewayResult.ok(fn())
        except (mysql.connector.Error, OSError, LookupError) as e:
            logger.warning("MySQL %s failed: %s", op, e)
            return GatewayResult.fail(str(e) or type(e).__name__)

    # ---- users ----

    def get_users(self) -> GatewayResult:
        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(_USER_SELECT + " ORDER BY created_at DESC")
                return [_user_row(r) for r in fetchall(cur)]

        return self._run("get_users", op)

    def get_pending_users(self) -> GatewayResult:
        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(_USER_SELECT + " WHERE subscription_status=%s", (SubscriptionStatus.PENDING.value,))
                return [_user_row(r) for r in fetchall(cur)]

        return self._run("get_pending_users", op)

    def add_user(self, user: dict) -> GatewayResult:
        def op():
            user_id = user.get("id") or generate_local_id()
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(user_id, name, password, role, qr_code, subscription_status, created_at, phone, email)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        user_id,
                        user["name"],
                        user["password"],
                        user["role"],
                        user.get("qrCode") or "",
                        user["subscriptionStatus"],
                        user["createdAt"],
                        user.get("phone"),
                        user.get("email"),
                    ),
                )
            return user_id

        return self._run("add_user", op)

    def update_user(self, user_id: str, updates: dict) -> GatewayResult:
        sets = [(col, updates[key]) for key, col in _USER_COLUMNS.items() if key in updates]
        if not sets:
            return GatewayResult.ok()

        def op():
            assignments = ", ".join(f"{col}=%s" for col, _ in sets)
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"UPDATE users SET {assignments} WHERE user_id=%s",
                    tuple(v for _, v in sets) + (user_id,),
                )
                if cur.rowcount == 0:
                    cur.execute("SELECT user_id FROM users WHERE user_id=%s", (user_id,))
                    if not fetchone(cur):
                        raise LookupError(f"user {user_id} not found")

        return self._run("update_user", op)

    def delete_user(self, user_id: str) -> GatewayResult:
        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM users WHERE user_id=%s", (user_id,))
                return cur.rowcount > 0

        result = self._run("delete_user", op)
        if result.success and not result.data:
            return GatewayResult.fail(f"user {user_id} not found")
        return result

    def approve_user(self, user_id: str, subscription: dict) -> GatewayResult:
        def op():
            subscription_id = subscription.get("id") or generate_local_id()
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO subscriptions(subscription_id, user_id, start_date, end_date, plan_type, status)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        subscription_id,
                        user_id,
                        subscription["startDate"],
                        subscription["endDate"],
                        subscription["type"],
                        subscription["status"],
                    ),
                )
                cur.execute(
                    "UPDATE users SET subscription_status=%s WHERE user_id=%s",
                    (SubscriptionStatus.ACTIVE.value, user_id),
                )
            return subscription_id

        return self._run("approve_user", op)

    # ---- subscriptions ----

    def get_subscriptions(self) -> GatewayResult:
        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    SELECT subscription_id, user_id, start_date, end_date, plan_type, status
                    FROM subscriptions
                    ORDER BY end_date DESC
                    """
                )
                return [_subscription_row(r) for r in fetchall(cur)]

        return self._run("get_subscriptions", op)

    def add_subscription(self, subscription: dict) -> GatewayResult:
        def op():
            subscription_id = subscription.get("id") or generate_local_id()
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO subscriptions(subscription_id, user_id, start_date, end_date, plan_type, status)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        subscription_id,
                        subscription["userId"],
                        subscription["startDate"],
                        subscription["endDate"],
                        subscription["type"],
                        subscription["status"],
                    ),
                )
            return subscription_id

        return self._run("add_subscription", op)

    # ---- attendance ----

    def get_attendance(self) -> GatewayResult:
        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    SELECT attendance_id, user_id, work_date, work_time, attendance_type
                    FROM attendance
                    ORDER BY work_date DESC, work_time DESC
                    """
                )
                return [_attendance_row(r) for r in fetchall(cur)]

        return self._run("get_attendance", op)

    @staticmethod
    def _attendance_params(record: dict) -> tuple:
        return (record["id"], record["userId"], record["date"], record["time"], record["type"])

    # Replaying an already stored id is a no-op, so retries after a lost ack are safe.
    _INSERT_ATTENDANCE = """
        INSERT INTO attendance(attendance_id, user_id, work_date, work_time, attendance_type)
        VALUES(%s,%s,%s,%s,%s)
        ON DUPLICATE KEY UPDATE attendance_id=attendance_id
    """

    def record_attendance(self, record: dict) -> GatewayResult:
        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(self._INSERT_ATTENDANCE, self._attendance_params(record))
            return record["id"]

        return self._run("record_attendance", op)

    def record_attendance_batch(self, records: Sequence[dict]) -> GatewayResult:
        if not records:
            return GatewayResult.ok([])

        def op():
            with db_cursor(self._conn_factory) as (_, cur):
                cur.executemany(self._INSERT_ATTENDANCE, [self._attendance_params(r) for r in records])
            return [r["id"] for r in records]

        return self._run("record_attendance_batch", op)
