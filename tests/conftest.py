from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Callable, Optional, Sequence

import pytest
from werkzeug.security import generate_password_hash

from src.gym_system.gym_system.cache.manager import CacheManager
from src.gym_system.gym_system.cache.store import MemoryCacheStore
from src.gym_system.gym_system.common.datetime_utils import epoch_millis
from src.gym_system.gym_system.core.enums import Role, SubscriptionStatus
from src.gym_system.gym_system.gateway.base import GatewayResult
from src.gym_system.gym_system.qr.codec import generate_member_payload
from src.gym_system.gym_system.users.model import User
from src.gym_system.gym_system.users.service import SessionUser


class FakeGateway:
    """In-memory remote store. Flip `online` to simulate an unreachable backend."""

    def __init__(self, *, supports_batch: bool = True):
        self.supports_batch = supports_batch
        self.online = True
        self.fail_batch = False
        self.reject_attendance_ids: set[str] = set()
        self.users: dict[str, dict] = {}
        self.subscriptions: list[dict] = []
        self.attendance: dict[str, dict] = {}
        self.calls: Counter = Counter()
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq}"

    def _call(self, name: str) -> Optional[GatewayResult]:
        self.calls[name] += 1
        if not self.online:
            return GatewayResult.fail("Network error")
        return None

    def get_users(self) -> GatewayResult:
        return self._call("get_users") or GatewayResult.ok([dict(u) for u in self.users.values()])

    def get_pending_users(self) -> GatewayResult:
        return self._call("get_pending_users") or GatewayResult.ok(
            [dict(u) for u in self.users.values() if u["subscriptionStatus"] == SubscriptionStatus.PENDING.value]
        )

    def add_user(self, user: dict) -> GatewayResult:
        failed = self._call("add_user")
        if failed:
            return failed
        user_id = self._next_id("u")
        self.users[user_id] = {**user, "id": user_id}
        return GatewayResult.ok(user_id)

    def update_user(self, user_id: str, updates: dict) -> GatewayResult:
        failed = self._call("update_user")
        if failed:
            return failed
        if user_id not in self.users:
            return GatewayResult.fail("not found")
        self.users[user_id].update(updates)
        return GatewayResult.ok()

    def delete_user(self, user_id: str) -> GatewayResult:
        failed = self._call("delete_user")
        if failed:
            return failed
        if self.users.pop(user_id, None) is None:
            return GatewayResult.fail("not found")
        return GatewayResult.ok()

    def approve_user(self, user_id: str, subscription: dict) -> GatewayResult:
        failed = self._call("approve_user")
        if failed:
            return failed
        subscription_id = self._next_id("s")
        self.subscriptions.append({**subscription, "id": subscription_id, "userId": user_id})
        self.users[user_id]["subscriptionStatus"] = SubscriptionStatus.ACTIVE.value
        return GatewayResult.ok(subscription_id)

    def get_subscriptions(self) -> GatewayResult:
        return self._call("get_subscriptions") or GatewayResult.ok([dict(s) for s in self.subscriptions])

    def add_subscription(self, subscription: dict) -> GatewayResult:
        failed = self._call("add_subscription")
        if failed:
            return failed
        subscription_id = self._next_id("s")
        self.subscriptions.append({**subscription, "id": subscription_id})
        return GatewayResult.ok(subscription_id)

    def get_attendance(self) -> GatewayResult:
        return self._call("get_attendance") or GatewayResult.ok([dict(r) for r in self.attendance.values()])

    def record_attendance(self, record: dict) -> GatewayResult:
        failed = self._call("record_attendance")
        if failed:
            return failed
        if record["id"] in self.reject_attendance_ids:
            return GatewayResult.fail("rejected")
        self.attendance[record["id"]] = {**record, "synced": True}
        return GatewayResult.ok(record["id"])

    def record_attendance_batch(self, records: Sequence[dict]) -> GatewayResult:
        failed = self._call("record_attendance_batch")
        if failed:
            return failed
        if self.fail_batch:
            return GatewayResult.fail("batch endpoint unavailable")
        for record in records:
            self.attendance[record["id"]] = {**record, "synced": True}
        return GatewayResult.ok([r["id"] for r in records])


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 6, 10, 9, 30, 0)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def cache() -> CacheManager:
    return CacheManager(MemoryCacheStore())


@pytest.fixture
def make_user(fixed_now) -> Callable[..., User]:
    def _make(
        user_id: str,
        name: str,
        *,
        password: str = "secret",
        role: Role = Role.MEMBER,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ) -> User:
        return User(
            user_id=user_id,
            name=name,
            password=generate_password_hash(password),
            role=role,
            qr_code=generate_member_payload(
                user_id=user_id, name=name, role=role.value, timestamp=epoch_millis(fixed_now)
            ),
            subscription_status=status,
            created_at=fixed_now.isoformat(timespec="seconds"),
        )

    return _make


@pytest.fixture
def seed(gateway, cache) -> Callable[..., None]:
    """Put users in both the remote fake and the local cache."""

    def _seed(*users: User) -> None:
        for user in users:
            gateway.users[user.user_id] = user.to_dict()
            cache.upsert_user(user)

    return _seed


@pytest.fixture
def admin(make_user, seed) -> User:
    user = make_user("admin-1", "admin", password="admin123", role=Role.ADMIN)
    seed(user)
    return user


@pytest.fixture
def member(make_user, seed) -> User:
    user = make_user("member-1", "Sara", password="sara-pass")
    seed(user)
    return user


@pytest.fixture
def admin_session(admin) -> SessionUser:
    return SessionUser.from_user(admin)


@pytest.fixture
def member_session(member) -> SessionUser:
    return SessionUser.from_user(member)
