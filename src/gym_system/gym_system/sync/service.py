from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from ..attendance.model import AttendanceRecord
from ..cache.manager import CacheManager
from ..gateway.base import GatewayResult, RemoteGateway
from ..subscriptions.model import Subscription
from ..users.model import User
from .policy import push_attendance

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SyncReport:
    attempted: int
    synced: int
    failed: int
    refreshed: bool

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "synced": self.synced,
            "failed": self.failed,
            "refreshed": self.refreshed,
        }


class SyncService:
    """Reconcile the local cache with the remote store.

    Pushes unsynced attendance, then pulls a fresh snapshot. Remote failures
    only leave things for the next run; nothing here raises for them and no
    cached record is ever removed.
    """

    def __init__(self, cache: CacheManager, gateway: RemoteGateway):
        self._cache = cache
        self._gateway = gateway

    def sync_offline_data(self) -> SyncReport:
        pending = self._cache.unsynced_attendance(include_in_flight=False)
        acknowledged = push_attendance(self._gateway, self._cache, pending) if pending else []

        refreshed = self.refresh_data()
        report = SyncReport(
            attempted=len(pending),
            synced=len(acknowledged),
            failed=len(pending) - len(acknowledged),
            refreshed=refreshed,
        )
        if pending:
            logger.info("Sync: %d/%d attendance records pushed", report.synced, report.attempted)
        return report

    @staticmethod
    def _decode(what: str, result: GatewayResult, decode: Callable[[dict], T]) -> list[T] | None:
        if not result.success:
            logger.warning("Refresh of %s failed, keeping cached copy: %s", what, result.error)
            return None
        try:
            return [decode(row) for row in result.data or []]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Refresh of %s returned unreadable rows, keeping cached copy: %s", what, e)
            return None

    def refresh_data(self) -> bool:
        """Pull every collection. Returns True only when all pulls succeeded."""
        users = self._decode("users", self._gateway.get_users(), User.from_dict)
        if users is not None:
            self._cache.replace_users(users)

        subscriptions = self._decode("subscriptions", self._gateway.get_subscriptions(), Subscription.from_dict)
        if subscriptions is not None:
            self._cache.replace_subscriptions(subscriptions)

        attendance = self._decode("attendance", self._gateway.get_attendance(), AttendanceRecord.from_dict)
        if attendance is not None:
            self._cache.merge_remote_attendance(attendance)

        pending = self._decode("pending users", self._gateway.get_pending_users(), User.from_dict)
        if pending is not None:
            self._cache.replace_pending_users(pending)

        return all(x is not None for x in (users, subscriptions, attendance, pending))
