from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from ..attendance.model import AttendanceRecord
from ..core.constants import (
    CACHE_KEY_ATTENDANCE,
    CACHE_KEY_SIGNED_IN_USERS,
    CACHE_KEY_PENDING_USERS,
    CACHE_KEY_SUBSCRIPTIONS,
    CACHE_KEY_USERS,
)
from ..subscriptions.model import Subscription
from ..users.model import User
from .store import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode_rows(key: str, rows: object, decode: Callable[[dict], T]) -> list[T]:
    if not isinstance(rows, list):
        return []
    out: list[T] = []
    for row in rows:
        try:
            out.append(decode(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable cached %s row: %s", key, e)
    return out


class CacheManager:
    """In-memory replica of the remote data, written through to a CacheStore.

    One lock serializes every mutation together with its store write, so a
    reader never sees a half-applied change. Remote calls never happen here.
    """

    def __init__(self, store: CacheStore):
        self._store = store
        self._lock = threading.RLock()
        self._users: list[User] = []
        self._subscriptions: list[Subscription] = []
        self._pending_users: list[User] = []
        self._attendance: list[AttendanceRecord] = []
        self._in_flight: set[str] = set()
        self._signed_in: dict[str, User] = {}

    # ---- lifecycle ----

    def load(self) -> None:
        """Load the last snapshot from the store (app start)."""
        with self._lock:
            self._users = _decode_rows(CACHE_KEY_USERS, self._store.get(CACHE_KEY_USERS), User.from_dict)
            self._subscriptions = _decode_rows(
                CACHE_KEY_SUBSCRIPTIONS, self._store.get(CACHE_KEY_SUBSCRIPTIONS), Subscription.from_dict
            )
            self._pending_users = _decode_rows(
                CACHE_KEY_PENDING_USERS, self._store.get(CACHE_KEY_PENDING_USERS), User.from_dict
            )
            self._attendance = _decode_rows(
                CACHE_KEY_ATTENDANCE, self._store.get(CACHE_KEY_ATTENDANCE), AttendanceRecord.from_dict
            )
            raw_signed_in = self._store.get(CACHE_KEY_SIGNED_IN_USERS)
            signed_in = _decode_rows(
                CACHE_KEY_SIGNED_IN_USERS,
                list(raw_signed_in.values()) if isinstance(raw_signed_in, dict) else [],
                User.from_dict,
            )
            self._signed_in = {u.user_id: u for u in signed_in}
            logger.debug(
                "Cache loaded: users=%d subscriptions=%d attendance=%d",
                len(self._users),
                len(self._subscriptions),
                len(self._attendance),
            )

    def teardown(self, user_id: str) -> None:
        """Drop one user's session state (logout).

        Other signed-in users are untouched, and attendance stays so unsynced
        records survive.
        """
        with self._lock:
            if self._signed_in.pop(user_id, None) is not None:
                self._persist_signed_in()

    # ---- session ----

    def current_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._signed_in.get(user_id)

    def set_current_user(self, user: User) -> None:
        with self._lock:
            self._signed_in[user.user_id] = user
            self._persist_signed_in()

    def _persist_signed_in(self) -> None:
        self._store.set(CACHE_KEY_SIGNED_IN_USERS, {uid: u.to_dict() for uid, u in self._signed_in.items()})

    # ---- users / subscriptions ----

    def users(self) -> list[User]:
        with self._lock:
            return list(self._users)

    def pending_users(self) -> list[User]:
        with self._lock:
            return list(self._pending_users)

    def find_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self._users if u.user_id == user_id), None)

    def replace_users(self, users: Sequence[User]) -> None:
        with self._lock:
            self._users = list(users)
            self._store.set(CACHE_KEY_USERS, [u.to_dict() for u in self._users])

    def replace_pending_users(self, users: Sequence[User]) -> None:
        with self._lock:
            self._pending_users = list(users)
            self._store.set(CACHE_KEY_PENDING_USERS, [u.to_dict() for u in self._pending_users])

    def upsert_user(self, user: User) -> None:
        with self._lock:
            others = [u for u in self._users if u.user_id != user.user_id]
            self._users = others + [user]
            self._store.set(CACHE_KEY_USERS, [u.to_dict() for u in self._users])

    def subscriptions(self) -> list[Subscription]:
        with self._lock:
            return list(self._subscriptions)

    def replace_subscriptions(self, subscriptions: Sequence[Subscription]) -> None:
        with self._lock:
            self._subscriptions = list(subscriptions)
            self._store.set(CACHE_KEY_SUBSCRIPTIONS, [s.to_dict() for s in self._subscriptions])

    # ---- attendance ----

    def attendance(self) -> list[AttendanceRecord]:
        with self._lock:
            return list(self._attendance)

    def unsynced_attendance(self, *, include_in_flight: bool = True) -> list[AttendanceRecord]:
        with self._lock:
            return [
                r
                for r in self._attendance
                if not r.synced and (include_in_flight or r.record_id not in self._in_flight)
            ]

    def claim_for_push(self, records: Sequence[AttendanceRecord]) -> list[AttendanceRecord]:
        """Reserve records for one remote push.

        Records already synced in the replica, or claimed by a push still in
        progress, are left out. Every claim must be released.
        """
        with self._lock:
            synced = {r.record_id for r in self._attendance if r.synced}
            claimed = [
                r
                for r in records
                if not r.synced and r.record_id not in synced and r.record_id not in self._in_flight
            ]
            self._in_flight.update(r.record_id for r in claimed)
            return claimed

    def release_push(self, record_ids: Iterable[str]) -> None:
        with self._lock:
            self._in_flight.difference_update(record_ids)

    def append_attendance(self, record: AttendanceRecord) -> None:
        with self._lock:
            self._attendance.append(record)
            self._persist_attendance()

    def mark_synced(self, record_ids: Iterable[str]) -> int:
        """Flip `synced` for the given ids. Already-synced records are left as is."""
        ids = set(record_ids)
        flipped = 0
        with self._lock:
            updated: list[AttendanceRecord] = []
            for r in self._attendance:
                if r.record_id in ids and not r.synced:
                    r = r.mark_synced()
                    flipped += 1
                updated.append(r)
            if flipped:
                self._attendance = updated
                self._persist_attendance()
        return flipped

    def merge_remote_attendance(self, remote: Sequence[AttendanceRecord]) -> None:
        """Replace the replica with the remote set, keeping every local-only record.

        Remote rows are acknowledged by definition, so they are stored synced.
        A local record the remote does not list is never dropped.
        """
        with self._lock:
            merged = {r.record_id: r.mark_synced() for r in remote}
            for r in self._attendance:
                if r.record_id not in merged:
                    merged[r.record_id] = r
            self._attendance = list(merged.values())
            self._persist_attendance()

    def _persist_attendance(self) -> None:
        self._store.set(CACHE_KEY_ATTENDANCE, [r.to_dict() for r in self._attendance])
