from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..cache.manager import CacheManager
from ..common.datetime_utils import now_local
from ..common.ids import generate_local_id
from ..common.validators import optional_str, require_non_empty
from ..core.constants import DEFAULT_QR_MAX_AGE_DAYS
from ..core.enums import Role, SubscriptionStatus
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    RegistrationError,
    RemoteError,
    ValidationError,
)
from ..gateway.base import RemoteGateway
from ..qr.codec import generate_member_payload, parse_member_qr
from .model import USER_WIRE_FIELDS, User

logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid name or password"


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: str
    name: str
    role: Role
    subscription_status: SubscriptionStatus

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(
            user_id=user.user_id,
            name=user.name,
            role=user.role,
            subscription_status=user.subscription_status,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "role": self.role.value,
            "subscriptionStatus": self.subscription_status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionUser":
        return cls(
            user_id=str(data["id"]),
            name=str(data["name"]),
            role=Role(data["role"]),
            subscription_status=SubscriptionStatus(data["subscriptionStatus"]),
        )


def fetch_users(cache: CacheManager, gateway: RemoteGateway) -> Optional[list[User]]:
    """Pull users from the remote store into the cache. None when unreachable."""
    result = gateway.get_users()
    if not result.success:
        return None
    try:
        users = [User.from_dict(row) for row in result.data or []]
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Remote user rows are unreadable: %s", e)
        return None
    cache.replace_users(users)
    return users


def _password_matches(user: User, password: str) -> bool:
    try:
        return check_password_hash(user.password, password)
    except (TypeError, ValueError):
        # e.g. a corrupted or placeholder value in the password column
        return False


def require_admin(session: Optional[SessionUser]) -> None:
    if not session or not session.is_admin:
        raise AuthorizationError("Admin permission required")


def _new_user(
    *,
    name: str,
    password: str,
    role: Role,
    subscription_status: SubscriptionStatus,
    phone: Optional[str],
    email: Optional[str],
) -> User:
    return User(
        user_id="",
        name=name,
        password=generate_password_hash(password),
        role=role,
        qr_code="",
        subscription_status=subscription_status,
        created_at=now_local().isoformat(timespec="seconds"),
        phone=optional_str(phone),
        email=optional_str(email),
    )


def _with_member_qr(user: User, *, timestamp: Optional[int] = None) -> User:
    # The payload embeds the id, so it can only be built after id assignment.
    qr_code = generate_member_payload(
        user_id=user.user_id, name=user.name, role=user.role.value, timestamp=timestamp
    )
    return user.with_updates(qr_code=qr_code)


def _check_unique_name(users: list[User], name: str) -> None:
    wanted = name.casefold()
    if any(u.name.casefold() == wanted for u in users):
        raise RegistrationError("Name is already taken")


class AuthService:
    """Use case: resolve identities (password login, QR login, registration)."""

    def __init__(
        self,
        cache: CacheManager,
        gateway: RemoteGateway,
        *,
        qr_max_age_days: int = DEFAULT_QR_MAX_AGE_DAYS,
        allow_offline_login: bool = True,
        allow_offline_registration: bool = False,
    ):
        self._cache = cache
        self._gateway = gateway
        self._qr_max_age = timedelta(days=qr_max_age_days) if qr_max_age_days > 0 else None
        self._allow_offline_login = allow_offline_login
        self._allow_offline_registration = allow_offline_registration

    def _users_for_login(self, attempt: str) -> list[User]:
        users = fetch_users(self._cache, self._gateway)
        if users is not None:
            return users

        if not self._allow_offline_login:
            raise RemoteError("Remote store is unreachable, try again later")

        # Cached credentials may be stale (changed password, deleted account).
        logger.warning("Remote store unreachable; %s checked against cached users", attempt)
        return self._cache.users()

    def _start_session(self, user: User) -> SessionUser:
        self._cache.set_current_user(user)
        return SessionUser.from_user(user)

    def login(self, name: str, password: str) -> SessionUser:
        name = require_non_empty(name, "Name")
        password = require_non_empty(password, "Password")

        for user in self._users_for_login(f"login of {name!r}"):
            if user.name == name and _password_matches(user, password):
                return self._start_session(user)
        raise AuthenticationError(_INVALID_CREDENTIALS)

    def login_with_qr(self, payload: str, *, now: Optional[datetime] = None) -> SessionUser:
        payload = (payload or "").strip()
        scanned = parse_member_qr(payload)

        if self._qr_max_age is not None:
            now = now or now_local()
            if now - scanned.issued_at() > self._qr_max_age:
                raise AuthenticationError("QR code has expired, ask the front desk for a new one")

        for user in self._users_for_login(f"QR login of {scanned.user_id!r}"):
            if user.user_id == scanned.user_id and user.qr_code == payload:
                return self._start_session(user)
        raise AuthenticationError("Invalid QR code")

    def register(
        self,
        name: str,
        password: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> SessionUser:
        name = require_non_empty(name, "Name", error=RegistrationError)
        password = require_non_empty(password, "Password", error=RegistrationError)

        users = fetch_users(self._cache, self._gateway)
        _check_unique_name(self._cache.users() if users is None else users, name)

        user = _new_user(
            name=name,
            password=password,
            role=Role.MEMBER,
            subscription_status=SubscriptionStatus.PENDING,
            phone=phone,
            email=email,
        )
        wire = {k: v for k, v in user.to_dict().items() if k != "id"}
        result = self._gateway.add_user(wire)

        if result.success:
            user = _with_member_qr(user.with_updates(user_id=str(result.data)))
            written = self._gateway.update_user(user.user_id, {"qrCode": user.qr_code})
            if not written.success:
                logger.warning("QR code of new user %s not stored remotely: %s", user.user_id, written.error)
        elif self._allow_offline_registration:
            logger.warning("Remote store rejected registration (%s); keeping %r locally", result.error, name)
            user = _with_member_qr(user.with_updates(user_id=generate_local_id()))
        else:
            raise RemoteError("Registration failed, try again later")

        self._cache.upsert_user(user)
        self._cache.replace_pending_users(self._cache.pending_users() + [user])
        logger.info("Registered member %s", user.user_id)
        return self._start_session(user)

    def logout(self, session: Optional[SessionUser]) -> None:
        if session is None:
            return
        self._cache.teardown(session.user_id)
        logger.info("User %s logged out", session.user_id)


class UserService:
    """Use case: manage members (admin)."""

    def __init__(self, cache: CacheManager, gateway: RemoteGateway):
        self._cache = cache
        self._gateway = gateway

    def _get_user(self, user_id: str) -> User:
        user = self._cache.find_user(user_id)
        if not user:
            users = fetch_users(self._cache, self._gateway) or []
            user = next((u for u in users if u.user_id == user_id), None)
        if not user:
            raise ValidationError("Member does not exist")
        return user

    def get_profile(self, session: SessionUser, user_id: Optional[str] = None) -> User:
        """Own profile, or any member's for an admin."""
        user_id = user_id or session.user_id
        if user_id != session.user_id:
            require_admin(session)
        return self._get_user(user_id)

    def add_user(
        self,
        session: SessionUser,
        *,
        name: str,
        password: str,
        role: Role | str = Role.MEMBER,
        subscription_status: SubscriptionStatus | str = SubscriptionStatus.PENDING,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        require_admin(session)
        name = require_non_empty(name, "Name")
        password = require_non_empty(password, "Password")
        try:
            role = Role(role)
            subscription_status = SubscriptionStatus(subscription_status)
        except ValueError:
            raise ValidationError("Unknown role or subscription status")

        users = fetch_users(self._cache, self._gateway)
        _check_unique_name(self._cache.users() if users is None else users, name)

        user = _new_user(
            name=name,
            password=password,
            role=role,
            subscription_status=subscription_status,
            phone=phone,
            email=email,
        )
        result = self._gateway.add_user({k: v for k, v in user.to_dict().items() if k != "id"})
        if not result.success:
            raise RemoteError("Could not add member, try again later")

        user = _with_member_qr(user.with_updates(user_id=str(result.data)))
        written = self._gateway.update_user(user.user_id, {"qrCode": user.qr_code})
        if not written.success:
            logger.warning("QR code of new user %s not stored remotely: %s", user.user_id, written.error)

        self._cache.upsert_user(user)
        return user

    def _coerce_changes(self, changes: Mapping[str, Any]) -> dict:
        unknown = set(changes) - set(USER_WIRE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        out = dict(changes)
        try:
            if "name" in out:
                out["name"] = require_non_empty(out["name"], "Name")
            if "password" in out:
                out["password"] = generate_password_hash(require_non_empty(out["password"], "Password"))
            if "role" in out:
                out["role"] = Role(out["role"])
            if "subscription_status" in out:
                out["subscription_status"] = SubscriptionStatus(out["subscription_status"])
        except ValueError:
            raise ValidationError("Unknown role or subscription status")
        for key in ("phone", "email"):
            if key in out:
                out[key] = optional_str(out[key])
        return out

    def _save(self, user: User, changes: dict) -> User:
        """Apply locally, then push. The local edit is kept even if the push fails."""
        updated = user.with_updates(**changes)
        self._cache.upsert_user(updated)

        wire = updated.to_dict()
        updates = {USER_WIRE_FIELDS[k]: wire[USER_WIRE_FIELDS[k]] for k in changes}
        result = self._gateway.update_user(user.user_id, updates)
        if not result.success:
            raise RemoteError("Change saved on this device only, sync with the server failed")
        return updated

    def update_user(self, session: SessionUser, user_id: str, **changes: Any) -> User:
        require_admin(session)
        coerced = self._coerce_changes(changes)
        user = self._get_user(user_id)
        if not coerced:
            return user
        return self._save(user, coerced)

    def reissue_qr_code(self, session: SessionUser, user_id: str, *, timestamp: Optional[int] = None) -> User:
        """Replace a member's QR token; the previous card stops working."""
        require_admin(session)
        user = self._get_user(user_id)
        reissued = _with_member_qr(user, timestamp=timestamp)
        return self._save(user, {"qr_code": reissued.qr_code})

    def delete_user(self, session: SessionUser, user_id: str) -> None:
        require_admin(session)
        user = self._get_user(user_id)
        if user.is_admin:
            raise ValidationError("Admin accounts cannot be deleted")

        result = self._gateway.delete_user(user_id)
        if not result.success:
            raise RemoteError("Could not delete member, try again later")

        self._cache.replace_users([u for u in self._cache.users() if u.user_id != user_id])
        self._cache.replace_pending_users([u for u in self._cache.pending_users() if u.user_id != user_id])

    def list_pending(self, session: SessionUser) -> list[User]:
        require_admin(session)
        result = self._gateway.get_pending_users()
        if result.success:
            try:
                pending = [User.from_dict(row) for row in result.data or []]
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Remote pending rows are unreadable: %s", e)
            else:
                self._cache.replace_pending_users(pending)
                return pending
        return self._cache.pending_users()

    def list_members(self, session: SessionUser) -> list[User]:
        require_admin(session)
        users = fetch_users(self._cache, self._gateway)
        if users is None:
            users = self._cache.users()
        return [u for u in users if u.role == Role.MEMBER]
