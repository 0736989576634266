from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .attendance.service import AttendanceService
from .cache.manager import CacheManager
from .cache.store import CacheStore, SQLiteCacheStore
from .core.constants import DEFAULT_GYM_NAME, DEFAULT_QR_MAX_AGE_DAYS, DEFAULT_REMOTE_TIMEOUT_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .gateway.base import RemoteGateway
from .gateway.mysql_gateway import MySQLGateway
from .gateway.sheets_gateway import SheetsGateway
from .subscriptions.service import SubscriptionService
from .sync.service import SyncService
from .users.service import AuthService, UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    gym_name: str

    cache: CacheManager
    gateway: RemoteGateway

    auth_service: AuthService
    user_service: UserService
    attendance_service: AttendanceService
    subscription_service: SubscriptionService
    sync_service: SyncService


def build_gateway(
    backend: str,
    *,
    db_config: Optional[dict] = None,
    sheets_api_url: str = "",
    sheets_api_key: Optional[str] = None,
    timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
) -> RemoteGateway:
    """Pick the remote store once, at startup."""
    backend = (backend or "mysql").strip().lower()

    if backend == "sheets":
        if not sheets_api_url:
            raise ValueError("SHEETS_API_URL is required when REMOTE_BACKEND=sheets")
        return SheetsGateway(sheets_api_url, api_key=sheets_api_key, timeout=timeout)

    if backend == "mysql":
        db_config = db_config or {}
        config = DBConfig(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
            connect_timeout=int(timeout),
        )
        return MySQLGateway(DatabaseConnection.get_instance(config))

    raise ValueError(f"Unknown REMOTE_BACKEND: {backend!r} (expected 'mysql' or 'sheets')")


def build_container(
    *,
    gateway: RemoteGateway,
    cache_store: CacheStore,
    gym_name: str = DEFAULT_GYM_NAME,
    qr_max_age_days: int = DEFAULT_QR_MAX_AGE_DAYS,
    allow_offline_login: bool = True,
    allow_offline_registration: bool = False,
) -> Container:
    cache = CacheManager(cache_store)
    cache.load()

    sync_service = SyncService(cache, gateway)
    auth_service = AuthService(
        cache,
        gateway,
        qr_max_age_days=qr_max_age_days,
        allow_offline_login=allow_offline_login,
        allow_offline_registration=allow_offline_registration,
    )
    user_service = UserService(cache, gateway)
    attendance_service = AttendanceService(cache, gateway)
    subscription_service = SubscriptionService(cache, gateway, sync_service)

    logger.info("Container ready (gateway=%s)", type(gateway).__name__)
    return Container(
        gym_name=gym_name,
        cache=cache,
        gateway=gateway,
        auth_service=auth_service,
        user_service=user_service,
        attendance_service=attendance_service,
        subscription_service=subscription_service,
        sync_service=sync_service,
    )


def build_container_from_settings(settings) -> Container:
    timeout = float(getattr(settings, "REMOTE_TIMEOUT_SECONDS", DEFAULT_REMOTE_TIMEOUT_SECONDS))
    gateway = build_gateway(
        getattr(settings, "REMOTE_BACKEND", "mysql"),
        db_config=getattr(settings, "DB_CONFIG", None),
        sheets_api_url=getattr(settings, "SHEETS_API_URL", ""),
        sheets_api_key=getattr(settings, "SHEETS_API_KEY", None),
        timeout=timeout,
    )
    return build_container(
        gateway=gateway,
        cache_store=SQLiteCacheStore(getattr(settings, "CACHE_PATH", "gym_cache.sqlite3")),
        gym_name=getattr(settings, "GYM_NAME", DEFAULT_GYM_NAME),
        qr_max_age_days=int(getattr(settings, "QR_MAX_AGE_DAYS", DEFAULT_QR_MAX_AGE_DAYS)),
        allow_offline_login=bool(getattr(settings, "ALLOW_OFFLINE_LOGIN", True)),
        allow_offline_registration=bool(getattr(settings, "ALLOW_OFFLINE_REGISTRATION", False)),
    )
