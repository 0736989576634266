from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.web import register_error_handlers
from .container import Container, build_container_from_settings
from .core.constants import DEFAULT_SYNC_INTERVAL_SECONDS
from .database.bootstrap import apply_schema, ensure_demo_users, list_tables
from .subscriptions.controller import register as register_subscriptions
from .sync.scheduler import shutdown_scheduler, start_scheduler
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    """App factory. Pass a prebuilt container to skip remote/database wiring."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        backend = getattr(settings, "REMOTE_BACKEND", "mysql")
        logger.info("Starting with settings=%s backend=%s", settings_module, backend)

        if backend == "mysql":
            db_config = getattr(settings, "DB_CONFIG")
            if getattr(settings, "AUTO_INIT_DB", False):
                schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
                apply_schema(db_config, schema_path=schema_path)
                logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
            if getattr(settings, "AUTO_SEED_DB", False):
                ensure_demo_users(db_config)
                logger.info("Demo accounts ready")

        container = build_container_from_settings(settings)

        interval = int(getattr(settings, "SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS))
        if start_scheduler(container.sync_service, interval):
            atexit.register(shutdown_scheduler)

    app.extensions["gym_container"] = container

    register_error_handlers(app)
    register_users(app, container)
    register_attendance(app, container)
    register_subscriptions(app, container)

    return app
