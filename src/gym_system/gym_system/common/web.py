"""Flask glue shared by the JSON controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    RemoteError,
    ValidationError,
)
from ..users.service import SessionUser

logger = logging.getLogger(__name__)

SESSION_KEY = "user"


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def current_user() -> Optional[SessionUser]:
    raw = session.get(SESSION_KEY)
    if not raw:
        return None
    try:
        return SessionUser.from_dict(raw)
    except (KeyError, TypeError, ValueError):
        session.pop(SESSION_KEY, None)
        return None


def start_session(user: SessionUser) -> None:
    session.clear()
    session[SESSION_KEY] = user.to_dict()


def end_session() -> None:
    session.clear()


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            return fail("Please log in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = current_user()
        if user is None:
            return fail("Please log in to continue", 401)
        if user.role != Role.ADMIN:
            return fail("Admin permission required", 403)
        return view(*args, **kwargs)

    return wrapper


_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (RemoteError, 503),
)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        for error_type, status in _STATUS_BY_ERROR:
            if isinstance(e, error_type):
                return fail(str(e), status)
        return fail(str(e), 400)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return fail(e.description or e.name, e.code or 500)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        if app.config.get("DEBUG"):
            return fail(f"Internal error: {e}", 500)
        return fail("Internal error", 500)
