from __future__ import annotations

from flask import Flask

from ..common.web import (
    admin_required,
    current_user,
    end_session,
    json_body,
    login_required,
    ok,
    start_session,
)
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.login(data.get("name", ""), data.get("password", ""))
        start_session(s_user)
        return ok(s_user.to_dict())

    @app.route("/api/auth/login/qr", methods=["POST"], endpoint="login_qr")
    def login_qr():
        s_user = container.auth_service.login_with_qr(json_body().get("payload", ""))
        start_session(s_user)
        return ok(s_user.to_dict())

    @app.route("/api/auth/register", methods=["POST"], endpoint="register")
    def register_member():
        data = json_body()
        s_user = container.auth_service.register(
            data.get("name", ""),
            data.get("password", ""),
            phone=data.get("phone"),
            email=data.get("email"),
        )
        start_session(s_user)
        return ok(s_user.to_dict(), 201)

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        container.auth_service.logout(current_user())
        end_session()
        return ok()

    @app.route("/api/me", endpoint="me")
    @login_required
    def me():
        user = container.user_service.get_profile(current_user())
        return ok(user.to_public_dict())

    @app.route("/api/admin/members", endpoint="admin_members")
    @admin_required
    def admin_members():
        users = container.user_service.list_members(current_user())
        return ok([u.to_public_dict() for u in users])

    @app.route("/api/admin/members/pending", endpoint="admin_pending_members")
    @admin_required
    def admin_pending_members():
        users = container.user_service.list_pending(current_user())
        return ok([u.to_public_dict() for u in users])

    @app.route("/api/admin/members", methods=["POST"], endpoint="add_member")
    @admin_required
    def add_member():
        data = json_body()
        user = container.user_service.add_user(
            current_user(),
            name=data.get("name", ""),
            password=data.get("password", ""),
            role=data.get("role", "member"),
            subscription_status=data.get("subscriptionStatus", "pending"),
            phone=data.get("phone"),
            email=data.get("email"),
        )
        return ok(user.to_public_dict(), 201)

    @app.route("/api/admin/members/<user_id>", endpoint="member_detail")
    @admin_required
    def member_detail(user_id: str):
        user = container.user_service.get_profile(current_user(), user_id)
        return ok(user.to_public_dict())

    @app.route("/api/admin/members/<user_id>", methods=["PUT"], endpoint="update_member")
    @admin_required
    def update_member(user_id: str):
        wire_to_field = {
            "name": "name",
            "password": "password",
            "role": "role",
            "subscriptionStatus": "subscription_status",
            "phone": "phone",
            "email": "email",
        }
        data = json_body()
        changes = {field: data[key] for key, field in wire_to_field.items() if key in data}
        user = container.user_service.update_user(current_user(), user_id, **changes)
        return ok(user.to_public_dict())

    @app.route("/api/admin/members/<user_id>", methods=["DELETE"], endpoint="delete_member")
    @admin_required
    def delete_member(user_id: str):
        container.user_service.delete_user(current_user(), user_id)
        return ok()

    @app.route("/api/admin/members/<user_id>/qr", methods=["POST"], endpoint="reissue_member_qr")
    @admin_required
    def reissue_member_qr(user_id: str):
        user = container.user_service.reissue_qr_code(current_user(), user_id)
        return ok({"id": user.user_id, "qrCode": user.qr_code})
