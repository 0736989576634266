from __future__ import annotations

from flask import Flask, request

from ..common.web import admin_required, current_user, json_body, login_required, ok
from ..container import Container
from ..qr.codec import generate_gym_payload


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/scan", methods=["POST"], endpoint="attendance_scan")
    @login_required
    def attendance_scan():
        """Admin scans a member card, or a member scans the gym code."""
        record = container.attendance_service.check_in_from_scan(current_user(), json_body().get("payload", ""))
        return ok(record.to_dict(), 201)

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="attendance_checkout")
    @login_required
    def attendance_checkout():
        record = container.attendance_service.check_out(current_user())
        return ok(record.to_dict(), 201)

    @app.route("/api/admin/attendance", methods=["POST"], endpoint="admin_record_attendance")
    @admin_required
    def admin_record_attendance():
        data = json_body()
        record = container.attendance_service.record(data.get("userId", ""), data.get("type", ""))
        return ok(record.to_dict(), 201)

    @app.route("/api/attendance/history", endpoint="attendance_history")
    @login_required
    def attendance_history():
        s_user = current_user()
        user_id = request.args.get("userId") if s_user.is_admin else s_user.user_id
        records = container.attendance_service.get_history(user_id=user_id, date=request.args.get("date"))
        return ok([r.to_dict() for r in records])

    @app.route("/api/sync/status", endpoint="sync_status")
    @login_required
    def sync_status():
        return ok({"unsynced": container.attendance_service.unsynced_count()})

    @app.route("/api/sync", methods=["POST"], endpoint="sync_now")
    @login_required
    def sync_now():
        report = container.sync_service.sync_offline_data()
        return ok(report.to_dict())

    @app.route("/api/admin/gym-qr", endpoint="admin_gym_qr")
    @admin_required
    def admin_gym_qr():
        return ok({"gym": container.gym_name, "payload": generate_gym_payload(container.gym_name)})
