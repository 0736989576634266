from __future__ import annotations

from flask import Flask, request

from ..common.web import admin_required, current_user, json_body, login_required, ok
from ..container import Container
from ..core.enums import PlanType
from ..core.exceptions import ValidationError
from .lifecycle import PLAN_DURATIONS, plan_price


def register(app: Flask, container: Container) -> None:
    @app.route("/api/subscriptions/plans", endpoint="subscription_plans")
    def subscription_plans():
        plans = [
            {
                "type": plan.value,
                "months": PLAN_DURATIONS[plan].months + 12 * PLAN_DURATIONS[plan].years,
                "price": plan_price(plan),
            }
            for plan in PlanType
        ]
        return ok(plans)

    @app.route("/api/me/subscription", endpoint="my_subscription")
    @login_required
    def my_subscription():
        summary = container.subscription_service.get_subscription_status(current_user().user_id)
        return ok(summary.to_dict())

    @app.route("/api/admin/members/<user_id>/subscription", endpoint="member_subscription")
    @admin_required
    def member_subscription(user_id: str):
        summary = container.subscription_service.get_subscription_status(user_id)
        return ok(summary.to_dict())

    @app.route("/api/admin/members/<user_id>/approve", methods=["POST"], endpoint="approve_member")
    @admin_required
    def approve_member(user_id: str):
        data = json_body()
        subscription = container.subscription_service.approve_user(
            current_user(),
            user_id,
            data.get("type", ""),
            data.get("startDate", ""),
            data.get("endDate") or None,
        )
        return ok(subscription.to_dict(), 201)

    @app.route("/api/admin/members/<user_id>/subscriptions", methods=["POST"], endpoint="renew_member")
    @admin_required
    def renew_member(user_id: str):
        data = json_body()
        subscription = container.subscription_service.add_subscription(
            current_user(),
            user_id,
            data.get("type", ""),
            data.get("startDate", ""),
            data.get("endDate") or None,
        )
        return ok(subscription.to_dict(), 201)

    @app.route("/api/admin/subscriptions/expiring", endpoint="expiring_subscriptions")
    @admin_required
    def expiring_subscriptions():
        try:
            within_days = int(request.args.get("days", 7))
        except ValueError:
            raise ValidationError("days must be a whole number")
        summaries = container.subscription_service.list_expiring(within_days=within_days)
        return ok([s.to_dict() for s in summaries])
