from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..cache.manager import CacheManager
from ..common.datetime_utils import DateLike, as_date, now_local
from ..core.constants import EXPIRING_SOON_DAYS
from ..core.enums import LifecycleState, PlanType, SubscriptionStatus
from ..core.exceptions import RemoteError, ValidationError
from ..gateway.base import RemoteGateway
from ..sync.service import SyncService
from ..users.model import User
from ..users.service import SessionUser, require_admin
from .lifecycle import (
    as_plan_type,
    bucket_status,
    compute_end_date,
    days_until_expiry,
    validate_subscription_dates,
)
from .model import Subscription, SubscriptionSummary

logger = logging.getLogger(__name__)


def _parse_date(value: DateLike, field_name: str) -> date:
    try:
        return as_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date")


class SubscriptionService:
    """Use case: subscription status read-model and admin approval/renewal."""

    def __init__(self, cache: CacheManager, gateway: RemoteGateway, sync: SyncService):
        self._cache = cache
        self._gateway = gateway
        self._sync = sync

    def _find_user(self, user_id: str) -> Optional[User]:
        user = self._cache.find_user(user_id)
        if user:
            return user
        return next((u for u in self._cache.pending_users() if u.user_id == user_id), None)

    def _current_subscription(self, user_id: str) -> Optional[Subscription]:
        subs = [s for s in self._cache.subscriptions() if s.user_id == user_id]
        return max(subs, key=lambda s: s.end_date) if subs else None

    def get_subscription_status(self, user_id: str, *, now: Optional[datetime | date] = None) -> SubscriptionSummary:
        user = self._find_user(user_id)
        if user and user.subscription_status == SubscriptionStatus.PENDING:
            return SubscriptionSummary(state=LifecycleState.PENDING)

        current = self._current_subscription(user_id)
        if not current:
            return SubscriptionSummary(state=LifecycleState.NO_SUBSCRIPTION)

        now = now or now_local()
        return SubscriptionSummary(
            state=bucket_status(current.end_date, now),
            subscription=current,
            days_until_expiry=days_until_expiry(current.end_date, now),
        )

    def _build(
        self,
        user_id: str,
        plan_type: PlanType | str,
        start_date: DateLike,
        end_date: Optional[DateLike],
    ) -> Subscription:
        if not self._find_user(user_id):
            self._sync.refresh_data()
            if not self._find_user(user_id):
                raise ValidationError("Member does not exist")

        plan = as_plan_type(plan_type)
        start = _parse_date(start_date, "Start date")
        end = compute_end_date(start, plan) if end_date is None else _parse_date(end_date, "End date")
        validate_subscription_dates(start, end)

        return Subscription(
            subscription_id="",
            user_id=user_id,
            start_date=start,
            end_date=end,
            plan_type=plan,
            status=SubscriptionStatus.ACTIVE,
        )

    def _apply_locally(self, subscription: Subscription) -> None:
        # Visible right away even if the follow-up refresh cannot reach the remote store.
        self._cache.replace_subscriptions(self._cache.subscriptions() + [subscription])
        user = self._find_user(subscription.user_id)
        if user:
            self._cache.upsert_user(user.with_updates(subscription_status=SubscriptionStatus.ACTIVE))
        self._cache.replace_pending_users(
            [u for u in self._cache.pending_users() if u.user_id != subscription.user_id]
        )

    @staticmethod
    def _wire(subscription: Subscription) -> dict:
        return {k: v for k, v in subscription.to_dict().items() if k != "id"}

    def approve_user(
        self,
        session: SessionUser,
        user_id: str,
        plan_type: PlanType | str,
        start_date: DateLike,
        end_date: Optional[DateLike] = None,
    ) -> Subscription:
        require_admin(session)
        subscription = self._build(user_id, plan_type, start_date, end_date)

        result = self._gateway.approve_user(user_id, self._wire(subscription))
        if not result.success:
            raise RemoteError("Approval failed, try again later")

        subscription = replace(subscription, subscription_id=str(result.data))
        self._apply_locally(subscription)
        self._sync.refresh_data()
        logger.info(
            "Approved %s on %s plan until %s", user_id, subscription.plan_type.value, subscription.end_date
        )
        return subscription

    def add_subscription(
        self,
        session: SessionUser,
        user_id: str,
        plan_type: PlanType | str,
        start_date: DateLike,
        end_date: Optional[DateLike] = None,
    ) -> Subscription:
        """Renewal: a new period for an existing member."""
        require_admin(session)
        subscription = self._build(user_id, plan_type, start_date, end_date)

        result = self._gateway.add_subscription(self._wire(subscription))
        if not result.success:
            raise RemoteError("Could not add subscription, try again later")
        subscription = replace(subscription, subscription_id=str(result.data))

        user = self._find_user(user_id)
        if user and user.subscription_status != SubscriptionStatus.ACTIVE:
            flipped = self._gateway.update_user(user_id, {"subscriptionStatus": SubscriptionStatus.ACTIVE.value})
            if not flipped.success:
                logger.warning("Status of %s not updated remotely: %s", user_id, flipped.error)

        self._apply_locally(subscription)
        self._sync.refresh_data()
        return subscription

    def list_expiring(
        self, *, now: Optional[datetime | date] = None, within_days: int = EXPIRING_SOON_DAYS
    ) -> list[SubscriptionSummary]:
        now = now or now_local()
        out: list[SubscriptionSummary] = []
        for user in self._cache.users():
            if user.is_admin:
                continue
            summary = self.get_subscription_status(user.user_id, now=now)
            if summary.state in (LifecycleState.ACTIVE, LifecycleState.EXPIRING_SOON) and (
                summary.days_until_expiry is not None and summary.days_until_expiry <= within_days
            ):
                out.append(summary)
        return sorted(out, key=lambda s: s.days_until_expiry)
