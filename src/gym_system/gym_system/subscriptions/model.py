from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from ..common.datetime_utils import as_date, format_date
from ..core.enums import LifecycleState, PlanType, SubscriptionStatus


@dataclass(frozen=True)
class Subscription:
    """Domain entity: one membership period of a user."""

    subscription_id: str
    user_id: str
    start_date: date
    end_date: date
    plan_type: PlanType
    status: SubscriptionStatus

    def to_dict(self) -> dict:
        return {
            "id": self.subscription_id,
            "userId": self.user_id,
            "startDate": format_date(self.start_date),
            "endDate": format_date(self.end_date),
            "type": self.plan_type.value,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Subscription":
        return cls(
            subscription_id=str(data["id"]),
            user_id=str(data.get("userId") or data.get("user_id")),
            start_date=as_date(data.get("startDate") or data.get("start_date")),
            end_date=as_date(data.get("endDate") or data.get("end_date")),
            plan_type=PlanType(data.get("type") or data.get("plan_type")),
            status=SubscriptionStatus(data.get("status") or SubscriptionStatus.ACTIVE.value),
        )


@dataclass(frozen=True)
class SubscriptionSummary:
    """Read-model for profile/member cards."""

    state: LifecycleState
    subscription: Optional[Subscription] = None
    days_until_expiry: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "subscription": self.subscription.to_dict() if self.subscription else None,
            "daysUntilExpiry": self.days_until_expiry,
        }
