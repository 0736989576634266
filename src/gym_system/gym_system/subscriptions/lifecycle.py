"""Subscription lifecycle rules.

Pure functions only: status is derived from dates, never stored events.
Dates may be `date` objects or `YYYY-MM-DD` strings. `now` may also be a
`datetime`; it is then compared against the end date at midnight.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from ..common.datetime_utils import DateLike, as_date
from ..core.constants import EXPIRING_SOON_DAYS
from ..core.enums import LifecycleState, PlanType
from ..core.exceptions import ValidationError

# Calendar months added per plan. relativedelta clamps the day to the last
# day of the target month (Jan 31 + 1 month = Feb 28/29).
PLAN_DURATIONS = {
    PlanType.MONTHLY: relativedelta(months=1),
    PlanType.QUARTERLY: relativedelta(months=3),
    PlanType.YEARLY: relativedelta(years=1),
}

PLAN_PRICES = {
    PlanType.MONTHLY: 200,
    PlanType.QUARTERLY: 550,
    PlanType.YEARLY: 2000,
}


def as_plan_type(plan_type: PlanType | str) -> PlanType:
    try:
        return PlanType(plan_type)
    except ValueError:
        raise ValidationError("Plan type must be monthly, quarterly or yearly")


def is_active(end_date: DateLike, now: DateLike) -> bool:
    """Active through the whole end date (inclusive)."""
    return as_date(end_date) >= as_date(now)


def days_until_expiry(end_date: DateLike, now: DateLike) -> int:
    end = as_date(end_date)
    if isinstance(now, datetime):
        delta = datetime.combine(end, datetime.min.time()) - now.replace(tzinfo=None)
        return math.ceil(delta / timedelta(days=1))
    return (end - as_date(now)).days


def compute_end_date(start_date: DateLike, plan_type: PlanType | str) -> date:
    return as_date(start_date) + PLAN_DURATIONS[as_plan_type(plan_type)]


def bucket_status(end_date: DateLike, now: DateLike) -> LifecycleState:
    if not is_active(end_date, now):
        return LifecycleState.EXPIRED
    if days_until_expiry(end_date, now) <= EXPIRING_SOON_DAYS:
        return LifecycleState.EXPIRING_SOON
    return LifecycleState.ACTIVE


def validate_subscription_dates(start_date: DateLike, end_date: DateLike) -> None:
    if as_date(end_date) <= as_date(start_date):
        raise ValidationError("Subscription end date must be after start date")


def plan_price(plan_type: PlanType | str) -> int:
    return PLAN_PRICES[as_plan_type(plan_type)]
