from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    MEMBER = "member"


class SubscriptionStatus(str, Enum):
    """Membership status stored on the user record."""

    ACTIVE = "active"
    EXPIRED = "expired"
    PENDING = "pending"


class PlanType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class AttendanceType(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


class LifecycleState(str, Enum):
    """Derived subscription state reported to callers (never stored)."""

    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    PENDING = "pending"
    NO_SUBSCRIPTION = "no_subscription"
