from __future__ import annotations

from datetime import date, datetime

import pytest

from src.gym_system.gym_system.core.enums import LifecycleState, PlanType, SubscriptionStatus
from src.gym_system.gym_system.core.exceptions import AuthorizationError, RemoteError, ValidationError
from src.gym_system.gym_system.subscriptions.model import Subscription
from src.gym_system.gym_system.subscriptions.service import SubscriptionService
from src.gym_system.gym_system.sync.service import SyncService


@pytest.fixture
def service(cache, gateway) -> SubscriptionService:
    return SubscriptionService(cache, gateway, SyncService(cache, gateway))


@pytest.fixture
def pending_member(make_user, seed):
    user = make_user("member-2", "Lina", status=SubscriptionStatus.PENDING)
    seed(user)
    return user


def _sub(sub_id, user_id, start, end, plan=PlanType.MONTHLY):
    return Subscription(
        subscription_id=sub_id,
        user_id=user_id,
        start_date=date.fromisoformat(start),
        end_date=date.fromisoformat(end),
        plan_type=plan,
        status=SubscriptionStatus.ACTIVE,
    )


def test_approve_monthly_member_end_to_end(service, cache, gateway, admin_session, pending_member):
    assert service.get_subscription_status(pending_member.user_id).state == LifecycleState.PENDING

    sub = service.approve_user(admin_session, pending_member.user_id, PlanType.MONTHLY, "2025-01-01")

    assert sub.end_date == date(2025, 2, 1)
    assert gateway.users[pending_member.user_id]["subscriptionStatus"] == "active"
    assert cache.find_user(pending_member.user_id).subscription_status == SubscriptionStatus.ACTIVE
    assert pending_member.user_id not in [u.user_id for u in cache.pending_users()]

    summary = service.get_subscription_status(pending_member.user_id, now=datetime(2025, 1, 15, 10, 0))
    assert summary.state == LifecycleState.ACTIVE
    assert summary.subscription.end_date == date(2025, 2, 1)
    assert summary.days_until_expiry == 17


def test_approve_requires_admin(service, member_session, pending_member):
    with pytest.raises(AuthorizationError):
        service.approve_user(member_session, pending_member.user_id, "monthly", "2025-01-01")


def test_approve_while_offline_raises_and_changes_nothing(service, cache, gateway, admin_session, pending_member):
    gateway.online = False

    with pytest.raises(RemoteError):
        service.approve_user(admin_session, pending_member.user_id, "monthly", "2025-01-01")

    assert cache.subscriptions() == []
    assert cache.find_user(pending_member.user_id).subscription_status == SubscriptionStatus.PENDING


def test_approve_rejects_bad_dates_and_plans(service, admin_session, pending_member):
    with pytest.raises(ValidationError):
        service.approve_user(admin_session, pending_member.user_id, "monthly", "2025-01-10", "2025-01-10")
    with pytest.raises(ValidationError):
        service.approve_user(admin_session, pending_member.user_id, "weekly", "2025-01-10")
    with pytest.raises(ValidationError):
        service.approve_user(admin_session, pending_member.user_id, "monthly", "10/01/2025")
    with pytest.raises(ValidationError):
        service.approve_user(admin_session, "nobody", "monthly", "2025-01-10")


def test_status_without_subscription(service, member):
    assert service.get_subscription_status(member.user_id).state == LifecycleState.NO_SUBSCRIPTION


def test_latest_end_date_is_the_current_subscription(service, cache, member):
    cache.replace_subscriptions(
        [
            _sub("s-old", member.user_id, "2025-01-01", "2025-02-01"),
            _sub("s-new", member.user_id, "2025-06-01", "2025-07-01"),
            _sub("s-mid", member.user_id, "2025-03-01", "2025-04-01"),
        ]
    )

    summary = service.get_subscription_status(member.user_id, now=date(2025, 6, 27))

    assert summary.subscription.subscription_id == "s-new"
    assert summary.state == LifecycleState.EXPIRING_SOON
    assert summary.days_until_expiry == 4


def test_expired_subscription_reports_expired(service, cache, member):
    cache.replace_subscriptions([_sub("s-1", member.user_id, "2025-01-01", "2025-02-01")])

    summary = service.get_subscription_status(member.user_id, now=date(2025, 2, 2))

    assert summary.state == LifecycleState.EXPIRED
    assert summary.days_until_expiry == -1


def test_renewal_reactivates_expired_member(service, cache, gateway, admin_session, make_user, seed):
    lapsed = make_user("member-3", "Nour", status=SubscriptionStatus.EXPIRED)
    seed(lapsed)

    sub = service.add_subscription(admin_session, lapsed.user_id, PlanType.QUARTERLY, "2025-03-01")

    assert sub.end_date == date(2025, 6, 1)
    assert gateway.users[lapsed.user_id]["subscriptionStatus"] == "active"
    assert cache.find_user(lapsed.user_id).subscription_status == SubscriptionStatus.ACTIVE
    assert [s.subscription_id for s in cache.subscriptions()] == [sub.subscription_id]


def test_list_expiring(service, cache, member, make_user, seed):
    other = make_user("member-4", "Hadi")
    seed(other)
    cache.replace_subscriptions(
        [
            _sub("s-1", member.user_id, "2025-05-12", "2025-06-12"),
            _sub("s-2", other.user_id, "2025-06-01", "2025-07-01"),
        ]
    )

    expiring = service.list_expiring(now=date(2025, 6, 10))

    assert [s.subscription.subscription_id for s in expiring] == ["s-1"]
    assert [s.subscription.subscription_id for s in service.list_expiring(now=date(2025, 6, 10), within_days=30)] == [
        "s-1",
        "s-2",
    ]
