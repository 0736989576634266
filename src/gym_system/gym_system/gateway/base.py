from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence


@dataclass(frozen=True)
class GatewayResult:
    """Success/failure envelope returned by every gateway call.

    `success=False` is always treated as a retryable remote failure by the core,
    whichever backend produced it.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "GatewayResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "GatewayResult":
        return cls(success=False, error=error)


class RemoteGateway(Protocol):
    """Capability interface over the remote store (source of truth).

    Rows travel as wire dicts (camelCase keys, see the models' `to_dict`).
    Implementations never raise for transport/backend errors.
    """

    supports_batch: bool

    def get_users(self) -> GatewayResult:
        raise NotImplementedError

    def add_user(self, user: dict) -> GatewayResult:
        """`data` is the assigned user id."""

        raise NotImplementedError

    def update_user(self, user_id: str, updates: dict) -> GatewayResult:
        raise NotImplementedError

    def delete_user(self, user_id: str) -> GatewayResult:
        raise NotImplementedError

    def get_pending_users(self) -> GatewayResult:
        raise NotImplementedError

    def approve_user(self, user_id: str, subscription: dict) -> GatewayResult:
        """Create the subscription and flip the user to active. `data` is the subscription id."""

        raise NotImplementedError

    def get_subscriptions(self) -> GatewayResult:
        raise NotImplementedError

    def add_subscription(self, subscription: dict) -> GatewayResult:
        raise NotImplementedError

    def get_attendance(self) -> GatewayResult:
        raise NotImplementedError

    def record_attendance(self, record: dict) -> GatewayResult:
        raise NotImplementedError

    def record_attendance_batch(self, records: Sequence[dict]) -> GatewayResult:
        raise NotImplementedError
