from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from ..core.enums import Role, SubscriptionStatus


@dataclass(frozen=True)
class User:
    """Domain entity: gym user (admin or member).

    Plain data object; `password` is an opaque credential (a password hash).
    Wire names are camelCase so cached/remote rows match the spreadsheet headers.
    """

    user_id: str
    name: str
    password: str
    role: Role
    qr_code: str
    subscription_status: SubscriptionStatus
    created_at: str
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def with_updates(self, **changes: Any) -> "User":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "password": self.password,
            "role": self.role.value,
            "qrCode": self.qr_code,
            "subscriptionStatus": self.subscription_status.value,
            "createdAt": self.created_at,
            "phone": self.phone,
            "email": self.email,
        }

    def to_public_dict(self) -> dict:
        """Wire dict without the credential, for API responses."""
        data = self.to_dict()
        data.pop("password")
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            user_id=str(data["id"]),
            name=str(data.get("name") or ""),
            password=str(data.get("password") or ""),
            role=Role(data.get("role") or Role.MEMBER.value),
            qr_code=str(data.get("qrCode") or data.get("qr_code") or ""),
            subscription_status=SubscriptionStatus(
                data.get("subscriptionStatus") or data.get("subscription_status") or SubscriptionStatus.PENDING.value
            ),
            created_at=str(data.get("createdAt") or data.get("created_at") or ""),
            phone=data.get("phone") or None,
            email=data.get("email") or None,
        )


# Field names accepted by update operations, mapped to wire names.
USER_WIRE_FIELDS = {
    "name": "name",
    "password": "password",
    "role": "role",
    "qr_code": "qrCode",
    "subscription_status": "subscriptionStatus",
    "phone": "phone",
    "email": "email",
}
