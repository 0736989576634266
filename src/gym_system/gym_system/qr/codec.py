"""QR payload wire format.

Two shapes are recognized:

* member card: ``{"id": str, "name": str, "role": str, "timestamp": ms}``
* gym self check-in: ``{"type": "gym_checkin", "gym": str, "timestamp": ms}``

Payloads are compact JSON with keys in the order above, matching what the
mobile clients print and scan.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from ..common.datetime_utils import epoch_millis
from ..core.constants import GYM_CHECKIN_QR_TYPE
from ..core.exceptions import QRParseError

# 9999-12-31T23:59:59.999Z, the last instant datetime can represent.
MAX_TIMESTAMP_MS = 253_402_300_799_999


@dataclass(frozen=True)
class MemberQR:
    user_id: str
    name: str
    role: str
    timestamp: int | float

    def issued_at(self) -> datetime:
        try:
            return datetime.fromtimestamp(self.timestamp / 1000)
        except (OverflowError, OSError, ValueError):
            raise QRParseError("QR timestamp is out of range")


@dataclass(frozen=True)
class GymCheckinQR:
    gym: str
    timestamp: int | float


ParsedQR = Union[MemberQR, GymCheckinQR]


def _dumps(payload: dict) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def generate_member_payload(*, user_id: str, name: str, role: str, timestamp: Optional[int] = None) -> str:
    """Member card payload. Must only be built once the user id is assigned."""
    if not user_id:
        raise ValueError("user_id is required to build a member QR payload")
    return _dumps(
        {
            "id": user_id,
            "name": name,
            "role": role,
            "timestamp": epoch_millis() if timestamp is None else int(timestamp),
        }
    )


def generate_gym_payload(gym: str, *, timestamp: Optional[int] = None) -> str:
    return _dumps(
        {
            "type": GYM_CHECKIN_QR_TYPE,
            "gym": gym,
            "timestamp": epoch_millis() if timestamp is None else int(timestamp),
        }
    )


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _is_timestamp(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value) and 0 < value <= MAX_TIMESTAMP_MS


def parse_qr(text: str) -> ParsedQR:
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        raise QRParseError("QR payload is not valid JSON")

    if not isinstance(data, dict):
        raise QRParseError("QR payload must be a JSON object")

    if data.get("type") == GYM_CHECKIN_QR_TYPE:
        if _is_text(data.get("gym")) and _is_timestamp(data.get("timestamp")):
            return GymCheckinQR(gym=data["gym"], timestamp=data["timestamp"])
        raise QRParseError("Gym check-in QR is missing required fields")

    if all(_is_text(data.get(k)) for k in ("id", "name", "role")) and _is_timestamp(data.get("timestamp")):
        return MemberQR(user_id=data["id"], name=data["name"], role=data["role"], timestamp=data["timestamp"])

    raise QRParseError("QR payload is missing required fields")


def parse_member_qr(text: str) -> MemberQR:
    parsed = parse_qr(text)
    if not isinstance(parsed, MemberQR):
        raise QRParseError("Not a member QR code")
    return parsed
