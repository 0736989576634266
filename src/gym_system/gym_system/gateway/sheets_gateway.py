from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import requests

from ..common.ids import generate_local_id
from ..core.constants import DEFAULT_REMOTE_TIMEOUT_SECONDS
from ..core.enums import SubscriptionStatus
from .base import GatewayResult, RemoteGateway

logger = logging.getLogger(__name__)


class SheetsGateway(RemoteGateway):
    """Spreadsheet-backed REST API (SheetDB / Apps Script style).

    Sheets: users, subscriptions, attendance. Ids are generated client side and
    written as the `id` column, because the sheet itself has no id generator.
    """

    supports_batch = True

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = float(timeout)
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self._session.headers.update({"Authorization": f"Bearer {api_key}"})

    def _request(self, method: str, endpoint: str, *, json: Any = None, params: Optional[dict] = None) -> GatewayResult:
        url = f"{self._base_url}{endpoint}"
        try:
            response = self._session.request(method, url, json=json, params=params, timeout=self._timeout)
            response.raise_for_status()
            data = response.json() if response.content else None
        except requests.RequestException as e:
            logger.warning("Sheets API %s %s failed: %s", method, endpoint, e)
            return GatewayResult.fail(str(e) or "Network error")
        except ValueError as e:
            logger.warning("Sheets API %s %s returned invalid JSON: %s", method, endpoint, e)
            return GatewayResult.fail("Invalid response body")
        return GatewayResult.ok(data)

    @staticmethod
    def _rows(result: GatewayResult) -> GatewayResult:
        # Some sheet APIs wrap rows as {"data": [...]}.
        if not result.success:
            return result
        data = result.data
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]
        if not isinstance(data, list):
            return GatewayResult.fail("Unexpected response shape")
        return GatewayResult.ok([row for row in data if isinstance(row, dict)])

    def _create(self, endpoint: str, row: dict) -> GatewayResult:
        row = dict(row)
        row.setdefault("id", generate_local_id())
        result = self._request("POST", endpoint, json=row)
        if not result.success:
            return result
        returned = result.data.get("id") if isinstance(result.data, dict) else None
        return GatewayResult.ok(str(returned or row["id"]))

    # ---- users ----

    def get_users(self) -> GatewayResult:
        return self._rows(self._request("GET", "/users"))

    def get_pending_users(self) -> GatewayResult:
        return self._rows(
            self._request("GET", "/users/search", params={"subscriptionStatus": SubscriptionStatus.PENDING.value})
        )

    def add_user(self, user: dict) -> GatewayResult:
        return self._create("/users", user)

    def update_user(self, user_id: str, updates: dict) -> GatewayResult:
        return self._request("PUT", f"/users/{user_id}", json=updates)

    def delete_user(self, user_id: str) -> GatewayResult:
        return self._request("DELETE", f"/users/{user_id}")

    def approve_user(self, user_id: str, subscription: dict) -> GatewayResult:
        created = self._create("/subscriptions", {**subscription, "userId": user_id})
        if not created.success:
            return created
        updated = self.update_user(user_id, {"subscriptionStatus": SubscriptionStatus.ACTIVE.value})
        if not updated.success:
            # No transactions on a sheet; drop the subscription row again.
            undone = self._request("DELETE", f"/subscriptions/{created.data}")
            if not undone.success:
                logger.error("Subscription %s for %s left without approval: %s", created.data, user_id, undone.error)
            return updated
        return created

    # ---- subscriptions ----

    def get_subscriptions(self) -> GatewayResult:
        return self._rows(self._request("GET", "/subscriptions"))

    def add_subscription(self, subscription: dict) -> GatewayResult:
        return self._create("/subscriptions", subscription)

    # ---- attendance ----

    def get_attendance(self) -> GatewayResult:
        return self._rows(self._request("GET", "/attendance"))

    def record_attendance(self, record: dict) -> GatewayResult:
        return self._create("/attendance", {**record, "synced": True})

    def record_attendance_batch(self, records: Sequence[dict]) -> GatewayResult:
        if not records:
            return GatewayResult.ok([])
        rows = [{**r, "synced": True} for r in records]
        result = self._request("POST", "/attendance/batch", json={"records": rows})
        if not result.success:
            return result
        return GatewayResult.ok([r["id"] for r in rows])
