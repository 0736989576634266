"""Write-through with degrade.

The one place where attendance reaches the remote store. Records must already
be in the cache (write-ahead); this only flips `synced` for what the remote
acknowledged and never raises for remote failures.

Pushes may run concurrently (a request thread and the scheduled sync). Each
record is claimed in the cache for the duration of a push, so it is sent by
one push at a time.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..attendance.model import AttendanceRecord
from ..cache.manager import CacheManager
from ..gateway.base import RemoteGateway

logger = logging.getLogger(__name__)


def _push_one(gateway: RemoteGateway, record: AttendanceRecord) -> bool:
    result = gateway.record_attendance(record.to_dict())
    if not result.success:
        logger.warning("Attendance %s stays unsynced: %s", record.record_id, result.error)
    return result.success


def push_attendance(gateway: RemoteGateway, cache: CacheManager, records: Sequence[AttendanceRecord]) -> list[str]:
    """Push records to the remote store and return the ids it acknowledged."""
    pending = cache.claim_for_push(records)
    if not pending:
        return []

    try:
        acknowledged = _send(gateway, pending)
        if acknowledged:
            cache.mark_synced(acknowledged)
    finally:
        cache.release_push([r.record_id for r in pending])
    return acknowledged


def _send(gateway: RemoteGateway, pending: Sequence[AttendanceRecord]) -> list[str]:
    acknowledged: list[str] = []
    batch_ok = False
    if len(pending) > 1 and getattr(gateway, "supports_batch", False):
        result = gateway.record_attendance_batch([r.to_dict() for r in pending])
        if result.success:
            acknowledged = [r.record_id for r in pending]
            batch_ok = True
        else:
            logger.warning("Batch attendance push failed (%s); retrying per record", result.error)

    if not batch_ok:
        acknowledged = [r.record_id for r in pending if _push_one(gateway, r)]
    return acknowledged
