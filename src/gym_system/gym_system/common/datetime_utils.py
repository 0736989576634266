from __future__ import annotations

import time as _time
from datetime import date, datetime, time
from typing import Union

from ..core.constants import DATE_FORMAT, TIME_FORMAT

DateLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, DATE_FORMAT).date()


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value).strip())


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def format_time(value: datetime | time) -> str:
    return value.strftime(TIME_FORMAT)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def epoch_millis(value: datetime | None = None) -> int:
    if value is None:
        return int(_time.time() * 1000)
    return int(value.timestamp() * 1000)
