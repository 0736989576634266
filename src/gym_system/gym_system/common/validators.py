from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str, *, error=ValidationError) -> str:
    if not isinstance(value, str) or not value.strip():
        raise error(f"{field_name} is required")
    return value.strip()


def optional_str(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    return v or None
