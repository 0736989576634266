from __future__ import annotations

import secrets
import string

from .datetime_utils import epoch_millis

_ALPHABET = string.digits + string.ascii_lowercase


def generate_local_id() -> str:
    """Client-side id: `<epoch-ms>_<9 random base36 chars>`.

    Safe to generate offline on several devices; 36**9 suffixes per millisecond.
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{epoch_millis()}_{suffix}"
