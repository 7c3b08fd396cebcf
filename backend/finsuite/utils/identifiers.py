from __future__ import annotations

import os
import secrets
import string
import time
import uuid

_USER_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_uuid7() -> str:
    """
    Generate a time-ordered UUIDv7 string.

    Used for append-only rows (activity trail, login history) so that the
    primary key sorts in insertion order across databases.
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def generate_user_id(prefix: str = "USR") -> str:
    """Short readable account id, e.g. 'USR-8K2L0P9Q'. Column default, so no required args."""
    block = "".join(secrets.choice(_USER_ID_ALPHABET) for _ in range(8))
    return f"{prefix}-{block}" if prefix else block
