from __future__ import annotations

import hashlib


def sha1_hex(data: bytes) -> str:
    # Publication hash over the raw database file.
    return hashlib.sha1(data).hexdigest()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
