from __future__ import annotations

from typing import Optional

import zlib

try:  # pragma: no cover - optional dependency at runtime
    from Cryptodome.Cipher import AES  # type: ignore
    from Cryptodome.Util.Padding import pad, unpad  # type: ignore
    _HAS_CRYPTODOME = True
except ImportError:  # pragma: no cover - fallback
    AES = None  # type: ignore
    pad = unpad = None  # type: ignore
    _HAS_CRYPTODOME = False

from .constants import DEFAULT_COMPRESS_LEVEL
from .errors import CodecError
from .keys import KeyMaterial, PublicationIdentity, derive_key_material


_BLOCK_SIZE = 16


def _ensure_backend() -> None:
    if not _HAS_CRYPTODOME:
        raise RuntimeError("PyCryptodomex is required for document encryption support")


def _inflate(data: bytes) -> bytes:
    # Bodies are zlib streams; accept raw deflate as well for hand-made files.
    try:
        return zlib.decompress(data)
    except zlib.error:
        return zlib.decompress(data, -zlib.MAX_WBITS)


class ContentCodec:
    """Compress+encrypt and decrypt+inflate document bodies.

    The key and IV are fixed for the whole publication; every call starts a
    fresh CBC chain from the same IV. Readers depend on this, so it must not
    be randomized.
    """

    def __init__(self, key_material: KeyMaterial, level: Optional[int] = None):
        _ensure_backend()
        self.key_material = key_material
        self.level = level if level is not None else DEFAULT_COMPRESS_LEVEL

    @classmethod
    def for_identity(cls, identity: PublicationIdentity, level: Optional[int] = None) -> "ContentCodec":
        return cls(derive_key_material(identity), level=level)

    def _cipher(self):
        return AES.new(self.key_material.key, AES.MODE_CBC, iv=self.key_material.iv)

    def encrypt(self, plaintext: str) -> bytes:
        try:
            raw = plaintext.encode("utf-8")
        except UnicodeEncodeError as e:
            raise CodecError(f"content is not encodable as UTF-8: {e}") from e
        compressed = zlib.compress(raw, self.level)
        return self._cipher().encrypt(pad(compressed, _BLOCK_SIZE))

    def decrypt(self, ciphertext: bytes) -> str:
        if not ciphertext or len(ciphertext) % _BLOCK_SIZE:
            raise CodecError(f"ciphertext length {len(ciphertext)} is not a positive multiple of {_BLOCK_SIZE}")
        try:
            compressed = unpad(self._cipher().decrypt(ciphertext), _BLOCK_SIZE)
        except ValueError as e:
            raise CodecError(f"bad padding: {e}") from e
        try:
            raw = _inflate(compressed)
        except zlib.error as e:
            raise CodecError(f"inflate failed: {e}") from e
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CodecError(f"content is not valid UTF-8: {e}") from e


__all__ = [
    "ContentCodec",
    "_HAS_CRYPTODOME",
]
