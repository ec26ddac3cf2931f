from __future__ import annotations

"""Publication key derivation.

Every document body in a publication is encrypted with the same AES-128 key
and IV. Both come from the *card hash*: the SHA-256 of the publication card
string ``{language}_{symbol}_{year}[_{issue}]`` XOR'ed with a fixed constant.
The constant ships inside every reader, so this is obfuscation rather than
confidentiality.
"""

import hashlib
from dataclasses import dataclass

from .constants import CARD_HASH_SIZE, CARD_HASH_XOR_KEY, KEY_SIZE, IV_SIZE
from .errors import KeyDerivationError


@dataclass(frozen=True)
class PublicationIdentity:
    language_index: int
    symbol: str
    year: int
    issue_tag: int = 0

    def card_string(self) -> str:
        s = f"{self.language_index}_{self.symbol}_{self.year}"
        if self.issue_tag != 0:
            s += f"_{self.issue_tag}"
        return s


@dataclass(frozen=True)
class KeyMaterial:
    key: bytes
    iv: bytes

    def __repr__(self) -> str:
        return f"KeyMaterial(key={self.key.hex()}, iv={self.iv.hex()})"


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def derive_card_hash(identity: PublicationIdentity) -> bytes:
    digest = hashlib.sha256(identity.card_string().encode("utf-8")).digest()
    if len(digest) != CARD_HASH_SIZE or len(CARD_HASH_XOR_KEY) != CARD_HASH_SIZE:
        raise KeyDerivationError(f"card hash must be {CARD_HASH_SIZE} bytes, got {len(digest)}")
    return _xor(digest, CARD_HASH_XOR_KEY)


def derive_key_material(identity: PublicationIdentity) -> KeyMaterial:
    """Split the card hash into the AES key (first half) and IV (second half)."""
    card = derive_card_hash(identity)
    return KeyMaterial(key=card[:KEY_SIZE], iv=card[KEY_SIZE : KEY_SIZE + IV_SIZE])


__all__ = [
    "PublicationIdentity",
    "KeyMaterial",
    "derive_card_hash",
    "derive_key_material",
]
