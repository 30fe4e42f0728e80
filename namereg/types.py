"""
namereg.types - identities and the record model.

Identities are raw bytes. Callers may hand in bytes-like objects or hex
strings (with or without "0x"); both are normalized to immutable bytes. We do
not enforce a fixed length so the registry stays decoupled from whatever
address scheme sits above it.

The distinguished zero/null identity is None, the empty byte string or
any all-zero byte string. `ZERO_IDENTITY` is the canonical 32-byte form.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, NamedTuple, Optional, Union

from .errors import IdentityError

Identity = bytes
IdentityLike = Union[bytes, bytearray, memoryview, str]

ZERO_IDENTITY: Identity = b"\x00" * 32


# ----------------------------- helpers ----------------------------- #


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_identity(value: IdentityLike) -> Identity:
    """
    Coerce `value` to identity bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise IdentityError(f"hex string must have even length, got {len(h)}")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise IdentityError(f"invalid hex string: {value!r}") from e
    raise IdentityError(f"cannot convert type {type(value).__name__} to identity")


def to_hex(identity: Union[bytes, bytearray, memoryview]) -> str:
    """Encode an identity as 0x-prefixed lowercase hex."""
    return "0x" + bytes(identity).hex()


def is_zero(identity: Optional[Union[bytes, bytearray, memoryview]]) -> bool:
    """True for the null identity (None, empty or all-zero bytes)."""
    return identity is None or not any(bytes(identity))


# ----------------------------- models ------------------------------ #


@dataclass
class Record:
    """
    One registered name.

    Fields
    ------
    owner:          Identity that controls the record.
    target:         Identity the name resolves to.
    content_hash:   Opaque non-empty string (e.g. a CID).
    registered_at:  Clock value at creation; never changes.
    exists:         Always True once created (records are never deleted).
    """
    owner: Identity
    target: Identity
    content_hash: str
    registered_at: int
    exists: bool = True

    def copy(self) -> "Record":
        return replace(self)

    def resolution(self) -> "Resolution":
        return Resolution(self.owner, self.target, self.content_hash, self.registered_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": to_hex(self.owner),
            "target": to_hex(self.target),
            "content_hash": self.content_hash,
            "registered_at": self.registered_at,
            "exists": self.exists,
        }


class Resolution(NamedTuple):
    """Result of `Registry.resolve`."""

    owner: Identity
    target: Identity
    content_hash: str
    registered_at: int


__all__ = [
    "Identity",
    "IdentityLike",
    "ZERO_IDENTITY",
    "to_identity",
    "to_hex",
    "is_zero",
    "Record",
    "Resolution",
]
