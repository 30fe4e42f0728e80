from __future__ import annotations
# namereg/errors.py
"""
Error types for the name registry. Every rejected operation raises one of
these synchronously; they are lightweight, serializable and safe to surface
over logs or an RPC bridge.

Exports:
- RegistryError (base)
- NameEmpty, NameTooLong, NameAlreadyRegistered, NameNotFound
- NotOwner, AlreadyOwner
- InvalidTarget, InvalidContentHash
- IndexInvariantError
- ConfigError, IdentityError
"""


from typing import Any, Dict, Mapping, Optional
import json


def _hex(identity: Any) -> str:
    if isinstance(identity, (bytes, bytearray, memoryview)):
        return "0x" + bytes(identity).hex()
    return str(identity)


class RegistryError(Exception):
    """Base class for registry errors."""

    code: str = "NAMEREG/ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            # Keep this compact and stable for logs
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except Exception:
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Name validation
# ---------------------------------------------------------------------------


class NameEmpty(RegistryError):
    """The name is the empty string."""
    code = "NAMEREG/NAME_EMPTY"

    def __init__(self, message: str = "name must be non-empty") -> None:
        super().__init__(message)


class NameTooLong(RegistryError):
    """The UTF-8 encoding of the name exceeds the configured byte limit."""
    code = "NAMEREG/NAME_TOO_LONG"

    def __init__(self, name: str, *, length: int, limit: int) -> None:
        self.name = name
        super().__init__(
            "name too long",
            details={"name": name, "length": int(length), "limit": int(limit)},
        )


class NameAlreadyRegistered(RegistryError):
    code = "NAMEREG/NAME_TAKEN"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__("name already registered", details={"name": name})


class NameNotFound(RegistryError):
    code = "NAMEREG/NAME_NOT_FOUND"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__("name not registered", details={"name": name})


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class NotOwner(RegistryError):
    """The caller does not own the record it tried to mutate."""
    code = "NAMEREG/NOT_OWNER"

    def __init__(self, name: str, caller: bytes) -> None:
        self.name = name
        self.caller = caller
        super().__init__(
            "caller is not the owner", details={"name": name, "caller": _hex(caller)}
        )


class AlreadyOwner(RegistryError):
    code = "NAMEREG/ALREADY_OWNER"

    def __init__(self, name: str, owner: bytes) -> None:
        self.name = name
        self.owner = owner
        super().__init__(
            "new owner is the current owner", details={"name": name, "owner": _hex(owner)}
        )


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------


class InvalidTarget(RegistryError):
    """A target (or new owner) identity is the zero/null identity."""
    code = "NAMEREG/INVALID_TARGET"

    def __init__(self, identity: Any) -> None:
        self.identity = identity
        super().__init__("identity must be non-zero", details={"identity": _hex(identity)})


class InvalidContentHash(RegistryError):
    code = "NAMEREG/INVALID_CONTENT_HASH"

    def __init__(self, content_hash: str) -> None:
        self.content_hash = content_hash
        super().__init__(
            "content hash must be non-empty", details={"content_hash": content_hash}
        )


# ---------------------------------------------------------------------------
# Internal / environment
# ---------------------------------------------------------------------------


class IndexInvariantError(RegistryError):
    """
    The ownership index diverged from the primary record table. Raised only by
    explicit invariant checks; indicates a bug or a corrupted store.
    """
    code = "NAMEREG/INDEX_INVARIANT"

    def __init__(self, message: str, *, name: Optional[str] = None, owner: Optional[bytes] = None) -> None:
        d: Dict[str, Any] = {}
        if name is not None:
            d["name"] = name
        if owner is not None:
            d["owner"] = _hex(owner)
        super().__init__(message, details=d)


class ConfigError(RegistryError):
    code = "NAMEREG/CONFIG"


class IdentityError(RegistryError, ValueError):
    """Input could not be coerced to an identity."""
    code = "NAMEREG/IDENTITY"


__all__ = [
    "RegistryError",
    "NameEmpty",
    "NameTooLong",
    "NameAlreadyRegistered",
    "NameNotFound",
    "NotOwner",
    "AlreadyOwner",
    "InvalidTarget",
    "InvalidContentHash",
    "IndexInvariantError",
    "ConfigError",
    "IdentityError",
]
