from __future__ import annotations
"""
namereg - flat name registry.

Maps unique human-readable names to an owner identity, a target identity, an
opaque content hash and a registration timestamp, with an ownership index
listing the names each identity holds.

Public surface:
- Registry
- Record, Resolution, identity helpers (to_identity, to_hex, is_zero, ZERO_IDENTITY)
- errors (RegistryError and subclasses)
- events (NameRegistered, NameUpdated, NameTransferred, EventLog)
- clock (SystemClock, ManualClock), config (RegistryConfig, load)
"""


from typing import List

from .version import __version__
from .clock import ManualClock, SystemClock
from .config import RegistryConfig
from .errors import (
    AlreadyOwner,
    InvalidContentHash,
    InvalidTarget,
    NameAlreadyRegistered,
    NameEmpty,
    NameNotFound,
    NameTooLong,
    NotOwner,
    RegistryError,
)
from .events import EventLog, NameEvent, NameRegistered, NameTransferred, NameUpdated
from .registry import Registry
from .types import ZERO_IDENTITY, Record, Resolution, is_zero, to_hex, to_identity

__all__: List[str] = [
    "__version__",
    "Registry",
    "Record",
    "Resolution",
    "ZERO_IDENTITY",
    "to_identity",
    "to_hex",
    "is_zero",
    "RegistryError",
    "NameEmpty",
    "NameTooLong",
    "NameAlreadyRegistered",
    "NameNotFound",
    "NotOwner",
    "AlreadyOwner",
    "InvalidTarget",
    "InvalidContentHash",
    "EventLog",
    "NameEvent",
    "NameRegistered",
    "NameUpdated",
    "NameTransferred",
    "SystemClock",
    "ManualClock",
    "RegistryConfig",
]
