"""
namereg.registry - the name registry.

A flat, single-level registry mapping unique names to records
(owner, target, content hash, registration time), plus a derived ownership
index listing the names each identity currently holds.

Key properties
--------------
- **Claim once**: a name is registered exactly once and never released.
  Only its owner, target and content hash change afterwards, each only by
  the current owner.
- **Front-loaded validation**: every check runs before any state changes;
  a rejected call leaves the registry untouched. Existence and ownership
  checks precede field checks.
- **Serialized**: one `threading.Lock` guards both mappings; every public
  operation, readers included, runs inside it.
- **Ordered notifications**: events are logged in commit order and delivered
  to subscribers outside the lock, one event at a time, in that same order.

Usage
-----
    reg = Registry(clock=ManualClock(1_700_000_000))
    reg.register("alice", "bafy...", target=bob, caller=alice)
    reg.resolve("alice")          # Resolution(owner, target, content_hash, registered_at)
    reg.transfer("alice", carol, caller=alice)
    reg.names_owned_by(carol)     # ["alice"]
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Deque, Iterable, Iterator, List, Optional, Tuple

from .clock import Clock, SystemClock
from .config import DEFAULT_MAX_NAME_BYTES, RegistryConfig
from .db import RecordStore
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
from .events import DEFAULT_EVENT_LOG_SIZE, EventLog, NameEvent, NameRegistered, NameTransferred, NameUpdated
from .index import OwnershipIndex
from .logging import configure_from_config, get_logger
from .types import Identity, IdentityLike, Record, Resolution, is_zero, to_hex, to_identity

log = get_logger(__name__)


class Registry:
    """
    Parameters
    ----------
    clock : Clock
        Zero-arg callable returning the integer timestamp stored as
        `registered_at`. Defaults to `SystemClock()`.
    admin : IdentityLike | None
        Administrator identity recorded at construction. Stored only; it
        grants no capability over any operation.
    store : RecordStore | None
        Durable record table. When given, existing records are loaded, the
        ownership index is rebuilt from them, and every mutation is written
        through before the in-memory state changes.
    max_name_bytes : int
        Upper bound on the UTF-8 length of a name.
    event_log_size : int | None
        How many recent events `events` retains (None keeps all). Delivery
        to subscribers does not depend on it.
    """

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        admin: Optional[IdentityLike] = None,
        store: Optional[RecordStore] = None,
        max_name_bytes: int = DEFAULT_MAX_NAME_BYTES,
        event_log_size: Optional[int] = DEFAULT_EVENT_LOG_SIZE,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self._admin: Optional[Identity] = to_identity(admin) if admin is not None else None
        self._store = store
        self._max_name_bytes = int(max_name_bytes)

        self._lock = threading.Lock()
        self._records: dict[str, Record] = {}
        self._index = OwnershipIndex()
        self._events = EventLog(maxlen=event_log_size)

        # Events committed but not yet handed to subscribers, in commit order.
        self._pending: Deque[NameEvent] = deque()
        self._dispatch_lock = threading.Lock()

        if store is not None:
            self._load(store.load_all())

    @classmethod
    def from_config(
        cls,
        cfg: RegistryConfig,
        *,
        clock: Optional[Clock] = None,
        configure_logging: bool = False,
        log_stream: Any = None,
    ) -> "Registry":
        """
        Build a registry from config, opening the SQLite store if `db_path` is set.

        With `configure_logging=True` the root logger is also set up from
        `log_level` / `log_format`; leave it off when embedding in an
        application that owns its logging.
        """
        if configure_logging:
            configure_from_config(cfg, stream=log_stream)
        store: Optional[RecordStore] = None
        if cfg.db_path is not None:
            from .db.sqlite import SQLiteRecordStore

            cfg.db_path.parent.mkdir(parents=True, exist_ok=True)
            store = SQLiteRecordStore(cfg.db_path)
        return cls(
            clock=clock,
            admin=cfg.admin,
            store=store,
            max_name_bytes=cfg.max_name_bytes,
            event_log_size=cfg.event_log_size,
        )

    def _load(self, rows: Iterable[Tuple[str, Record]]) -> None:
        for name, rec in rows:
            self._records[name] = rec
        self._index = OwnershipIndex.rebuild(self._records.items())
        log.info("registry: loaded %d records for %d owners", len(self._records), len(self._index.owners()))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def admin(self) -> Optional[Identity]:
        return self._admin

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def max_name_bytes(self) -> int:
        return self._max_name_bytes

    # ------------------------------------------------------------------
    # Validation helpers (no side effects)
    # ------------------------------------------------------------------

    def _check_name(self, name: str) -> None:
        if not isinstance(name, str):
            raise TypeError(f"name must be str, got {type(name).__name__}")
        if len(name) == 0:
            raise NameEmpty()
        n = len(name.encode("utf-8"))
        if n > self._max_name_bytes:
            raise NameTooLong(name, length=n, limit=self._max_name_bytes)

    @staticmethod
    def _check_identity(value: Optional[IdentityLike]) -> Identity:
        # None is the null identity, same as all-zero bytes.
        identity = to_identity(value) if value is not None else None
        if is_zero(identity):
            raise InvalidTarget(identity)
        return identity

    @staticmethod
    def _check_hash(content_hash: str) -> None:
        if not isinstance(content_hash, str):
            raise TypeError(f"content hash must be str, got {type(content_hash).__name__}")
        if len(content_hash) == 0:
            raise InvalidContentHash(content_hash)

    def _owned_record(self, name: str, caller: IdentityLike) -> Record:
        rec = self._records.get(name)
        if rec is None:
            raise NameNotFound(name)
        who = to_identity(caller)
        if rec.owner != who:
            raise NotOwner(name, who)
        return rec

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register(self, name: str, content_hash: str, target: IdentityLike, caller: IdentityLike) -> None:
        """
        Claim `name` for `caller`, resolving to `target` with `content_hash`.

        Raises NameEmpty, NameTooLong, NameAlreadyRegistered, InvalidTarget,
        InvalidContentHash (checked in that order).
        """
        with self._lock:
            try:
                self._check_name(name)
                if name in self._records:
                    raise NameAlreadyRegistered(name)
                tgt = self._check_identity(target)
                self._check_hash(content_hash)
                who = to_identity(caller)
            except RegistryError as e:
                log.debug("registry: register rejected name=%r code=%s", name, e.code)
                raise

            rec = Record(owner=who, target=tgt, content_hash=content_hash, registered_at=int(self._clock()))
            if self._store is not None:
                self._store.insert(name, rec)
            self._records[name] = rec
            self._index.append(who, name)
            self._commit(NameRegistered(name=name, owner=who, content_hash=content_hash))
            log.info("registry: registered name=%r owner=%s", name, to_hex(who))
        self._flush()

    def update_target(self, name: str, new_target: IdentityLike, caller: IdentityLike) -> None:
        """
        Point `name` at `new_target`.

        Raises NameNotFound, NotOwner, InvalidTarget (checked in that order).
        """
        with self._lock:
            try:
                rec = self._owned_record(name, caller)
                tgt = self._check_identity(new_target)
            except RegistryError as e:
                log.debug("registry: update_target rejected name=%r code=%s", name, e.code)
                raise

            updated = rec.copy()
            updated.target = tgt
            self._write(name, updated)
            self._commit(NameUpdated(name=name, target=updated.target, content_hash=updated.content_hash))
            log.info("registry: updated target name=%r target=%s", name, to_hex(tgt))
        self._flush()

    def update_content_hash(self, name: str, new_hash: str, caller: IdentityLike) -> None:
        """
        Replace the content hash of `name`.

        Raises NameNotFound, NotOwner, InvalidContentHash (checked in that order).
        """
        with self._lock:
            try:
                rec = self._owned_record(name, caller)
                self._check_hash(new_hash)
            except RegistryError as e:
                log.debug("registry: update_content_hash rejected name=%r code=%s", name, e.code)
                raise

            updated = rec.copy()
            updated.content_hash = new_hash
            self._write(name, updated)
            self._commit(NameUpdated(name=name, target=updated.target, content_hash=updated.content_hash))
            log.info("registry: updated content hash name=%r", name)
        self._flush()

    def transfer(self, name: str, new_owner: IdentityLike, caller: IdentityLike) -> None:
        """
        Hand `name` to `new_owner`. The index entry moves from the old owner's
        list (swap-and-shrink) to the end of the new owner's list within the
        same critical section as the owner field.

        Raises NameNotFound, NotOwner, InvalidTarget, AlreadyOwner (checked in
        that order).
        """
        with self._lock:
            try:
                rec = self._owned_record(name, caller)
                dst = self._check_identity(new_owner)
                if dst == rec.owner:
                    raise AlreadyOwner(name, rec.owner)
            except RegistryError as e:
                log.debug("registry: transfer rejected name=%r code=%s", name, e.code)
                raise

            old_owner = rec.owner
            updated = rec.copy()
            updated.owner = dst
            if self._store is not None:
                self._store.update(name, updated)
            self._index.move(name, old_owner, dst)
            self._records[name] = updated
            self._commit(NameTransferred(name=name, old_owner=old_owner, new_owner=dst))
            log.info("registry: transferred name=%r from=%s to=%s", name, to_hex(old_owner), to_hex(dst))
        self._flush()

    def _write(self, name: str, updated: Record) -> None:
        # Store first: a failing write leaves memory untouched.
        if self._store is not None:
            self._store.update(name, updated)
        self._records[name] = updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def resolve(self, name: str) -> Resolution:
        with self._lock:
            rec = self._records.get(name)
            if rec is None:
                raise NameNotFound(name)
            return rec.resolution()

    def record(self, name: str) -> Record:
        """Detached copy of the full record for `name`."""
        with self._lock:
            rec = self._records.get(name)
            if rec is None:
                raise NameNotFound(name)
            return rec.copy()

    def is_available(self, name: str) -> bool:
        with self._lock:
            return name not in self._records

    def names_owned_by(self, identity: IdentityLike) -> List[str]:
        owner = to_identity(identity)
        with self._lock:
            return self._index.names_of(owner)

    def total_names(self) -> int:
        with self._lock:
            return len(self._records)

    def check_invariants(self) -> None:
        """Raise IndexInvariantError if the ownership index diverged from the records."""
        with self._lock:
            self._index.check(self._records)

    def __len__(self) -> int:
        return self.total_names()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and not self.is_available(name)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            names = list(self._records)
        return iter(names)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _commit(self, event: NameEvent) -> None:
        # Caller holds self._lock.
        self._pending.append(self._events.record(event))

    def _flush(self) -> None:
        """
        Deliver pending events to subscribers. Runs outside the state lock so
        subscribers may call back into the registry; events committed by
        such callbacks are queued and delivered after the current one.

        Only one thread dispatches at a time. A thread that finds the
        dispatcher busy (including a nested call from a subscriber) leaves
        its events to the active dispatcher, which re-checks the queue after
        releasing the dispatch lock.
        """
        while True:
            if not self._dispatch_lock.acquire(blocking=False):
                return
            try:
                while True:
                    with self._lock:
                        if not self._pending:
                            break
                        ev = self._pending.popleft()
                    self._events.notify(ev)
            finally:
                self._dispatch_lock.release()
            with self._lock:
                if not self._pending:
                    return

    def close(self) -> None:
        if self._store is not None:
            self._store.close()


__all__ = ["Registry"]
