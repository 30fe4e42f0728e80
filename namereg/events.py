"""
namereg.events - registry notifications and the per-registry event log.

Events fire only on a successful mutation. The registry records them into its
`EventLog` inside the critical section, so the log order is the commit order,
and hands them to subscribers once the state lock is released.

Canonical receipt form (see `EventLog.to_receipt`)::

    {"name": "NameRegistered", "seq": 0,
     "args": [{"k": "name", "t": "s", "v": "alice"},
              {"k": "owner", "t": "b", "v": "0xaa…"}, ...]}

    t="s" => text, t="b" => bytes as 0x-hex, t="i" => integer
"""

from __future__ import annotations

import itertools
import threading
from collections import deque
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Union

from .logging import get_logger
from .types import Identity, to_hex

log = get_logger(__name__)


# ----------------------------- event types ----------------------------- #


@dataclass(frozen=True)
class NameEvent:
    """Base class; `seq` is assigned by the EventLog when recorded."""

    name: str
    seq: int = field(default=-1, compare=False)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def args(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "seq"}


@dataclass(frozen=True)
class NameRegistered(NameEvent):
    owner: Identity = b""
    content_hash: str = ""


@dataclass(frozen=True)
class NameUpdated(NameEvent):
    # Post-update pair, emitted by both update paths.
    target: Identity = b""
    content_hash: str = ""


@dataclass(frozen=True)
class NameTransferred(NameEvent):
    old_owner: Identity = b""
    new_owner: Identity = b""


Subscriber = Callable[[NameEvent], None]


# ----------------------------- event log ----------------------------- #


DEFAULT_EVENT_LOG_SIZE = 1024


class EventLog:
    """
    Ordered record of emitted events plus a subscriber list.

    Only the most recent `maxlen` events are retained (None keeps all, 0 keeps
    none); `seq` keeps counting across evictions and `clear()`. Subscribers
    are the delivery path, the retained tail is for inspection and receipts.

    `record` is called by the registry while it holds its state lock;
    `notify` is called afterwards. Subscriber failures are logged and do not
    propagate: the mutation that produced the event has already committed.
    """

    def __init__(self, maxlen: Optional[int] = DEFAULT_EVENT_LOG_SIZE) -> None:
        if maxlen is not None and maxlen < 0:
            raise ValueError(f"maxlen must be >= 0, got {maxlen}")
        self._events: Deque[NameEvent] = deque(maxlen=maxlen)
        self._subscribers: List[Subscriber] = []
        self._seq = itertools.count()
        self._recorded = 0
        self._lock = threading.Lock()

    @property
    def maxlen(self) -> Optional[int]:
        return self._events.maxlen

    @property
    def recorded(self) -> int:
        """Total events ever recorded, including evicted ones."""
        with self._lock:
            return self._recorded

    # --- recording ---------------------------------------------------------

    def record(self, event: NameEvent) -> NameEvent:
        with self._lock:
            ev = _with_seq(event, next(self._seq))
            self._events.append(ev)
            self._recorded += 1
        return ev

    def snapshot(self) -> Tuple[NameEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    # --- subscribers -------------------------------------------------------

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register `fn`; returns a callable that removes it again."""
        with self._lock:
            self._subscribers.append(fn)

        def _unsubscribe() -> None:
            with self._lock:
                if fn in self._subscribers:
                    self._subscribers.remove(fn)

        return _unsubscribe

    def notify(self, event: NameEvent) -> None:
        with self._lock:
            subs = list(self._subscribers)
        for fn in subs:
            try:
                fn(event)
            except Exception:
                log.exception("events: subscriber %r failed on %s seq=%d", fn, event.kind, event.seq)

    # --- receipts ----------------------------------------------------------

    def to_receipt(self) -> List[Dict[str, Any]]:
        return [encode_event(ev) for ev in self.snapshot()]


def _with_seq(event: NameEvent, seq: int) -> NameEvent:
    return type(event)(**event.args(), seq=seq)


def _encode_value(v: Union[str, bytes, int]) -> Dict[str, Any]:
    if isinstance(v, (bytes, bytearray)):
        return {"t": "b", "v": to_hex(v)}
    if isinstance(v, bool):
        raise TypeError("boolean event args are not supported")
    if isinstance(v, int):
        return {"t": "i", "v": int(v)}
    if isinstance(v, str):
        return {"t": "s", "v": v}
    raise TypeError(f"unsupported event arg type {type(v).__name__}")


def encode_event(event: NameEvent) -> Dict[str, Any]:
    """Render one event in canonical receipt form."""
    enc_args: List[Dict[str, Any]] = []
    for k, v in event.args().items():
        enc_args.append({"k": k, **_encode_value(v)})
    return {"name": event.kind, "seq": event.seq, "args": enc_args}


__all__ = [
    "DEFAULT_EVENT_LOG_SIZE",
    "NameEvent",
    "NameRegistered",
    "NameUpdated",
    "NameTransferred",
    "Subscriber",
    "EventLog",
    "encode_event",
]
