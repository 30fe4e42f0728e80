"""
namereg.logging
---------------

Logger factory and root-handler setup for the registry.

Every module takes its logger from `get_logger(__name__)`, so all registry
output sits under the "namereg" hierarchy. `configure_from_config` installs
one console handler using `RegistryConfig.log_level` / `log_format`:

    text:  2026-01-05T12:34:56.789+00:00 | INFO | namereg.registry | trace_id=ab12 | registry: registered ...
    json:  {"ts": ..., "level": "INFO", "logger": "namereg.registry", "msg": ..., "trace_id": "ab12"}

Fields bound with `bind()` / `trace_scope()` are attached to every line
emitted from the same context. Identity bytes render as 0x-hex.
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, Union

ROOT_LOGGER = "namereg"

_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("namereg_log_context", default={})

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _render(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    return str(v)


# ---- context ----


def context() -> Dict[str, Any]:
    return dict(_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Attach fields to all log lines emitted from the current context."""
    _CONTEXT.set({**_CONTEXT.get(), **{k: _render(v) for k, v in fields.items()}})


def clear_context() -> None:
    _CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace_id for the duration of the block, then restore the prior context."""
    token = _CONTEXT.set(dict(_CONTEXT.get()))
    tid = trace_id or uuid.uuid4().hex[:12]
    bind(trace_id=tid)
    try:
        yield tid
    finally:
        _CONTEXT.reset(token)


# ---- formatters ----


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    out = context()
    for k, v in vars(record).items():
        if k not in _STANDARD_ATTRS and not k.startswith("_"):
            out.setdefault(k, _render(v))
    return out


def _timestamp(record: logging.LogRecord) -> str:
    ts = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
    return ts.isoformat(timespec="milliseconds")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_fields(record))
        if record.exc_info:
            payload["err"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [_timestamp(record), record.levelname, record.name]
        fields = _fields(record)
        if fields:
            parts.append(" ".join(f"{k}={v}" for k, v in fields.items()))
        parts.append(record.getMessage())
        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---- setup ----


def configure(*, json: bool = False, level: Union[str, int] = "INFO", stream: Any = None) -> None:
    """Replace the root handlers with a single console handler."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JSONFormatter() if json else TextFormatter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)


def configure_from_config(cfg: Any, stream: Any = None) -> None:
    """Apply `log_level` / `log_format` from a `namereg.config.RegistryConfig`."""
    configure(json=cfg.log_format == "json", level=cfg.log_level, stream=stream)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not name or name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name or ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


__all__ = [
    "ROOT_LOGGER",
    "context",
    "bind",
    "clear_context",
    "trace_scope",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "configure_from_config",
    "get_logger",
]
