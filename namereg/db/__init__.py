"""
namereg.db
----------

Storage backends for the record table, plus path resolution.

Only the primary table (name → record) is persisted. The ownership index is
derivable from it by grouping on `owner` and is rebuilt on load.

Paths
-----
Base directory resolution follows:

1) NAMEREG_DB_DIR               (if set)
2) XDG_DATA_HOME/namereg
3) ~/.namereg

Helpers exposed:
- default_base_dir() -> Path
- db_path(name, *, base_dir=None, create=False) -> Path
- RecordStore (protocol implemented by backends)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Optional, Protocol, Tuple, Union, runtime_checkable

from namereg.types import Record

Pathish = Union[str, os.PathLike[str]]


@runtime_checkable
class RecordStore(Protocol):
    """Durable backend for the record table."""

    def load_all(self) -> Iterator[Tuple[str, Record]]: ...
    def insert(self, name: str, record: Record) -> None: ...
    def update(self, name: str, record: Record) -> None: ...
    def close(self) -> None: ...


def default_base_dir() -> Path:
    """
    Resolve the default base directory for registry DB files.

    Order:
      - $NAMEREG_DB_DIR
      - $XDG_DATA_HOME/namereg
      - ~/.namereg
    """
    env = os.getenv("NAMEREG_DB_DIR")
    if env:
        return Path(env).expanduser()

    xdg = os.getenv("XDG_DATA_HOME")
    if xdg:
        return Path(xdg).expanduser() / "namereg"

    return Path.home() / ".namereg"


def db_path(name: str, *, base_dir: Optional[Pathish] = None, create: bool = False) -> Path:
    """
    Build a path under the registry DB base directory.

    Args:
        name: Filename or relative path (e.g., "records.sqlite3").
        base_dir: Optional override for the base directory.
        create: If True, create parent directories (no-op if already exist).
    """
    base = Path(base_dir).expanduser() if base_dir is not None else default_base_dir()
    p = base / name
    if create:
        p.parent.mkdir(parents=True, exist_ok=True)
    return p


DEFAULT_SQLITE_NAME = "records.sqlite3"

__all__ = [
    "RecordStore",
    "default_base_dir",
    "db_path",
    "DEFAULT_SQLITE_NAME",
]
