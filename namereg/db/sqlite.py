"""
SQLite-backed record store.

Schema (SQLite)
---------------
TABLE records(
  name TEXT PRIMARY KEY,          -- exact, case-sensitive name
  owner BLOB NOT NULL,            -- identity bytes
  target BLOB NOT NULL,           -- identity bytes
  content_hash TEXT NOT NULL,
  registered_at INTEGER NOT NULL  -- clock value at creation; never updated
);
Useful indexes:
  (owner) for rebuilding / querying the ownership index

The ownership index is not stored: `names_by_owner` and
`OwnershipIndex.rebuild(store.load_all())` derive it from this table. Rows are
never deleted.

Threading:
- `check_same_thread=False`; an internal lock serializes use of the single
  connection. Every write runs in its own IMMEDIATE transaction.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from namereg.db import Pathish
from namereg.errors import NameAlreadyRegistered, NameNotFound
from namereg.logging import get_logger
from namereg.types import Identity, Record

log = get_logger(__name__)

DEFAULT_PRAGMAS: Sequence[Tuple[str, Any]] = (
    ("journal_mode", "WAL"),
    ("synchronous", "NORMAL"),
    ("temp_store", "MEMORY"),
    ("foreign_keys", 1),
)


def _row_to_record(row: sqlite3.Row) -> Record:
    return Record(
        owner=bytes(row["owner"]),
        target=bytes(row["target"]),
        content_hash=row["content_hash"],
        registered_at=int(row["registered_at"]),
    )


class SQLiteRecordStore:
    """
    SQLite-backed implementation of `namereg.db.RecordStore`.

    Parameters
    ----------
    path : str | PathLike
        SQLite database file path. Use ':memory:' for in-memory (tests).
    pragmas : Sequence[Tuple[str, Any]]
        Extra PRAGMAs applied after the defaults.
    """

    def __init__(self, path: Pathish, pragmas: Optional[Sequence[Tuple[str, Any]]] = None) -> None:
        self.path = str(path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            self.path,
            isolation_level=None,  # autocommit; we manage BEGIN IMMEDIATE
            check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._apply_pragmas(pragmas)
        self._migrate()
        log.debug("sqlite: opened record store path=%s", self.path)

    def _apply_pragmas(self, pragmas: Optional[Sequence[Tuple[str, Any]]]) -> None:
        cur = self._conn.cursor()
        for name, val in tuple(DEFAULT_PRAGMAS) + tuple(pragmas or ()):
            cur.execute(f"PRAGMA {name} = {val}")

    def _migrate(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS records(
              name TEXT PRIMARY KEY,
              owner BLOB NOT NULL,
              target BLOB NOT NULL,
              content_hash TEXT NOT NULL,
              registered_at INTEGER NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_records_owner ON records(owner)")

    # ---- transaction helper
    def _begin(self) -> sqlite3.Cursor:
        cur = self._conn.cursor()
        cur.execute("BEGIN IMMEDIATE")
        return cur

    # ---- RecordStore API

    def load_all(self) -> Iterator[Tuple[str, Record]]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM records ORDER BY rowid ASC").fetchall()
        for row in rows:
            yield row["name"], _row_to_record(row)

    def insert(self, name: str, record: Record) -> None:
        with self._lock:
            cur = self._begin()
            try:
                cur.execute(
                    """
                    INSERT INTO records(name, owner, target, content_hash, registered_at)
                    VALUES(?, ?, ?, ?, ?)
                    """,
                    (name, record.owner, record.target, record.content_hash, int(record.registered_at)),
                )
                cur.execute("COMMIT")
            except sqlite3.IntegrityError:
                cur.execute("ROLLBACK")
                raise NameAlreadyRegistered(name) from None
            except Exception:
                cur.execute("ROLLBACK")
                raise

    def update(self, name: str, record: Record) -> None:
        """Overwrite the mutable fields; `registered_at` is left as stored."""
        with self._lock:
            cur = self._begin()
            try:
                cur.execute(
                    """
                    UPDATE records
                    SET owner = ?, target = ?, content_hash = ?
                    WHERE name = ?
                    """,
                    (record.owner, record.target, record.content_hash, name),
                )
                if cur.rowcount != 1:
                    cur.execute("ROLLBACK")
                    raise NameNotFound(name)
                cur.execute("COMMIT")
            except NameNotFound:
                raise
            except Exception:
                cur.execute("ROLLBACK")
                raise

    def get(self, name: str) -> Optional[Record]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM records WHERE name = ?", (name,)).fetchone()
        return _row_to_record(row) if row else None

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM records").fetchone()[0])

    # ---- derived index queries

    def names_by_owner(self) -> Dict[Identity, List[str]]:
        """Group names on owner, each list in insertion (rowid) order."""
        out: Dict[Identity, List[str]] = {}
        with self._lock:
            rows = self._conn.execute(
                "SELECT owner, name FROM records ORDER BY owner, rowid"
            ).fetchall()
        for row in rows:
            out.setdefault(bytes(row["owner"]), []).append(row["name"])
        return out

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SQLiteRecordStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


__all__ = ["SQLiteRecordStore", "DEFAULT_PRAGMAS"]
