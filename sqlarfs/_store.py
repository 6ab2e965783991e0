"""Store collaborators: where archive rows come from.

The filesystem engine only talks to an :class:`ArchiveStore`.  The SQLite
implementation below reads the ``sqlar`` table of an SQLite Archive file
(https://sqlite.org/sqlar.html)::

    CREATE TABLE sqlar(
        name TEXT PRIMARY KEY,  -- path name
        mode INT,               -- type and permission bits
        mtime INT,              -- seconds since the epoch
        sz INT,                 -- original (uncompressed) size
        data BLOB               -- payload, deflated when smaller than sz
    );
"""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from ._entry import Entry, mode_is_valid
from ._path import is_valid_segment

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# 49152 = S_IFDIR|S_IFREG, 16384 = S_IFDIR, 32768 = S_IFREG
_SQL_VALID_MODE = "(mode & 49152) IN (16384, 32768)"
_SQL_REGULAR = "(mode & 49152) = 32768"


@runtime_checkable
class ArchiveStore(Protocol):
    """The four queries the filesystem engine issues against an archive."""

    def lookup(self, name: str) -> Entry | None:
        """Return the row named exactly *name*, skipping broken-mode rows."""
        ...

    def has_descendants(self, name: str) -> bool:
        """Tell whether any row's name starts with ``name + "/"``."""
        ...

    def list_children(self, prefix: str) -> tuple[list[Entry], set[str]]:
        """List one directory level below *prefix* (``""`` or ``"dir/"``).

        Returns the direct child rows, named relative to *prefix*, and the
        distinct first segments of deeper rows.
        """
        ...

    def fetch_blob(self, rowid: int) -> bytes | None:
        """Return the stored payload of a regular-file row, or None when gone."""
        ...


def prefix_range(prefix: str) -> tuple[str, str]:
    """Half-open name range ``[lo, hi)`` holding every name starting with *prefix*.

    *prefix* ends with ``/``; bumping that last character to ``0`` (the next
    code point) gives the upper bound, which keeps the query on the primary
    key index under the default BINARY collation.
    """
    return prefix, prefix[:-1] + chr(ord(prefix[-1]) + 1)


def _decode_rows(rows: Iterable[tuple]) -> list[Entry]:
    entries: list[Entry] = []
    for row in rows:
        entry = Entry.from_row(tuple(row))
        if not mode_is_valid(entry.mode) or not isinstance(entry.name, str):
            logger.debug("skipping broken archive row %r", row)
            continue
        entries.append(entry)
    return entries


class SqliteArchiveStore:
    """:class:`ArchiveStore` backed by a :mod:`sqlite3` connection.

    The connection is shared by every thread using the store; statements are
    serialized with a lock.  Connections created by :meth:`open` are owned by
    the store and closed by :meth:`close`.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        table: str = "sqlar",
        *,
        owns_connection: bool = False,
    ) -> None:
        if not _IDENTIFIER.fullmatch(table):
            raise ValueError(f"Invalid table name: {table!r}.")
        self._conn = conn
        self._table = f'"{table}"'
        self._owns_connection = owns_connection
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls, path: str | Path, table: str = "sqlar", immutable: bool = True
    ) -> SqliteArchiveStore:
        """Open the archive file at *path* read-only.

        With ``immutable=True`` SQLite skips all locking and change detection,
        which is only correct if nothing writes the file while it is open.
        """
        uri = Path(path).resolve().as_uri() + "?mode=ro"
        if immutable:
            uri += "&immutable=1"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
        return cls(conn, table, owns_connection=True)

    def _query(self, sql: str, params: tuple | dict = ()) -> list[tuple]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def lookup(self, name: str) -> Entry | None:
        rows = self._query(
            f"SELECT rowid, name, mode, mtime, sz FROM {self._table}"
            f" WHERE name = ? AND {_SQL_VALID_MODE} LIMIT 1",
            (name,),
        )
        entries = _decode_rows(rows)
        return entries[0] if entries else None

    def has_descendants(self, name: str) -> bool:
        lo, hi = prefix_range(name + "/")
        rows = self._query(
            f"SELECT 1 FROM {self._table} WHERE name >= ? AND name < ? LIMIT 1",
            (lo, hi),
        )
        return bool(rows)

    def list_children(self, prefix: str) -> tuple[list[Entry], set[str]]:
        params: dict[str, object] = {"start": len(prefix) + 1}
        if prefix:
            params["lo"], params["hi"] = prefix_range(prefix)
            in_dir = "name >= :lo AND name < :hi"
        else:
            in_dir = "name <> '.'"
        rest = "substr(name, :start)"
        rows = self._query(
            f"SELECT rowid, {rest}, mode, mtime, sz FROM {self._table}"
            f" WHERE {in_dir} AND instr({rest}, '/') = 0 AND {_SQL_VALID_MODE}",
            params,
        )
        children = [e for e in _decode_rows(rows) if is_valid_segment(e.name)]
        subdir_rows = self._query(
            f"SELECT DISTINCT substr(name, :start, instr({rest}, '/') - 1)"
            f" FROM {self._table}"
            f" WHERE {in_dir} AND instr({rest}, '/') > 1",
            params,
        )
        subdirs = {name for (name,) in subdir_rows if is_valid_segment(name)}
        return children, subdirs

    def fetch_blob(self, rowid: int) -> bytes | None:
        rows = self._query(
            f"SELECT data FROM {self._table} WHERE rowid = ? AND {_SQL_REGULAR}",
            (rowid,),
        )
        if not rows:
            return None
        data = rows[0][0]
        if data is None:
            return b""
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data)

    def close(self) -> None:
        if self._owns_connection:
            with self._lock:
                self._conn.close()

    def __enter__(self) -> SqliteArchiveStore:
        return self

    def __exit__(self, *args) -> None:
        self.close()
