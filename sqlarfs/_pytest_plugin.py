"""pytest fixture plugin.

Usage::

    # conftest.py
    pytest_plugins = ["sqlarfs._pytest_plugin"]

This makes the ``sqlar_conn`` and ``make_sfs`` fixtures available::

    def test_something(make_sfs):
        sfs = make_sfs({"docs/a.txt": b"hello"})
        assert [e.name for e in sfs.listdir("docs")] == ["a.txt"]
"""

from __future__ import annotations

import sqlite3
import stat
import zlib
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass

import pytest

from ._fs import SqlarFileSystem
from ._perm import PermMask
from ._store import SqliteArchiveStore

SQLAR_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS sqlar("
    "name TEXT PRIMARY KEY, mode INT, mtime INT, sz INT, data BLOB)"
)


@dataclass
class Member:
    """One row to insert into a test archive.

    ``size`` defaults to ``len(data)``; ``compress`` stores the data deflated
    when that makes it smaller, as the ``sqlite3 -A`` shell does.  Directory
    modes store no data.
    """

    name: str
    data: bytes = b""
    mode: int = stat.S_IFREG | 0o644
    mtime: int = 0
    compress: bool = True
    size: int | None = None

    def row(self) -> tuple[str, int, int, int, bytes | None]:
        if self.mode & stat.S_IFDIR and not self.mode & stat.S_IFREG:
            return self.name, self.mode, self.mtime, self.size or 0, None
        size = len(self.data) if self.size is None else self.size
        blob = self.data
        if self.compress:
            deflated = zlib.compress(self.data)
            if len(deflated) < len(self.data):
                blob = deflated
        return self.name, self.mode, self.mtime, size, blob


def add_members(
    conn: sqlite3.Connection,
    members: Mapping[str, bytes] | Iterable[Member],
) -> None:
    """Insert *members* (a ``{name: data}`` mapping or Member rows) into ``sqlar``."""
    conn.execute(SQLAR_SCHEMA)
    if isinstance(members, Mapping):
        rows = [Member(name, data).row() for name, data in members.items()]
    else:
        rows = [m.row() for m in members]
    conn.executemany(
        "INSERT INTO sqlar(name, mode, mtime, sz, data) VALUES (?, ?, ?, ?, ?)", rows
    )
    conn.commit()


@pytest.fixture
def sqlar_conn() -> Iterator[sqlite3.Connection]:
    """An in-memory database holding an empty ``sqlar`` table.

    Provides an independent database per test (function scope).
    """
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.execute(SQLAR_SCHEMA)
    yield conn
    conn.close()


@pytest.fixture
def make_sfs(
    sqlar_conn: sqlite3.Connection,
) -> Callable[..., SqlarFileSystem]:
    """Factory filling ``sqlar_conn`` and returning a :class:`SqlarFileSystem` over it."""

    def factory(
        members: Mapping[str, bytes] | Iterable[Member] = (),
        perm_mask: PermMask | int = PermMask.ANY,
    ) -> SqlarFileSystem:
        add_members(sqlar_conn, members)
        return SqlarFileSystem(SqliteArchiveStore(sqlar_conn), perm_mask)

    return factory
