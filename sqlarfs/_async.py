"""Async wrapper around SqlarFileSystem.

All calls are delegated to :func:`asyncio.to_thread`, so store queries and
cache locks never block the event-loop thread.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ._entry import Entry
from ._fs import SqlarFileSystem
from ._handle import SqlarDirHandle, SqlarFileHandle
from ._path import ROOT
from ._perm import PermMask
from ._store import ArchiveStore


class AsyncSqlarFileHandle:
    """Async wrapper for a single open archive member or directory."""

    def __init__(self, _sync_handle: SqlarFileHandle | SqlarDirHandle) -> None:
        self._h = _sync_handle

    @property
    def entry(self) -> Entry:
        return self._h.entry

    @property
    def is_dir(self) -> bool:
        return isinstance(self._h, SqlarDirHandle)

    async def read(self, size: int = -1) -> bytes:
        return await asyncio.to_thread(self._h.read, size)

    async def read_dir(self, n: int = -1) -> list[Entry]:
        if not isinstance(self._h, SqlarDirHandle):
            raise NotADirectoryError(f"Not a directory: '{self._h.name}'")
        return await asyncio.to_thread(self._h.read_dir, n)

    async def close(self) -> None:
        await asyncio.to_thread(self._h.close)

    async def __aenter__(self) -> AsyncSqlarFileHandle:
        return self

    async def __aexit__(self, *args) -> None:  # type: ignore[no-untyped-def]
        await self.close()


class AsyncSqlarFileSystem:
    """Thin async facade over :class:`SqlarFileSystem`."""

    def __init__(
        self,
        store: ArchiveStore,
        perm_mask: PermMask | int = PermMask.ANY,
    ) -> None:
        self._sync = SqlarFileSystem(store, perm_mask)

    @classmethod
    def from_sync(cls, sfs: SqlarFileSystem) -> AsyncSqlarFileSystem:
        obj = cls.__new__(cls)
        obj._sync = sfs
        return obj

    @classmethod
    async def from_path(
        cls,
        path: str | Path,
        perm_mask: PermMask | int = PermMask.ANY,
        table: str = "sqlar",
        immutable: bool = True,
    ) -> AsyncSqlarFileSystem:
        sfs = await asyncio.to_thread(
            SqlarFileSystem.from_path, path, perm_mask, table, immutable
        )
        return cls.from_sync(sfs)

    @property
    def sync(self) -> SqlarFileSystem:
        return self._sync

    async def open(self, path: str) -> AsyncSqlarFileHandle:
        h = await asyncio.to_thread(self._sync.open, path)
        return AsyncSqlarFileHandle(h)

    async def stat(self, path: str) -> Entry:
        return await asyncio.to_thread(self._sync.stat, path)

    async def listdir(self, path: str = ROOT) -> list[Entry]:
        return await asyncio.to_thread(self._sync.listdir, path)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._sync.exists, path)

    async def is_dir(self, path: str) -> bool:
        return await asyncio.to_thread(self._sync.is_dir, path)

    async def is_file(self, path: str) -> bool:
        return await asyncio.to_thread(self._sync.is_file, path)

    async def read_bytes(self, path: str, max_size: int | None = None) -> bytes:
        return await asyncio.to_thread(self._sync.read_bytes, path, max_size)

    async def walk(self, path: str = ROOT) -> list[tuple[str, list[str], list[str]]]:
        return await asyncio.to_thread(lambda: list(self._sync.walk(path)))

    async def glob(self, pattern: str) -> list[str]:
        return await asyncio.to_thread(self._sync.glob, pattern)

    async def export_tree(self, prefix: str = ROOT) -> dict[str, bytes]:
        return await asyncio.to_thread(self._sync.export_tree, prefix)

    async def close(self) -> None:
        await asyncio.to_thread(self._sync.close)

    async def __aenter__(self) -> AsyncSqlarFileSystem:
        return self

    async def __aexit__(self, *args) -> None:  # type: ignore[no-untyped-def]
        await self.close()
