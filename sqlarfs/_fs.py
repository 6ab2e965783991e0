from __future__ import annotations

import fnmatch
import logging
from collections.abc import Callable, Iterator
from pathlib import Path

from ._cache import MetadataCache
from ._entry import Entry, Synthesized, resolve_directory
from ._exceptions import SqlarInvalidPathError
from ._handle import SqlarDirHandle, SqlarFileHandle
from ._path import ROOT, join_path, split_path, validate_path
from ._perm import PermissionPolicy, PermMask
from ._store import ArchiveStore, SqliteArchiveStore

logger = logging.getLogger(__name__)


class SqlarFileSystem:
    """Read-only hierarchical view of a flat archive table.

    Paths follow the archive grammar: ``/``-separated non-empty segments,
    no ``.`` or ``..`` segments, no leading or trailing ``/``.  The top level
    is ``"."``.  Directory metadata is cached for the lifetime of the
    instance; the archive must not change meanwhile.
    """

    def __init__(
        self,
        store: ArchiveStore,
        perm_mask: PermMask | int = PermMask.ANY,
    ) -> None:
        if not isinstance(store, ArchiveStore):
            raise TypeError(
                f"store must implement ArchiveStore, not {type(store).__name__}"
            )
        self._store = store
        self._policy = PermissionPolicy(perm_mask)
        self._cache = MetadataCache()
        self._owned_store: SqliteArchiveStore | None = None

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        perm_mask: PermMask | int = PermMask.ANY,
        table: str = "sqlar",
        immutable: bool = True,
    ) -> SqlarFileSystem:
        """Open the SQLite Archive file at *path*; :meth:`close` releases it."""
        store = SqliteArchiveStore.open(path, table=table, immutable=immutable)
        try:
            sfs = cls(store, perm_mask)
        except Exception:
            store.close()
            raise
        sfs._owned_store = store
        return sfs

    @property
    def perm_mask(self) -> PermMask:
        return self._policy.mask

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # -- resolution --

    def _stat_root(self) -> Entry:
        entry = self._cache.load(ROOT)
        if entry is not None:
            return entry
        row = self._store.lookup(ROOT)
        if row is not None and row.is_dir:
            entry = row.renamed(ROOT)
        else:
            if row is not None:
                logger.debug("ignoring non-directory root row (mode %o)", row.mode)
            entry = Entry.synthesized_dir(ROOT)
        return self._cache.store(ROOT, entry)

    def _resolve(self, path: str) -> Entry:
        if path == ROOT:
            return self._stat_root()
        parent_path, name = split_path(path)
        parent = self._resolve(parent_path)
        if not parent.is_dir:
            raise FileNotFoundError(f"No such file or directory: '{path}'")
        if not self._policy.can_traverse(parent.mode):
            raise PermissionError(f"Permission denied: cannot traverse '{parent_path}'")

        cached = self._cache.load(path)
        if cached is not None:
            return cached
        explicit = self._store.lookup(path)
        implied = explicit is None and self._store.has_descendants(path)
        resolution = resolve_directory(explicit, implied, name)
        if resolution is None:
            raise FileNotFoundError(f"No such file or directory: '{path}'")
        if isinstance(resolution, Synthesized):
            logger.debug("synthesized directory %r", path)
        entry = resolution.to_entry().renamed(name)
        if entry.is_dir:
            entry = self._cache.store(path, entry)
        return entry

    def _list(self, path: str) -> list[Entry]:
        prefix = "" if path == ROOT else path + "/"
        children, subdirs = self._store.list_children(prefix)
        found: dict[str, Entry] = {}
        for child in children:
            if child.name in found:
                continue
            if child.is_dir:
                child = self._cache.store(join_path(path, child.name), child)
            found[child.name] = child
        for name in subdirs:
            if name in found:
                continue
            found[name] = self._cache.store(
                join_path(path, name), Entry.synthesized_dir(name)
            )
        return [found[name] for name in sorted(found)]

    def _read_payload(self, entry: Entry) -> bytes | None:
        return self._store.fetch_blob(entry.rowid)

    # -- public API --

    def stat(self, path: str) -> Entry:
        return self._resolve(validate_path(path))

    def listdir(self, path: str = ROOT) -> list[Entry]:
        path = validate_path(path)
        entry = self._resolve(path)
        if not entry.is_dir:
            raise NotADirectoryError(f"Not a directory: '{path}'")
        if not self._policy.can_read(entry.mode):
            raise PermissionError(f"Permission denied: cannot list '{path}'")
        return self._list(path)

    def open(self, path: str) -> SqlarFileHandle | SqlarDirHandle:
        path = validate_path(path)
        entry = self._resolve(path)
        if entry.is_dir:
            return SqlarDirHandle(self, entry, path)
        if not self._policy.can_read(entry.mode):
            raise PermissionError(f"Permission denied: cannot read '{path}'")
        return SqlarFileHandle(self, entry, path)

    def _try_stat(self, path: str) -> Entry | None:
        try:
            return self.stat(path)
        except (FileNotFoundError, PermissionError, SqlarInvalidPathError):
            return None

    def exists(self, path: str) -> bool:
        return self._try_stat(path) is not None

    def is_dir(self, path: str) -> bool:
        entry = self._try_stat(path)
        return entry is not None and entry.is_dir

    def is_file(self, path: str) -> bool:
        entry = self._try_stat(path)
        return entry is not None and entry.is_file

    def read_bytes(self, path: str, max_size: int | None = None) -> bytes:
        """Return the whole decoded content of the file at *path*.

        ``max_size`` guards against inflating unexpectedly large members: the
        declared size is checked before anything is fetched, and at most
        ``max_size + 1`` bytes are decoded in case the declaration lies.
        """
        with self.open(path) as f:
            if isinstance(f, SqlarDirHandle):
                raise IsADirectoryError(f"Is a directory: '{path}'")
            if max_size is None:
                return f.read()
            if f.entry.size > max_size:
                raise ValueError(
                    f"File size {f.entry.size} exceeds max_size={max_size}."
                )
            data = f.read(max_size + 1)
            if len(data) > max_size:
                raise ValueError(
                    f"Content of '{path}' exceeds max_size={max_size}; "
                    f"declared size is {f.entry.size}."
                )
            return data

    def walk(
        self,
        path: str = ROOT,
        onerror: Callable[[OSError], None] | None = None,
    ) -> Iterator[tuple[str, list[str], list[str]]]:
        """Walk the tree top-down, like :func:`os.walk`.

        Subdirectories that cannot be listed are skipped after passing the
        error to *onerror*, if given.  Errors on *path* itself propagate.
        """
        entries = self.listdir(path)
        yield from self._walk_dir(validate_path(path), entries, onerror)

    def _walk_dir(
        self,
        dir_path: str,
        entries: list[Entry],
        onerror: Callable[[OSError], None] | None,
    ) -> Iterator[tuple[str, list[str], list[str]]]:
        dirnames = [e.name for e in entries if e.is_dir]
        filenames = [e.name for e in entries if e.is_file]
        yield dir_path, dirnames, filenames
        for name in dirnames:
            child_path = join_path(dir_path, name)
            try:
                child_entries = self.listdir(child_path)
            except (PermissionError, FileNotFoundError) as exc:
                if onerror is not None:
                    onerror(exc)
                continue
            yield from self._walk_dir(child_path, child_entries, onerror)

    def glob(self, pattern: str) -> list[str]:
        """Return a sorted list of paths matching *pattern*.

        Supports ``*`` and ``?`` within a segment, ``[seq]``, and ``**`` for
        any number of directories.  Unlistable directories are skipped.
        """
        parts = [p for p in pattern.split("/") if p and p != ROOT]
        if not parts:
            return []
        results: set[str] = set()
        self._glob_match(ROOT, parts, 0, results)
        return sorted(results)

    def _glob_children(self, dir_path: str) -> list[Entry]:
        try:
            return self.listdir(dir_path)
        except PermissionError:
            return []

    def _glob_match(
        self, dir_path: str, parts: list[str], idx: int, results: set[str]
    ) -> None:
        part = parts[idx]
        is_last = idx == len(parts) - 1
        children = self._glob_children(dir_path)

        if part == "**":
            if is_last:
                for child in children:
                    child_path = join_path(dir_path, child.name)
                    results.add(child_path)
                    if child.is_dir:
                        self._glob_match(child_path, parts, idx, results)
                return
            # zero directories matched by **
            self._glob_match(dir_path, parts, idx + 1, results)
            for child in children:
                if child.is_dir:
                    self._glob_match(
                        join_path(dir_path, child.name), parts, idx, results
                    )
            return

        for child in children:
            if not fnmatch.fnmatchcase(child.name, part):
                continue
            child_path = join_path(dir_path, child.name)
            if is_last:
                results.add(child_path)
            elif child.is_dir:
                self._glob_match(child_path, parts, idx + 1, results)

    def export_tree(self, prefix: str = ROOT) -> dict[str, bytes]:
        return dict(self.iter_export_tree(prefix=prefix))

    def iter_export_tree(self, prefix: str = ROOT) -> Iterator[tuple[str, bytes]]:
        """Yield ``(path, content)`` for every readable file under *prefix*.

        A missing prefix yields nothing.  Files and directories denied by the
        permission mask are skipped.
        """
        entry = self._try_stat(prefix)
        if entry is None:
            return
        if entry.is_file:
            paths = [prefix]
        else:
            try:
                paths = [
                    join_path(dirpath, name)
                    for dirpath, _dirs, files in self.walk(prefix)
                    for name in files
                ]
            except PermissionError:
                return
        for fpath in paths:
            try:
                data = self.read_bytes(fpath)
            except PermissionError:
                continue
            yield fpath, data

    def close(self) -> None:
        if self._owned_store is not None:
            self._owned_store.close()
            self._owned_store = None

    def __enter__(self) -> SqlarFileSystem:
        return self

    def __exit__(self, *args) -> None:
        self.close()
