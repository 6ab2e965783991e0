from typing import TYPE_CHECKING

from ._entry import SYNTHESIZED_DIR_MODE, Entry, Explicit, Synthesized, resolve_directory
from ._exceptions import SqlarCorruptRowError, SqlarInvalidPathError
from ._fs import SqlarFileSystem
from ._handle import SqlarDirHandle, SqlarFileHandle
from ._path import ROOT
from ._perm import PermMask
from ._store import ArchiveStore, SqliteArchiveStore
from ._text import SqlarTextHandle

if TYPE_CHECKING:
    from ._async import AsyncSqlarFileHandle, AsyncSqlarFileSystem


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name in ("AsyncSqlarFileSystem", "AsyncSqlarFileHandle"):
        from ._async import AsyncSqlarFileHandle, AsyncSqlarFileSystem

        globals()["AsyncSqlarFileSystem"] = AsyncSqlarFileSystem
        globals()["AsyncSqlarFileHandle"] = AsyncSqlarFileHandle
        return globals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "SqlarFileSystem",
    "SqlarFileHandle",
    "SqlarDirHandle",
    "SqlarTextHandle",
    "ArchiveStore",
    "SqliteArchiveStore",
    "Entry",
    "Explicit",
    "Synthesized",
    "resolve_directory",
    "PermMask",
    "ROOT",
    "SYNTHESIZED_DIR_MODE",
    "SqlarInvalidPathError",
    "SqlarCorruptRowError",
    "AsyncSqlarFileSystem",
    "AsyncSqlarFileHandle",
]
__version__ = "0.1.0"
