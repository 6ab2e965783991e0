from __future__ import annotations

import stat
from dataclasses import dataclass
from datetime import datetime, timezone

from ._exceptions import SqlarCorruptRowError

S_IFDIR: int = stat.S_IFDIR
S_IFREG: int = stat.S_IFREG
TYPE_BITS: int = S_IFDIR | S_IFREG
PERM_BITS: int = 0o777
MODE_MAX: int = 0xFFFFFFFF

# Mode given to directories that have no row of their own.
SYNTHESIZED_DIR_MODE: int = S_IFDIR | 0o555

ROW_ARITY = 5


def mode_is_valid(mode: object) -> bool:
    """Return True when *mode* encodes exactly one of the regular-file / directory types."""
    if not isinstance(mode, int) or isinstance(mode, bool):
        return False
    if mode < 0 or mode > MODE_MAX:
        return False
    return (mode & TYPE_BITS) in (S_IFDIR, S_IFREG)


@dataclass(frozen=True)
class Entry:
    """Metadata of one node of the archive tree.

    ``mode`` keeps the raw bits read from the archive; :attr:`file_mode`
    drops everything outside the type and permission bits.
    """

    name: str
    mode: int
    mtime: int = 0
    size: int = 0
    rowid: int = 0

    @classmethod
    def from_row(cls, row: tuple) -> Entry:
        """Decode a ``(rowid, name, mode, mtime, size)`` row.

        Directories report size 0 whatever their ``sz`` column holds; ``mode``
        is kept raw so that broken rows can still be recognized.
        """
        if len(row) != ROW_ARITY:
            raise SqlarCorruptRowError(row, ROW_ARITY)
        rowid, name, mode, mtime, size = row
        if mode_is_valid(mode) and mode & S_IFDIR:
            size = 0
        return cls(
            name=name,
            mode=mode,
            mtime=mtime or 0,
            size=size or 0,
            rowid=rowid or 0,
        )

    @classmethod
    def synthesized_dir(cls, name: str) -> Entry:
        return cls(name=name, mode=SYNTHESIZED_DIR_MODE)

    @property
    def is_dir(self) -> bool:
        return self.mode & S_IFDIR != 0

    @property
    def is_file(self) -> bool:
        return not self.is_dir

    @property
    def is_synthesized(self) -> bool:
        return self.is_dir and self.rowid == 0

    @property
    def perm(self) -> int:
        return self.mode & PERM_BITS

    @property
    def file_mode(self) -> int:
        return (S_IFDIR if self.is_dir else S_IFREG) | self.perm

    @property
    def filemode(self) -> str:
        return stat.filemode(self.file_mode)

    @property
    def modified_at(self) -> datetime:
        return datetime.fromtimestamp(self.mtime, tz=timezone.utc)

    def renamed(self, name: str) -> Entry:
        if name == self.name:
            return self
        return Entry(name=name, mode=self.mode, mtime=self.mtime, size=self.size, rowid=self.rowid)

    def __str__(self) -> str:
        return (
            f"{self.filemode} {self.size} "
            f"{self.modified_at.strftime('%Y-%m-%d %H:%M:%S')} {self.name}"
        )


# ---------------------------------------------------------------------------
#  Directory resolution outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Explicit:
    """The path has its own row in the archive."""

    entry: Entry

    def to_entry(self) -> Entry:
        return self.entry


@dataclass(frozen=True)
class Synthesized:
    """The path has no row but deeper rows imply a directory."""

    name: str

    def to_entry(self) -> Entry:
        return Entry.synthesized_dir(self.name)


Resolution = Explicit | Synthesized


def resolve_directory(
    explicit: Entry | None, implied: bool, name: str
) -> Resolution | None:
    """Combine an explicit row and the implied-directory probe into one outcome.

    An explicit row always wins, whatever its type. ``None`` means the path
    does not exist.
    """
    if explicit is not None:
        return Explicit(explicit)
    if implied:
        return Synthesized(name)
    return None
