"""SqlarTextHandle: text decoding over a forward-only archive member.

Archive members cannot seek, so ``io.TextIOWrapper`` (which needs
``seekable()``/``tell()`` cookies for some operations) is replaced by this
small helper.  Lines end with ``\\n``, ``\\r\\n`` or a bare ``\\r``.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._handle import SqlarFileHandle

_READ_CHUNK = 4096


class SqlarTextHandle:
    """Read-only text view of a :class:`SqlarFileHandle`.

    Parameters
    ----------
    handle:
        Binary handle obtained from ``SqlarFileSystem.open()``.
    encoding:
        Text encoding (default ``"utf-8"``).
    errors:
        Decode error handling (default ``"strict"``).

    Example
    -------
    >>> with sfs.open("docs/readme.txt") as f:
    ...     for line in SqlarTextHandle(f):
    ...         print(line, end="")
    """

    def __init__(
        self,
        handle: SqlarFileHandle,
        encoding: str = "utf-8",
        errors: str = "strict",
    ) -> None:
        self._handle = handle
        self._encoding = encoding
        self._errors = errors
        self._decoder = codecs.getincrementaldecoder(encoding)(errors)
        self._pending = ""
        self._eof = False

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def errors(self) -> str:
        return self._errors

    def _fill(self) -> bool:
        """Decode one more chunk into the pending buffer; False at end of data."""
        if self._eof:
            return False
        raw = self._handle.read(_READ_CHUNK)
        if not raw:
            self._eof = True
            self._pending += self._decoder.decode(b"", final=True)
            return False
        self._pending += self._decoder.decode(raw)
        return True

    def read(self, size: int = -1) -> str:
        """Read and decode text.

        Parameters
        ----------
        size:
            Maximum number of characters to return. ``-1`` reads everything.
        """
        if size < 0:
            while self._fill():
                pass
            text, self._pending = self._pending, ""
            return text
        while len(self._pending) < size and self._fill():
            pass
        text, self._pending = self._pending[:size], self._pending[size:]
        return text

    def readline(self, limit: int = -1) -> str:
        """Read one line, including its terminator.

        Parameters
        ----------
        limit:
            Maximum number of characters to return (``-1`` means unlimited).
        """
        while True:
            end = self._line_end()
            if end is not None:
                break
            if limit >= 0 and len(self._pending) >= limit:
                break
            if not self._fill():
                break
        if end is None:
            end = self._line_end() or len(self._pending)
        if limit >= 0:
            end = min(end, limit)
        line, self._pending = self._pending[:end], self._pending[end:]
        return line

    def _line_end(self) -> int | None:
        pending = self._pending
        nl = pending.find("\n")
        cr = pending.find("\r")
        if cr != -1 and (nl == -1 or cr < nl):
            if cr + 1 < len(pending):
                return cr + 2 if pending[cr + 1] == "\n" else cr + 1
            # a trailing \r may be the first half of \r\n
            return cr + 1 if self._eof else None
        if nl != -1:
            return nl + 1
        return None

    def readlines(self) -> list[str]:
        return list(self)

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        line = self.readline()
        if not line:
            raise StopIteration
        return line

    def __enter__(self) -> SqlarTextHandle:
        return self

    def __exit__(self, *args: object) -> None:
        # Closing the handle is the responsibility of the caller's with sfs.open(...) block
        pass
