from __future__ import annotations

import enum
import io
import logging
import warnings
import zlib
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._entry import Entry
    from ._fs import SqlarFileSystem

logger = logging.getLogger(__name__)


class _State(enum.Enum):
    UNREAD = "unread"
    STREAMING = "streaming"
    CLOSED = "closed"


class _RawDecoder:
    """Payload stored as-is."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def read(self, size: int) -> bytes:
        end = len(self._data) if size < 0 else min(self._pos + size, len(self._data))
        chunk = self._data[self._pos:end].tobytes()
        self._pos = end
        return chunk


def _looks_like_zlib(data: bytes) -> bool:
    # RFC 1950 header: CM == 8 and the 16-bit header is a multiple of 31
    return len(data) >= 2 and data[0] & 0x0F == 8 and ((data[0] << 8) | data[1]) % 31 == 0


class _InflateDecoder:
    """Payload compressed with deflate, inflated as the caller reads.

    Archives written by the ``sqlite3 -A`` shell hold zlib streams; raw
    deflate streams are accepted as well.
    """

    def __init__(self, data: bytes) -> None:
        wbits = zlib.MAX_WBITS if _looks_like_zlib(data) else -zlib.MAX_WBITS
        self._inflater = zlib.decompressobj(wbits)
        self._tail: bytes = data

    def _truncated(self) -> zlib.error:
        return zlib.error("incomplete or truncated stream")

    def read(self, size: int) -> bytes:
        if size < 0:
            out = self._inflater.decompress(self._tail) + self._inflater.flush()
            self._tail = b""
            if not self._inflater.eof:
                raise self._truncated()
            return out
        out = bytearray()
        while len(out) < size and not self._inflater.eof:
            pending = self._tail
            chunk = self._inflater.decompress(pending, size - len(out))
            self._tail = self._inflater.unconsumed_tail
            if not chunk and not self._inflater.eof and self._tail == pending:
                raise self._truncated()
            out += chunk
        return bytes(out)


class SqlarFileHandle:
    """Forward-only reader over one archive member.

    Nothing is fetched until the first :meth:`read`.  A handle is meant for a
    single caller; open the path again for independent concurrent reads.
    """

    def __init__(self, sfs: SqlarFileSystem, entry: Entry, path: str) -> None:
        self._sfs: SqlarFileSystem | None = sfs
        self._entry = entry
        self._path = path
        self._state = _State.UNREAD
        self._decoder: _RawDecoder | _InflateDecoder | None = None
        self._pos: int = 0

    @property
    def entry(self) -> Entry:
        return self._entry

    @property
    def name(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._state is _State.CLOSED

    def _assert_open(self) -> None:
        if self._state is _State.CLOSED:
            raise ValueError("I/O operation on closed file.")

    def _start(self) -> _RawDecoder | _InflateDecoder:
        assert self._sfs is not None
        blob = self._sfs._read_payload(self._entry)
        if blob is None:
            raise FileNotFoundError(f"No such file: '{self._path}'")
        if len(blob) == self._entry.size:
            decoder: _RawDecoder | _InflateDecoder = _RawDecoder(blob)
        else:
            logger.debug(
                "inflating %r: %d stored bytes, %d declared",
                self._path, len(blob), self._entry.size,
            )
            decoder = _InflateDecoder(blob)
        self._decoder = decoder
        self._state = _State.STREAMING
        return decoder

    def read(self, size: int = -1) -> bytes:
        self._assert_open()
        decoder = self._decoder if self._decoder is not None else self._start()
        if size == 0:
            return b""
        data = decoder.read(size)
        self._pos += len(data)
        return data

    def readall(self) -> bytes:
        return self.read()

    def readinto(self, buffer: bytearray | memoryview) -> int:
        data = self.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n

    def tell(self) -> int:
        self._assert_open()
        return self._pos

    def seek(self, offset: int, whence: int = 0) -> int:
        self._assert_open()
        raise io.UnsupportedOperation("archive members are not seekable")

    def readable(self) -> bool:
        self._assert_open()
        return True

    def writable(self) -> bool:
        self._assert_open()
        return False

    def seekable(self) -> bool:
        self._assert_open()
        return False

    def close(self) -> None:
        if self._state is _State.CLOSED:
            return
        self._state = _State.CLOSED
        self._decoder = None
        self._sfs = None

    def __enter__(self) -> SqlarFileHandle:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_state", _State.CLOSED) is not _State.CLOSED:
            warnings.warn(
                f"SqlarFileHandle for '{self._path}' was not closed properly. "
                "Always use 'with sfs.open(...) as f:' to ensure cleanup.",
                ResourceWarning,
                stacklevel=1,
            )
            self.close()


class SqlarDirHandle:
    """Open directory: enumerates its entries, never reads content."""

    def __init__(self, sfs: SqlarFileSystem, entry: Entry, path: str) -> None:
        self._sfs: SqlarFileSystem | None = sfs
        self._entry = entry
        self._path = path
        self._pending: list[Entry] | None = None

    @property
    def entry(self) -> Entry:
        return self._entry

    @property
    def name(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._sfs is None

    def read_dir(self, n: int = -1) -> list[Entry]:
        """Return the next *n* entries, or all remaining ones when ``n <= 0``.

        An empty list means the listing is exhausted.
        """
        if self._sfs is None:
            raise ValueError("I/O operation on closed directory.")
        if self._pending is None:
            self._pending = self._sfs.listdir(self._path)
        if n <= 0 or n >= len(self._pending):
            batch, self._pending = self._pending, []
            return batch
        batch = self._pending[:n]
        del self._pending[:n]
        return batch

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.read_dir())

    def read(self, size: int = -1) -> bytes:
        raise IsADirectoryError(f"Is a directory: '{self._path}'")

    def close(self) -> None:
        self._sfs = None
        self._pending = None

    def __enter__(self) -> SqlarDirHandle:
        return self

    def __exit__(self, *args) -> None:
        self.close()
