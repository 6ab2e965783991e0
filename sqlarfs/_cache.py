import logging

from ._entry import Entry
from ._lock import ReadWriteLock

logger = logging.getLogger(__name__)


class MetadataCache:
    """Directory metadata memoized per filesystem handle.

    Keys are validated archive paths (``"."`` for the root).  Entries are
    never evicted: the archive is assumed not to change while the handle is
    alive, and lookups against a changing archive may return stale data.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._entries: dict[str, Entry] = {}

    def load(self, path: str) -> Entry | None:
        with self._lock.read_locked():
            return self._entries.get(path)

    def store(self, path: str, entry: Entry) -> Entry:
        """Remember *entry* for *path* unless another caller got there first.

        Returns the entry that is cached after the call, which callers must
        use instead of their own copy.
        """
        with self._lock.write_locked():
            existing = self._entries.get(path)
            if existing is not None:
                return existing
            self._entries[path] = entry
        logger.debug("cached directory %r (mode %o)", path, entry.mode)
        return entry

    def __contains__(self, path: object) -> bool:
        with self._lock.read_locked():
            return path in self._entries

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)
