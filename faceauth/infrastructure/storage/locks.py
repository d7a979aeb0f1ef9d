"""Per-key write locks for template stores."""
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """One mutex per identity key.

    Writers to the same key are serialized; writers to different keys and
    all readers proceed independently. A key's lock lives only while some
    writer holds or waits on it, so deleted identities leave nothing behind.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the write lock for ``key`` for the duration of the block."""
        lock = self._lock_for(key)
        with lock:
            yield
