"""Keyed mutual exclusion with bounded waits.

Stock, order and quota mutations each serialize on a string key
(``product:42``, ``order:7``, ``quota:pm-1:2024-05-01``). Work on different
keys never contends. Waiting is capped by ``timeout``; a caller that cannot
get the lock in time gets ``ConcurrencyConflictError`` instead of blocking.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

import structlog

from mediastore.domain.exceptions import ConcurrencyConflictError

logger = structlog.get_logger(__name__)

DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class KeyedLock:

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS) -> None:
        if timeout <= 0:
            raise ValueError("Lock timeout must be positive")
        self._timeout = timeout
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock for *key* for the duration of the ``with`` block.

        The lock is reentrant for the owning thread.
        """
        wait = self._timeout if timeout is None else timeout
        entry = self._checkout(key)
        if not entry.lock.acquire(timeout=wait):
            self._checkin(key, entry)
            logger.warning("lock.timeout", key=key, timeout=wait)
            raise ConcurrencyConflictError(
                f"Could not acquire lock for '{key}' within {wait:g}s; "
                f"another operation on it is still in progress"
            )
        try:
            yield
        finally:
            entry.lock.release()
            self._checkin(key, entry)

    def active_keys(self) -> list[str]:
        with self._guard:
            return sorted(self._entries)

    # Entries are reference counted so idle keys do not accumulate.

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)
