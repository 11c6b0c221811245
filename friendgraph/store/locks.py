"""
Per-entity locking for multi-user mutations.

Each user id gets its own lock. Operations touching several users acquire their
locks in sorted id order, so two writers can never wait on each other in a
cycle, and writers on disjoint users never block each other.

A lock only exists while some writer holds or waits for it, so ids that are
never seen again (unknown or deleted users) leave nothing behind.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager

logger = logging.getLogger(__name__)


class _EntityLock:
    __slots__ = ("holders", "lock")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0  # writers holding or waiting


class EntityLockRegistry:
    """Thread-safe registry of reference-counted per-entity locks."""

    def __init__(self) -> None:
        self._locks: dict[str, _EntityLock] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, entity_id: str) -> threading.Lock:
        with self._registry_lock:
            entry = self._locks.get(entity_id)
            if entry is None:
                entry = _EntityLock()
                self._locks[entity_id] = entry
            entry.holders += 1
            return entry.lock

    def _checkin(self, entity_id: str) -> None:
        with self._registry_lock:
            entry = self._locks[entity_id]
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[entity_id]

    @contextmanager
    def hold(self, entity_ids: Iterable[str]) -> Iterator[list[str]]:
        """Hold the locks of all given ids, acquired in sorted order.

        Yields:
            The sorted, deduplicated ids that are locked
        """
        ordered = sorted(set(entity_ids))
        with ExitStack() as stack:
            for entity_id in ordered:
                lock = self._checkout(entity_id)
                stack.callback(self._checkin, entity_id)
                stack.enter_context(lock)
            logger.debug(f"Holding entity locks {ordered}")
            yield ordered

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
