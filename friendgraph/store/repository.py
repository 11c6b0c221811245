"""
Persistence hooks for the entity store.

A repository only needs single-record upsert/delete plus a full listing. The
entity store loads everything once at startup and writes through on every
committed transaction.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..models import User

logger = logging.getLogger(__name__)


class UserRepository(ABC):
    """Backing store for user records."""

    @abstractmethod
    def load_all(self) -> list[User]:
        """Return every stored user, in creation order."""

    @abstractmethod
    def upsert(self, user: User) -> None:
        """Insert or replace one user record."""

    @abstractmethod
    def delete(self, user_id: str) -> None:
        """Remove one user record. Unknown ids are ignored."""

    def apply(self, saved: Sequence[User], deleted: Sequence[str]) -> None:
        """Write one transaction's worth of changes.

        The default writes record by record. Backends with native transactions
        should override this to make the batch atomic.
        """
        for user in saved:
            self.upsert(user)
        for user_id in deleted:
            self.delete(user_id)


class InMemoryUserRepository(UserRepository):
    """Dict-backed repository, the default backend."""

    def __init__(self, users: Sequence[User] = ()):
        self._records: dict[str, User] = {user.id: user.model_copy(deep=True) for user in users}
        self._lock = threading.Lock()

    def load_all(self) -> list[User]:
        with self._lock:
            return [user.model_copy(deep=True) for user in self._records.values()]

    def upsert(self, user: User) -> None:
        with self._lock:
            self._records[user.id] = user.model_copy(deep=True)

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._records.pop(user_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
