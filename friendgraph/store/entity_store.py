"""
Entity store - the single owner of user records.

All writes go through ``EntityStore.transaction``:

1. the involved user ids are locked in sorted order,
2. the caller stages changed records on a ``StoreTransaction``,
3. on clean exit the staged records are checked for username conflicts,
   written to the repository and published to readers in one critical section.

Readers (``get``, ``list``, ``snapshot``) only take the short store lock, so they
see either all or none of a transaction's changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from ..errors import (
    DuplicateUsernameError,
    HasFriendsError,
    HobbyNotFoundError,
    UserNotFoundError,
)
from ..models import User, UserCreate, UserUpdate
from ..scoring import ScoreEngine
from ..settings import Settings, get_settings
from .locks import EntityLockRegistry
from .repository import InMemoryUserRepository, UserRepository

logger = logging.getLogger(__name__)


class StoreTransaction:
    """Working set of one mutation.

    Only ids locked by the transaction may be written. Any id may be read; ids
    outside the locked set are read from the committed state.
    """

    def __init__(self, store: EntityStore, locked_ids: Sequence[str]):
        self._store = store
        self.locked_ids = frozenset(locked_ids)
        self._staged: dict[str, User] = {}
        self._removed: set[str] = set()

    def find(self, user_id: str) -> User | None:
        if user_id in self._removed:
            return None
        if user_id in self._staged:
            return self._staged[user_id]
        return self._store._committed_copy(user_id)

    def get(self, user_id: str) -> User:
        user = self.find(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def put(self, user: User) -> None:
        self._require_lock(user.id)
        self._removed.discard(user.id)
        self._staged[user.id] = user

    def remove(self, user_id: str) -> None:
        self._require_lock(user_id)
        self._staged.pop(user_id, None)
        self._removed.add(user_id)

    def _require_lock(self, user_id: str) -> None:
        if user_id not in self.locked_ids:
            raise RuntimeError(f"User {user_id} is not locked by this transaction")

    @property
    def staged(self) -> list[User]:
        return list(self._staged.values())

    @property
    def removed(self) -> list[str]:
        return sorted(self._removed)


class EntityStore:
    """Thread-safe in-memory user store with write-through persistence."""

    def __init__(self, repository: UserRepository | None = None, settings: Settings | None = None):
        self.repository = repository if repository is not None else InMemoryUserRepository()
        self.settings = settings or get_settings()
        self.score_engine = ScoreEngine(self)

        self._users: dict[str, User] = {}  # insertion order = creation order
        self._ids_by_username: dict[str, str] = {}
        self._lock = threading.RLock()
        self._entity_locks = EntityLockRegistry()
        self._revision = 0

    # ========================================
    # Loading & snapshots
    # ========================================

    def load(self) -> int:
        """Replace the in-memory state with the repository contents.

        Returns:
            Number of users loaded
        """
        users = self.repository.load_all()
        loaded: dict[str, User] = {}
        ids_by_username: dict[str, str] = {}
        for user in sorted(users, key=lambda u: u.created_at):
            if user.username in ids_by_username:
                logger.error(f"Repository holds duplicate username '{user.username}', keeping current state")
                raise DuplicateUsernameError(user.username)
            loaded[user.id] = user
            ids_by_username[user.username] = user.id

        with self._lock:
            self._users = loaded
            self._ids_by_username = ids_by_username
            self._revision += 1
        logger.info(f"Entity store loaded {len(users)} users")
        return len(users)

    @property
    def revision(self) -> int:
        with self._lock:
            return self._revision

    def snapshot(self) -> list[User]:
        """Consistent copy of every user, in creation order."""
        return self.snapshot_with_revision()[1]

    def snapshot_with_revision(self) -> tuple[int, list[User]]:
        with self._lock:
            return self._revision, [user.model_copy(deep=True) for user in self._users.values()]

    def _committed_copy(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy(deep=True) if user is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._users

    # ========================================
    # Transactions
    # ========================================

    @contextmanager
    def transaction(self, *user_ids: str) -> Iterator[StoreTransaction]:
        """Lock ``user_ids`` and commit the staged changes on clean exit.

        Any exception raised inside the block discards the staged changes.
        """
        with self._entity_locks.hold(user_ids) as locked:
            txn = StoreTransaction(self, locked)
            yield txn
            self._commit(txn)

    @contextmanager
    def _hobby_transaction(self, user_id: str) -> Iterator[StoreTransaction]:
        """Transaction for a hobby change, widened to the user's friends when
        friends are rescored as well."""
        include_friends = self.settings.rescore_friends_on_hobby_change
        while True:
            scope = {user_id}
            if include_friends:
                current = self._committed_copy(user_id)
                if current is not None:
                    scope.update(current.friends)

            with self.transaction(*scope) as txn:
                user = txn.find(user_id)
                if include_friends and user is not None and not set(user.friends) <= scope:
                    # Friends changed between reading the scope and locking it
                    logger.debug(f"Friend set of {user_id} changed while locking, retrying")
                    continue
                yield txn
                return

    def _commit(self, txn: StoreTransaction) -> None:
        saved = txn.staged
        removed = txn.removed
        if not saved and not removed:
            return

        with self._lock:
            self._check_usernames(saved, removed)
            self.repository.apply(saved, removed)

            for user in saved:
                previous = self._users.get(user.id)
                if previous is not None and previous.username != user.username:
                    self._ids_by_username.pop(previous.username, None)
                self._users[user.id] = user.model_copy(deep=True)
                self._ids_by_username[user.username] = user.id

            for user_id in removed:
                previous = self._users.pop(user_id, None)
                if previous is not None:
                    self._ids_by_username.pop(previous.username, None)

            self._revision += 1
            logger.debug(f"Committed revision {self._revision}: saved={[u.id for u in saved]} removed={removed}")

    def _check_usernames(self, saved: Sequence[User], removed: Sequence[str]) -> None:
        """Raise DuplicateUsernameError if publishing ``saved`` would clash."""
        saved_by_id = {user.id: user for user in saved}
        claimed: dict[str, str] = {}
        for user in saved:
            if claimed.setdefault(user.username, user.id) != user.id:
                raise DuplicateUsernameError(user.username)

            owner = self._ids_by_username.get(user.username)
            if owner is None or owner == user.id or owner in removed:
                continue
            # The owner gives the name up in this same transaction
            if owner in saved_by_id and saved_by_id[owner].username != user.username:
                continue
            raise DuplicateUsernameError(user.username)

    def _ensure_username_free(self, username: str, user_id: str | None = None) -> None:
        with self._lock:
            owner = self._ids_by_username.get(username)
        if owner is not None and owner != user_id:
            logger.info(f"Rejected duplicate username '{username}'")
            raise DuplicateUsernameError(username)

    # ========================================
    # CRUD
    # ========================================

    def create(self, data: UserCreate | dict[str, Any]) -> User:
        """Create a user with no friends and a score of 0."""
        if not isinstance(data, UserCreate):
            data = UserCreate.model_validate(data)

        self._ensure_username_free(data.username)
        user = User(username=data.username, age=data.age, hobbies=data.hobbies)

        with self.transaction(user.id) as txn:
            txn.put(user)
            self.score_engine.rescore(txn, user.id)
            created = txn.get(user.id)

        logger.info(f"Created user {created.id} ('{created.username}')")
        return created.model_copy(deep=True)

    def get(self, user_id: str) -> User:
        user = self._committed_copy(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def update(self, user_id: str, changes: UserUpdate | dict[str, Any]) -> User:
        """Apply the fields set on ``changes``.

        A change of the hobby set rescores the user (and its friends when
        ``rescore_friends_on_hobby_change`` is on). Other fields do not affect
        any score.
        """
        if not isinstance(changes, UserUpdate):
            changes = UserUpdate.model_validate(changes)
        fields = changes.changes()

        with self._hobby_transaction(user_id) as txn:
            user = txn.get(user_id)
            if "username" in fields and fields["username"] != user.username:
                self._ensure_username_free(fields["username"], user_id)

            hobbies_changed = "hobbies" in fields and set(fields["hobbies"]) != set(user.hobbies)
            updated = user.model_copy(update=fields)
            txn.put(updated)
            if hobbies_changed:
                self._rescore_hobby_change(txn, updated)
            result = txn.get(user_id)

        logger.info(f"Updated user {user_id} fields={sorted(fields)}")
        return result.model_copy(deep=True)

    def remove_hobby(self, user_id: str, hobby: str) -> User:
        """Remove one hobby from a user and rescore it."""
        hobby = hobby.strip()
        with self._hobby_transaction(user_id) as txn:
            user = txn.get(user_id)
            if hobby not in user.hobbies:
                logger.info(f"Hobby '{hobby}' not found for user {user_id}")
                raise HobbyNotFoundError(user_id, hobby)

            user.hobbies = [h for h in user.hobbies if h != hobby]
            txn.put(user)
            self._rescore_hobby_change(txn, user)
            result = txn.get(user_id)

        logger.info(f"Removed hobby '{hobby}' from user {user_id}")
        return result.model_copy(deep=True)

    def _rescore_hobby_change(self, txn: StoreTransaction, user: User) -> None:
        self.score_engine.rescore(txn, user.id)
        if self.settings.rescore_friends_on_hobby_change:
            for friend_id in user.friends:
                self.score_engine.rescore(txn, friend_id)

    def delete(self, user_id: str) -> None:
        """Delete a friendless user."""
        with self.transaction(user_id) as txn:
            user = txn.get(user_id)
            if user.friends:
                logger.info(f"Refused to delete user {user_id}: {len(user.friends)} friendship(s) remain")
                raise HasFriendsError(user_id, len(user.friends))
            txn.remove(user_id)

        logger.info(f"Deleted user {user_id}")

    # ========================================
    # Reads
    # ========================================

    def search(self, query: str, limit: int | None = None) -> list[User]:
        """Case-insensitive substring match on username or any hobby."""
        needle = query.strip().casefold()
        limit = self.settings.search_limit if limit is None else limit
        if not needle or limit <= 0:
            return []

        matches = []
        for user in self.snapshot():
            if len(matches) >= limit:
                break
            if needle in user.username.casefold() or any(needle in h.casefold() for h in user.hobbies):
                matches.append(user)

        logger.debug(f"Search '{query}' matched {len(matches)} users")
        return matches

    def list(self) -> list[User]:
        """All users, newest first. Ties are broken by id."""
        users = sorted(self.snapshot(), key=lambda u: u.id)
        return sorted(users, key=lambda u: u.created_at, reverse=True)
