"""
PocketBase-backed user repository.

Users live in one collection (default ``graph_users``) with the fields
``user_id``, ``username``, ``age``, ``hobbies`` (json), ``friends`` (json),
``created_at`` and ``popularity_score``. Records are addressed by ``user_id``;
the PocketBase record id is an internal detail cached per user.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from pocketbase import PocketBase
from pocketbase.client import ClientResponseError  # type: ignore[attr-defined]

from ..errors import StoreUnavailableError
from ..models import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


def _record_to_user(record: Any) -> User:
    return User(
        id=record.user_id,
        username=record.username,
        age=int(record.age),
        hobbies=list(getattr(record, "hobbies", None) or []),
        friends=list(getattr(record, "friends", None) or []),
        created_at=record.created_at,
        popularity_score=float(getattr(record, "popularity_score", 0) or 0),
    )


def _filter_literal(value: str) -> str:
    """Quote a value for a PocketBase filter expression."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _user_to_body(user: User) -> dict[str, Any]:
    return {
        "user_id": user.id,
        "username": user.username,
        "age": user.age,
        "hobbies": list(user.hobbies),
        "friends": list(user.friends),
        "created_at": user.created_at.isoformat(),
        "popularity_score": user.popularity_score,
    }


class PocketBaseUserRepository(UserRepository):
    """Repository storing users in a PocketBase collection.

    PocketBase has no multi-record transactions, so ``apply`` writes record by
    record. A failure midway surfaces as StoreUnavailableError and the entity
    store publishes nothing from that transaction.
    """

    def __init__(self, pb: PocketBase, collection: str = "graph_users"):
        self.pb = pb
        self.collection_name = collection
        self._record_ids: dict[str, str] = {}  # user_id -> PocketBase record id
        self._lock = threading.Lock()

    def _collection(self) -> Any:
        return self.pb.collection(self.collection_name)

    def load_all(self) -> list[User]:
        try:
            records = self._collection().get_full_list(query_params={"sort": "created_at"})
        except ClientResponseError as e:
            logger.error(f"Failed to load users from PocketBase collection {self.collection_name}: {e}")
            raise StoreUnavailableError(f"Failed to load users: {e}") from e

        users = []
        with self._lock:
            for record in records:
                user = _record_to_user(record)
                self._record_ids[user.id] = record.id
                users.append(user)
        logger.info(f"Loaded {len(users)} users from PocketBase")
        return users

    def _find_record_id(self, user_id: str) -> str | None:
        with self._lock:
            if user_id in self._record_ids:
                return self._record_ids[user_id]

        try:
            record = self._collection().get_first_list_item(f"user_id = {_filter_literal(user_id)}")
        except ClientResponseError as e:
            if e.status == 404:
                return None
            raise

        with self._lock:
            self._record_ids[user_id] = record.id
        return record.id

    def upsert(self, user: User) -> None:
        body = _user_to_body(user)
        try:
            record_id = self._find_record_id(user.id)
            if record_id is None:
                record = self._collection().create(body)
                with self._lock:
                    self._record_ids[user.id] = record.id
                logger.debug(f"Created PocketBase record {record.id} for user {user.id}")
            else:
                self._collection().update(record_id, body)
                logger.debug(f"Updated PocketBase record {record_id} for user {user.id}")
        except ClientResponseError as e:
            logger.error(
                f"Failed to save user {user.id}: status={e.status}, data={getattr(e, 'data', None)}"
            )
            raise StoreUnavailableError(f"Failed to save user {user.id}: {e}") from e

    def delete(self, user_id: str) -> None:
        try:
            record_id = self._find_record_id(user_id)
            if record_id is None:
                return
            self._collection().delete(record_id)
        except ClientResponseError as e:
            logger.error(f"Failed to delete user {user_id}: status={e.status}")
            raise StoreUnavailableError(f"Failed to delete user {user_id}: {e}") from e

        with self._lock:
            self._record_ids.pop(user_id, None)
        logger.debug(f"Deleted PocketBase record {record_id} for user {user_id}")
