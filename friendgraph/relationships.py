"""
Relationship manager - friendship edges between users.

Friendship is symmetric and irreflexive. Both sides of an edge, and both
endpoints' scores, change in one store transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .errors import (
    AlreadyLinkedError,
    NotLinkedError,
    SelfLinkError,
    SymmetryViolationError,
    UserNotFoundError,
)
from .models import User
from .store.entity_store import EntityStore

logger = logging.getLogger(__name__)


class RelationshipManager:
    """Creates and removes friendships while keeping them symmetric"""

    def __init__(self, store: EntityStore):
        self.store = store
        self.score_engine = store.score_engine

    def link(self, user_id: str, friend_id: str) -> None:
        """Make two users friends and rescore both."""
        if user_id == friend_id:
            logger.info(f"Rejected self link for {user_id}")
            raise SelfLinkError(user_id)

        with self.store.transaction(user_id, friend_id) as txn:
            user = txn.get(user_id)
            friend = txn.get(friend_id)
            if self._linked(user, friend):
                logger.info(f"Users {user_id} and {friend_id} are already friends")
                raise AlreadyLinkedError(user_id, friend_id)

            user.friends.append(friend_id)
            friend.friends.append(user_id)
            txn.put(user)
            txn.put(friend)

            self.score_engine.rescore(txn, user_id)
            self.score_engine.rescore(txn, friend_id)

        logger.info(f"Linked {user_id} <-> {friend_id}")

    def unlink(self, user_id: str, friend_id: str) -> None:
        """Remove a friendship and rescore both users."""
        with self.store.transaction(user_id, friend_id) as txn:
            user = txn.get(user_id)
            friend = txn.get(friend_id)
            if user_id == friend_id or not self._linked(user, friend):
                logger.info(f"Users {user_id} and {friend_id} are not friends")
                raise NotLinkedError(user_id, friend_id)

            user.friends = [f for f in user.friends if f != friend_id]
            friend.friends = [f for f in friend.friends if f != user_id]
            txn.put(user)
            txn.put(friend)

            self.score_engine.rescore(txn, user_id)
            self.score_engine.rescore(txn, friend_id)

        logger.info(f"Unlinked {user_id} <-> {friend_id}")

    @staticmethod
    def _linked(user: User, friend: User) -> bool:
        forward = friend.id in user.friends
        backward = user.id in friend.friends
        if forward != backward:
            logger.error(f"Asymmetric friendship between {user.id} and {friend.id}")
            raise SymmetryViolationError(f"Friendship between {user.id} and {friend.id} is one-sided")
        return forward

    def can_delete(self, user_id: str) -> bool:
        """True iff the user exists and has no friends."""
        try:
            user = self.store.get(user_id)
        except UserNotFoundError:
            return False
        return not user.friends

    def friends_of(self, user_id: str) -> list[User]:
        """Current friend records of a user, in link order."""
        users = {user.id: user for user in self.store.snapshot()}
        if user_id not in users:
            raise UserNotFoundError(user_id)
        return [users[friend_id] for friend_id in users[user_id].friends if friend_id in users]

    def check_integrity(self, users: Sequence[User] | None = None) -> list[str]:
        """Describe every broken friendship invariant in ``users``.

        Returns:
            Human readable violations, empty when the graph is consistent
        """
        if users is None:
            users = self.store.snapshot()
        by_id = {user.id: user for user in users}

        violations = []
        for user in users:
            if user.id in user.friends:
                violations.append(f"{user.id} is friends with itself")
            if len(set(user.friends)) != len(user.friends):
                violations.append(f"{user.id} lists a friend more than once")
            for friend_id in user.friends:
                friend = by_id.get(friend_id)
                if friend is None:
                    violations.append(f"{user.id} lists unknown friend {friend_id}")
                elif user.id not in friend.friends:
                    violations.append(f"{user.id} -> {friend_id} has no reverse edge")

        if violations:
            logger.error(f"Friendship integrity check found {len(violations)} violation(s)")
        return violations
