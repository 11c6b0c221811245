"""
Popularity score engine.

score = friends + 0.5 * (hobbies shared with each friend, summed over friends)

Scores are materialized on the user record and refreshed inside the same
transaction as the change that affects them. Friends' hobbies are read as they
are at recomputation time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .logging_config import TRACE
from .models import User

if TYPE_CHECKING:
    from .store.entity_store import EntityStore, StoreTransaction

logger = logging.getLogger(__name__)

FRIEND_WEIGHT = Decimal("1")
SHARED_HOBBY_WEIGHT = Decimal("0.5")
SCORE_PRECISION = Decimal("0.01")


def round_score(value: Decimal | float) -> float:
    """Round half-up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP))


class ScoreEngine:
    """Computes and stores popularity scores for one entity store."""

    def __init__(self, store: EntityStore):
        self.store = store

    @staticmethod
    def compute(user: User, friends: Iterable[User]) -> float:
        """Score of ``user`` given its current friend records."""
        own_hobbies = set(user.hobbies)
        friend_count = 0
        shared_total = 0
        for friend in friends:
            shared = len(own_hobbies & set(friend.hobbies))
            logger.log(TRACE, f"Score term for {user.id}: friend {friend.id} shares {shared} hobbies")
            friend_count += 1
            shared_total += shared

        if friend_count == 0:
            return 0.0
        return round_score(FRIEND_WEIGHT * friend_count + SHARED_HOBBY_WEIGHT * shared_total)

    def rescore(self, txn: StoreTransaction, user_id: str) -> float:
        """Recompute ``user_id`` against the transaction's view and stage it."""
        user = txn.get(user_id)
        friends = []
        for friend_id in user.friends:
            friend = txn.find(friend_id)
            if friend is None:
                logger.error(f"User {user_id} lists unknown friend {friend_id}")
                continue
            friends.append(friend)

        score = self.compute(user, friends)
        if score != user.popularity_score:
            logger.debug(f"Score of {user_id}: {user.popularity_score} -> {score}")
        user.popularity_score = score
        txn.put(user)
        return score

    def recompute(self, user_id: str) -> float:
        """Recompute and persist one user's score.

        Returns:
            The new score
        """
        with self.store.transaction(user_id) as txn:
            score = self.rescore(txn, user_id)
        return score
