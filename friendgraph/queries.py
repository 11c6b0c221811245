"""
Read-only views over the entity store: listing, search, hobby catalogue,
aggregate statistics and graph metrics.
"""

from __future__ import annotations

import logging

import networkx as nx

from .errors import SymmetryViolationError
from .graph.projector import GraphProjector
from .models import User, UserStats
from .scoring import round_score
from .settings import Settings, get_settings
from .store.entity_store import EntityStore

logger = logging.getLogger(__name__)


def count_friendships(users: list[User]) -> int:
    """Number of symmetric friendships, each pair counted once."""
    total_degree = sum(len(user.friends) for user in users)
    if total_degree % 2:
        logger.error(f"Odd total friend count {total_degree}: friendship relation is asymmetric")
        raise SymmetryViolationError(f"Total friend count {total_degree} is odd")
    return total_degree // 2


class QueryService:
    """Aggregates and searches over a consistent snapshot"""

    def __init__(
        self,
        store: EntityStore,
        settings: Settings | None = None,
        projector: GraphProjector | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.projector = projector or GraphProjector(self.settings)

    def list_users(self) -> list[User]:
        return self.store.list()

    def get_user(self, user_id: str) -> User:
        return self.store.get(user_id)

    def search(self, query: str, limit: int | None = None) -> list[User]:
        return self.store.search(query, limit=limit)

    def stats(self, top_n: int | None = None) -> UserStats:
        """Totals, average score and the highest scoring users.

        Ties in the top list are broken by id.
        """
        top_n = self.settings.top_users_limit if top_n is None else top_n
        users = self.store.snapshot()

        total_friendships = count_friendships(users)
        average = sum(user.popularity_score for user in users) / len(users) if users else 0.0
        top_users = sorted(users, key=lambda u: (-u.popularity_score, u.id))[:top_n]

        return UserStats(
            total_users=len(users),
            total_friendships=total_friendships,
            average_popularity_score=round_score(average),
            top_users=top_users,
        )

    def hobbies(self) -> list[str]:
        """Sorted union of every user's hobbies."""
        return sorted({hobby for user in self.store.snapshot() for hobby in user.hobbies})

    def graph_metrics(self) -> dict[str, float]:
        """Structural metrics of the friendship graph."""
        graph = self.projector.build_graph(self.store.snapshot())
        node_count = graph.number_of_nodes()
        if node_count == 0:
            return {
                "density": 0.0,
                "average_degree": 0.0,
                "number_of_components": 0,
                "isolated_users": 0,
            }

        return {
            "density": round(nx.density(graph), 4),
            "average_degree": round(2 * graph.number_of_edges() / node_count, 4),
            "number_of_components": nx.number_connected_components(graph),
            "isolated_users": nx.number_of_isolates(graph),
        }
