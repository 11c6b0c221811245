"""
Friend graph engine - wires the store, score engine, relationship manager,
projector and query layer together.

Transports and renderers hold one ``FriendGraphEngine`` and call it; there is
no module level state.

Usage:
    engine = create_engine()
    alice = engine.create_user(UserCreate(username="alice", age=30, hobbies=["chess"]))
"""

from __future__ import annotations

import logging
from typing import Any

from .graph.projection_cache import ProjectionCache
from .graph.projector import GraphProjector
from .models import GraphProjection, User, UserCreate, UserStats, UserUpdate
from .queries import QueryService
from .relationships import RelationshipManager
from .settings import Settings, get_settings
from .store.entity_store import EntityStore
from .store.repository import InMemoryUserRepository, UserRepository

logger = logging.getLogger(__name__)


class FriendGraphEngine:
    """Facade over the friendship graph components"""

    def __init__(self, repository: UserRepository | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.store = EntityStore(repository, settings=self.settings)
        self.scores = self.store.score_engine
        self.relationships = RelationshipManager(self.store)
        self.projector = GraphProjector(self.settings)
        self.queries = QueryService(self.store, self.settings, self.projector)
        self.projection_cache = ProjectionCache()

    # === Users ===

    def create_user(self, data: UserCreate | dict[str, Any]) -> User:
        return self.store.create(data)

    def get_user(self, user_id: str) -> User:
        return self.store.get(user_id)

    def update_user(self, user_id: str, changes: UserUpdate | dict[str, Any]) -> User:
        return self.store.update(user_id, changes)

    def delete_user(self, user_id: str) -> None:
        self.store.delete(user_id)

    def remove_hobby(self, user_id: str, hobby: str) -> User:
        return self.store.remove_hobby(user_id, hobby)

    def recompute_score(self, user_id: str) -> float:
        return self.scores.recompute(user_id)

    # === Friendships ===

    def link(self, user_id: str, friend_id: str) -> None:
        self.relationships.link(user_id, friend_id)

    def unlink(self, user_id: str, friend_id: str) -> None:
        self.relationships.unlink(user_id, friend_id)

    def can_delete(self, user_id: str) -> bool:
        return self.relationships.can_delete(user_id)

    # === Reads ===

    def list_users(self) -> list[User]:
        return self.queries.list_users()

    def search_users(self, query: str, limit: int | None = None) -> list[User]:
        return self.queries.search(query, limit=limit)

    def stats(self, top_n: int | None = None) -> UserStats:
        return self.queries.stats(top_n=top_n)

    def hobbies(self) -> list[str]:
        return self.queries.hobbies()

    def graph_metrics(self) -> dict[str, float]:
        return self.queries.graph_metrics()

    def graph(self) -> GraphProjection:
        """Projection of the current state, served from cache when unchanged."""
        revision, users = self.store.snapshot_with_revision()
        cached = self.projection_cache.get(revision)
        if cached is not None:
            return cached

        projection = self.projector.project(users, revision=revision)
        self.projection_cache.put(revision, projection)
        return projection


def create_repository(settings: Settings) -> UserRepository:
    """Repository for the configured storage backend."""
    if settings.storage_backend == "pocketbase":
        from pocketbase import PocketBase

        from .store.pocketbase_repository import PocketBaseUserRepository

        logger.info(f"Using PocketBase storage at {settings.pocketbase_url}")
        return PocketBaseUserRepository(PocketBase(settings.pocketbase_url), settings.pocketbase_collection)

    logger.info("Using in-memory storage")
    return InMemoryUserRepository()


def create_engine(settings: Settings | None = None, repository: UserRepository | None = None) -> FriendGraphEngine:
    """Build an engine and load existing users from its repository."""
    settings = settings or get_settings()
    if repository is None:
        repository = create_repository(settings)
    engine = FriendGraphEngine(repository, settings=settings)
    engine.store.load()
    return engine
