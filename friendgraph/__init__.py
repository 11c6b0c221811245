"""
Friendgraph - symmetric friendship graph with materialized popularity scores.

This package contains:
- models: User records, inputs, projections and stats
- store: Entity store, transactions and persistence backends
- scoring: Popularity score engine
- relationships: Friendship link/unlink rules
- graph: Node/edge projection and its cache
- queries: Listing, search and aggregates
- engine: Facade wiring everything together
"""

from friendgraph.engine import FriendGraphEngine, create_engine
from friendgraph.errors import (
    AlreadyLinkedError,
    BusinessRuleError,
    DuplicateUsernameError,
    FriendGraphError,
    HasFriendsError,
    HobbyNotFoundError,
    NotLinkedError,
    SelfLinkError,
    StoreUnavailableError,
    SymmetryViolationError,
    UserNotFoundError,
)
from friendgraph.models import GraphProjection, User, UserCreate, UserStats, UserUpdate

__all__ = [
    "AlreadyLinkedError",
    "BusinessRuleError",
    "DuplicateUsernameError",
    "FriendGraphEngine",
    "FriendGraphError",
    "GraphProjection",
    "HasFriendsError",
    "HobbyNotFoundError",
    "NotLinkedError",
    "SelfLinkError",
    "StoreUnavailableError",
    "SymmetryViolationError",
    "User",
    "UserCreate",
    "UserNotFoundError",
    "UserStats",
    "UserUpdate",
    "create_engine",
]
