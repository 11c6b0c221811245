"""
User storage: entity store, transactions and persistence backends
"""

from .entity_store import EntityStore, StoreTransaction
from .locks import EntityLockRegistry
from .repository import InMemoryUserRepository, UserRepository

__all__ = [
    "EntityLockRegistry",
    "EntityStore",
    "InMemoryUserRepository",
    "StoreTransaction",
    "UserRepository",
]
