"""
Root test configuration and fixtures for the friendgraph project.

This conftest.py provides common fixtures for all test categories:
- unit/: Fast, isolated tests of one component
- integration/: Tests driving several components through the engine facade

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from friendgraph.engine import FriendGraphEngine  # noqa: E402
from friendgraph.settings import Settings  # noqa: E402
from friendgraph.store.entity_store import EntityStore  # noqa: E402
from friendgraph.store.repository import InMemoryUserRepository  # noqa: E402


def make_settings(**overrides) -> Settings:
    """Settings with library defaults, ignoring any local .env file."""
    return Settings(_env_file=None, **overrides)


def create_mock_pocketbase():
    """Create a mock PocketBase instance with one chainable collection."""
    mock_pb = Mock()
    mock_collection = Mock()

    mock_collection.get_full_list = Mock(return_value=[])
    mock_collection.get_first_list_item = Mock()
    mock_collection.create = Mock(return_value=Mock(id="pb-record-1"))
    mock_collection.update = Mock()
    mock_collection.delete = Mock()

    # Make collection callable to return itself for chaining
    mock_pb.collection = Mock(return_value=mock_collection)
    return mock_pb


@pytest.fixture
def mock_pocketbase():
    """Create a mock PocketBase instance for tests that need it."""
    return create_mock_pocketbase()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def repository():
    return InMemoryUserRepository()


@pytest.fixture
def store(repository, settings):
    return EntityStore(repository, settings=settings)


@pytest.fixture
def engine(repository, settings):
    return FriendGraphEngine(repository, settings=settings)


@pytest.fixture
def sample_user_data():
    """Sample creation payloads used across tests."""
    return {
        "alice": {"username": "alice", "age": 30, "hobbies": ["coding", "gaming"]},
        "bob": {"username": "bob", "age": 25, "hobbies": ["coding", "music"]},
        "carol": {"username": "carol", "age": 41, "hobbies": ["gaming", "sports"]},
    }


@pytest.fixture
def settings_factory():
    """Build Settings with overrides, e.g. ``settings_factory(layout_jitter=100.0)``."""
    return make_settings
