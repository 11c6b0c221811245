"""Tests for the popularity score engine."""

from __future__ import annotations

import pytest

from friendgraph.errors import UserNotFoundError
from friendgraph.models import User
from friendgraph.scoring import ScoreEngine, round_score


def _user(username: str, hobbies: list[str], friends: list[str] | None = None) -> User:
    return User(username=username, age=30, hobbies=hobbies, friends=friends or [])


class TestRoundScore:
    def test_two_decimal_places(self):
        assert round_score(1.234) == 1.23

    def test_half_up(self):
        assert round_score(2.675) == 2.68
        assert round_score(0.125) == 0.13


class TestCompute:
    def test_no_friends_scores_zero_regardless_of_hobbies(self):
        user = _user("alice", ["coding", "gaming", "music"])
        assert ScoreEngine.compute(user, []) == 0.0

    def test_reference_example(self):
        """A{coding,gaming} with B{coding,music} and C{gaming,sports} scores 3.0."""
        a = _user("alice", ["coding", "gaming"])
        b = _user("bob", ["coding", "music"])
        c = _user("carol", ["gaming", "sports"])
        assert ScoreEngine.compute(a, [b, c]) == 3.0

    def test_friends_without_shared_hobbies(self):
        a = _user("alice", ["coding"])
        b = _user("bob", ["music"])
        assert ScoreEngine.compute(a, [b]) == 1.0

    def test_full_overlap(self):
        a = _user("alice", ["coding", "gaming"])
        b = _user("bob", ["gaming", "coding"])
        assert ScoreEngine.compute(a, [b]) == 2.0


class TestRecompute:
    def test_recompute_persists_score(self, store, repository):
        alice = store.create({"username": "alice", "age": 30, "hobbies": ["coding"]})
        bob = store.create({"username": "bob", "age": 30, "hobbies": ["coding", "gaming"]})

        # Link the records directly, bypassing the relationship manager
        with store.transaction(alice.id, bob.id) as txn:
            a = txn.get(alice.id)
            b = txn.get(bob.id)
            a.friends.append(bob.id)
            b.friends.append(alice.id)
            txn.put(a)
            txn.put(b)

        assert store.get(alice.id).popularity_score == 0.0
        assert store.score_engine.recompute(alice.id) == 1.5
        assert store.get(alice.id).popularity_score == 1.5
        saved = {user.id: user for user in repository.load_all()}
        assert saved[alice.id].popularity_score == 1.5

    def test_recompute_unknown_user(self, store):
        with pytest.raises(UserNotFoundError):
            store.score_engine.recompute("missing")

    def test_dangling_friend_is_ignored(self, store):
        alice = store.create({"username": "alice", "age": 30, "hobbies": ["coding"]})
        with store.transaction(alice.id) as txn:
            a = txn.get(alice.id)
            a.friends.append("ghost")
            txn.put(a)

        assert store.score_engine.recompute(alice.id) == 0.0
