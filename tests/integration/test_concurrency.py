"""Concurrent writers through the engine keep every invariant."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from friendgraph.errors import AlreadyLinkedError, DuplicateUsernameError


def run_parallel(func, args_list, workers=8):
    barrier = threading.Barrier(min(workers, len(args_list)))

    def task(args):
        barrier.wait(timeout=5)
        try:
            return func(*args), None
        except Exception as e:  # collected per call
            return None, e

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(task, args_list))


class TestConcurrentWrites:
    def test_same_username_created_once(self, engine):
        payload = {"username": "racer", "age": 20, "hobbies": ["running"]}
        results = run_parallel(engine.create_user, [(payload,)] * 8)

        successes = [user for user, error in results if error is None]
        failures = [error for _, error in results if error is not None]
        assert len(successes) == 1
        assert all(isinstance(error, DuplicateUsernameError) for error in failures)
        assert len(engine.list_users()) == 1

    def test_same_pair_linked_once(self, engine, sample_user_data):
        alice = engine.create_user(sample_user_data["alice"])
        bob = engine.create_user(sample_user_data["bob"])
        pairs = [(alice.id, bob.id), (bob.id, alice.id)] * 4

        results = run_parallel(engine.link, pairs)

        errors = [error for _, error in results if error is not None]
        assert len(errors) == 7
        assert all(isinstance(error, AlreadyLinkedError) for error in errors)
        assert engine.get_user(alice.id).friends == [bob.id]
        assert engine.get_user(bob.id).friends == [alice.id]

    def test_hub_links_stay_symmetric_and_scored(self, engine):
        hub = engine.create_user({"username": "hub", "age": 30, "hobbies": ["chess"]})
        spokes = [
            engine.create_user({"username": f"spoke{i:02d}", "age": 30, "hobbies": ["chess"]}) for i in range(16)
        ]

        results = run_parallel(engine.link, [(spoke.id, hub.id) for spoke in spokes])

        assert all(error is None for _, error in results)
        hub_after = engine.get_user(hub.id)
        assert sorted(hub_after.friends) == sorted(spoke.id for spoke in spokes)
        assert hub_after.popularity_score == 16 + 16 * 0.5
        for spoke in spokes:
            assert engine.get_user(spoke.id).friends == [hub.id]
        assert engine.relationships.check_integrity() == []
        assert engine.stats().total_friendships == 16
