"""Tests for per-entity locking."""

from __future__ import annotations

import threading

import pytest

from friendgraph.store.locks import EntityLockRegistry


class TestEntityLockRegistry:
    def test_hold_yields_sorted_unique_ids(self):
        registry = EntityLockRegistry()
        with registry.hold(["b", "a", "b"]) as locked:
            assert locked == ["a", "b"]
            assert len(registry) == 2
        assert len(registry) == 0

    def test_locks_are_released(self):
        registry = EntityLockRegistry()
        with registry.hold(["a"]):
            pass
        with registry.hold(["a"]) as locked:
            assert locked == ["a"]

    def test_disjoint_ids_do_not_block(self):
        registry = EntityLockRegistry()
        entered = threading.Event()

        def worker():
            with registry.hold(["b"]):
                entered.set()

        with registry.hold(["a"]):
            thread = threading.Thread(target=worker)
            thread.start()
            assert entered.wait(timeout=2)
        thread.join()

    def test_same_id_blocks(self):
        registry = EntityLockRegistry()
        entered = threading.Event()

        def worker():
            with registry.hold(["a"]):
                entered.set()

        with registry.hold(["a"]):
            thread = threading.Thread(target=worker)
            thread.start()
            assert not entered.wait(timeout=0.2)
        thread.join(timeout=2)
        assert entered.is_set()

    def test_opposite_order_does_not_deadlock(self):
        registry = EntityLockRegistry()
        done = []

        def worker(ids):
            for _ in range(200):
                with registry.hold(ids):
                    pass
            done.append(ids)

        threads = [threading.Thread(target=worker, args=(ids,)) for ids in (["x", "y"], ["y", "x"])]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)
        assert len(done) == 2

    def test_released_ids_leave_no_entries(self):
        registry = EntityLockRegistry()
        for i in range(100):
            with registry.hold([f"ghost-{i}", f"phantom-{i}"]):
                pass
        assert len(registry) == 0

    def test_entry_released_after_error(self):
        registry = EntityLockRegistry()
        with pytest.raises(ValueError):
            with registry.hold(["a", "b"]):
                raise ValueError("abort")
        assert len(registry) == 0

    def test_waiting_writer_reuses_the_lock(self):
        registry = EntityLockRegistry()
        waiting = threading.Event()
        acquired = threading.Event()

        def worker():
            waiting.set()
            with registry.hold(["a"]):
                acquired.set()

        with registry.hold(["a"]):
            thread = threading.Thread(target=worker)
            thread.start()
            assert waiting.wait(timeout=2)
        thread.join(timeout=2)

        assert acquired.is_set()
        assert len(registry) == 0
