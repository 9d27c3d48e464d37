"""
Shared fixtures: a controllable millisecond clock and an in-memory store on it.
"""

import threading

import pytest

from keyed_limiter.storage import MemoryStore


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    memory_store = MemoryStore(clock=clock)
    yield memory_store
    memory_store.close()


@pytest.fixture
def run_concurrently():
    """Start `callers` threads at once, each doing one check; return the decisions."""

    def run(strategy, key, callers):
        barrier = threading.Barrier(callers)
        results = []
        errors = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            try:
                decision = strategy.check(key)
            except Exception as e:
                with lock:
                    errors.append(e)
                return
            with lock:
                results.append(decision)

        threads = [threading.Thread(target=worker) for _ in range(callers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        return results

    return run
