"""
Tests for RedisStore running the real compare-and-swap Lua script

Uses an in-process fakeredis server with Lua support, so no Redis server is
needed.
"""

import fakeredis
import pytest

from keyed_limiter.redis_store import RedisStore
from keyed_limiter.sliding_window import SlidingWindowStrategy
from keyed_limiter.token_bucket import TokenBucketStrategy


@pytest.fixture
def client():
    fake = fakeredis.FakeRedis()
    yield fake
    fake.flushall()


@pytest.fixture
def redis_store(client):
    return RedisStore(client)


class TestRedisCompareAndSwap:
    """Every branch of compare_and_swap.lua"""

    def test_absent_key_expected_absent(self, redis_store, client):
        assert redis_store.compare_and_swap("k", None, [1]).applied is True
        assert client.get("k") == b'[1]'

    def test_present_key_expected_absent(self, redis_store):
        redis_store.set("k", [1])
        assert redis_store.compare_and_swap("k", None, [2]).applied is False
        assert redis_store.get("k") == [1]

    def test_matching_value(self, redis_store):
        redis_store.set("k", {'tokens': 2.0, 'last_refill': 10})
        result = redis_store.compare_and_swap(
            "k", {'tokens': 2.0, 'last_refill': 10}, {'tokens': 1.0, 'last_refill': 20})

        assert result.applied is True
        assert redis_store.get("k") == {'tokens': 1.0, 'last_refill': 20}

    def test_mismatching_value_has_no_side_effect(self, redis_store):
        redis_store.set("k", [1, 2])
        assert redis_store.compare_and_swap("k", [1], [9]).applied is False
        assert redis_store.get("k") == [1, 2]

    def test_expected_value_on_absent_key(self, redis_store, client):
        assert redis_store.compare_and_swap("k", [1], [2]).applied is False
        assert client.exists("k") == 0

    def test_ttl_applied(self, redis_store, client):
        redis_store.compare_and_swap("k", None, [1], ttl=60000)
        assert 0 < client.pttl("k") <= 60000

    def test_no_ttl_persists(self, redis_store, client):
        redis_store.compare_and_swap("k", None, [1])
        assert client.pttl("k") == -1

    def test_zero_ttl_persists(self, redis_store, client):
        redis_store.compare_and_swap("k", None, [1], ttl=0)
        redis_store.set("j", [1], ttl=0)
        assert client.pttl("k") == -1
        assert client.pttl("j") == -1

    def test_set_with_ttl(self, redis_store, client):
        redis_store.set("k", [1], ttl=5000)
        assert 0 < client.pttl("k") <= 5000


class TestStrategiesOnRedis:
    """Strategies end to end through the Lua script"""

    def test_token_bucket(self, redis_store, client, clock):
        bucket = TokenBucketStrategy(redis_store, capacity=3, refill_rate=1, clock=clock)

        results = [bucket.check("user:123").allowed for _ in range(5)]
        assert results == [True, True, True, False, False]
        assert client.pttl("token_bucket:user:123") > 0

    def test_sliding_window(self, redis_store, clock):
        window = SlidingWindowStrategy(redis_store, window_size=60000, max_requests=2, clock=clock)

        results = [window.check("user:123").allowed for _ in range(4)]
        assert results == [True, True, False, False]
        assert window.peek("user:123").remaining == 0

    def test_reset(self, redis_store, clock):
        bucket = TokenBucketStrategy(redis_store, capacity=1, refill_rate=1, clock=clock)
        bucket.check("user:123")
        bucket.reset("user:123")
        assert bucket.check("user:123").allowed is True

    @pytest.mark.parametrize("callers, capacity", [(30, 10), (5, 10)])
    def test_concurrent_admission(self, redis_store, clock, run_concurrently, callers, capacity):
        bucket = TokenBucketStrategy(redis_store, capacity=capacity, refill_rate=1,
                                     max_retries=callers, clock=clock)

        results = run_concurrently(bucket, "shared", callers)

        assert sum(1 for r in results if r.allowed) == min(callers, capacity)
