"""
End-to-end tests against a live Redis server

Uses the REDIS_* settings from the environment / .env file. Skipped when no
server is reachable.
"""

import uuid

import pytest
import redis

from keyed_limiter.limiter import RateLimiter, build_key
from keyed_limiter.redis_store import RedisStore


@pytest.fixture(scope='module')
def redis_store():
    store = RedisStore.from_config()
    try:
        store.client.ping()
    except redis.RedisError as e:
        store.close()
        pytest.skip(f"Redis not available: {e}")
    yield store
    store.close()


@pytest.fixture
def user_id():
    return f"test_user_{uuid.uuid4().hex[:8]}"


class TestRedisTokenBucket:
    """Token bucket backed by Redis"""

    def test_login_burst_then_blocked(self, redis_store, user_id):
        limiter = RateLimiter('token-bucket', redis_store, capacity=5, refill_rate=1)
        key = build_key(user_id, "192.168.3.1", "/login")

        try:
            for i in range(5):
                result = limiter.check(key)
                assert result.allowed is True, f"Request {i+1} should be allowed (burst allowed)"

            result = limiter.check(key)
            assert result.allowed is False, "6th request should be blocked (bucket empty)"
            assert result.retry_after > 0
        finally:
            limiter.reset(key)

    def test_reset(self, redis_store, user_id):
        limiter = RateLimiter('token-bucket', redis_store, capacity=2, refill_rate=1)
        key = build_key(user_id, "192.168.3.2", "/login")

        limiter.check(key)
        limiter.check(key)
        limiter.reset(key)
        assert limiter.check(key).remaining == 1
        limiter.reset(key)


class TestRedisSlidingWindow:
    """Sliding window backed by Redis"""

    def test_search_limit(self, redis_store, user_id):
        limiter = RateLimiter('sliding-window', redis_store, window_size=60000, max_requests=20)
        key = build_key(user_id, "192.168.2.2", "/search")

        try:
            for i in range(20):
                result = limiter.check(key)
                assert result.allowed is True, f"Request {i+1} should be allowed"

            result = limiter.check(key)
            assert result.allowed is False, "21st request should be blocked"
            assert result.remaining == 0
            assert limiter.peek(key) == limiter.peek(key)
        finally:
            limiter.reset(key)

    def test_separate_users(self, redis_store, user_id):
        limiter = RateLimiter('sliding-window', redis_store, window_size=60000, max_requests=1)
        ip = "192.168.2.3"
        first = build_key(user_id, ip, "/login")
        second = build_key(user_id + "_b", ip, "/login")

        try:
            assert limiter.check(first).allowed is True
            assert limiter.check(first).allowed is False
            assert limiter.check(second).allowed is True
        finally:
            limiter.reset(first)
            limiter.reset(second)
