"""
Redis-backed KeyedStore
"""

import logging
from pathlib import Path
from typing import Any, Optional

import redis

from . import config
from .storage import CasResult, KeyedStore, decode_value, encode_value, hash_key
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

_lua_script_path = Path(__file__).parent / 'compare_and_swap.lua'
with open(_lua_script_path, 'r') as f:
    compare_and_swap_lua = f.read()


class RedisStore(KeyedStore):
    """
    KeyedStore on a shared Redis server, safe across processes and machines.

    compare_and_swap runs as a Lua script so the comparison and the write
    happen in one atomic step on the server.
    """

    def __init__(self, client: redis.Redis, owns_client: bool = False):
        """
        Args:
            client: A connected redis.Redis instance
            owns_client: Close the client when this store is closed
        """
        if client is None or not callable(getattr(client, 'set', None)):
            raise TypeError("A valid Redis client instance must be provided.")
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_config(cls, settings: Optional[config.RedisSettings] = None) -> 'RedisStore':
        """
        Build a store with its own client from REDIS_* settings.

        Raises:
            InvalidConfig: If a REDIS_* variable is malformed
        """
        settings = settings or config.load_redis_settings()
        client = redis.Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            password=settings.password,
            ssl=settings.ssl,
            socket_timeout=settings.socket_timeout,
            decode_responses=False,
        )
        return cls(client, owns_client=True)

    @property
    def client(self) -> redis.Redis:
        return self._client

    def _call(self, operation: str, key: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except redis.RedisError as e:
            logger.error("Redis %s failed for key %s: %s", operation, hash_key(key), e)
            raise StoreUnavailable(f"Redis {operation} failed: {e}") from e

    def get(self, key: str) -> Any:
        raw = self._call('GET', key, self._client.get, key)
        return decode_value(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if ttl and ttl > 0:
            self._call('SET', key, self._client.set, key, encode_value(value), px=ttl)
        else:
            self._call('SET', key, self._client.set, key, encode_value(value))

    def delete(self, key: str) -> None:
        self._call('DEL', key, self._client.delete, key)

    def compare_and_swap(self, key: str, expected: Any, new: Any,
                         ttl: Optional[int] = None) -> CasResult:
        expect_absent = '1' if expected is None else '0'
        expected_raw = '' if expected is None else encode_value(expected)
        applied = self._call(
            'EVAL', key, self._client.eval,
            compare_and_swap_lua, 1, key,
            expect_absent, expected_raw, encode_value(new), max(0, int(ttl or 0)),
        )
        if isinstance(applied, bytes):
            applied = int(applied.decode('utf-8'))
        else:
            applied = int(applied) if applied is not None else 0
        return CasResult(applied=applied == 1)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
