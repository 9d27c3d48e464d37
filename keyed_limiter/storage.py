"""
Keyed Store Contract

Strategies keep all of their state in a KeyedStore. The only write they use
while deciding is compare_and_swap, so concurrent checks on one key never both
act on the same stale state.
"""

import hashlib
import json
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import StoreUnavailable


def encode_value(value: Any) -> str:
    """Deterministic JSON encoding: equal values always give equal strings."""
    return json.dumps(value, sort_keys=True, separators=(',', ':'))


def hash_key(key: str) -> str:
    """Short digest of a key, safe to put in logs."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def decode_value(raw) -> Any:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')
    return json.loads(raw)


@dataclass(frozen=True)
class CasResult:
    applied: bool


class KeyedStore(ABC):
    """
    Atomic key-value store with optional TTL (milliseconds).

    A ttl of None, zero or less means the entry never expires.

    get() returns None for an absent key. Implementations raise
    StoreUnavailable when the backend cannot be reached.
    """

    @abstractmethod
    def get(self, key: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is not an error."""
        raise NotImplementedError

    @abstractmethod
    def compare_and_swap(self, key: str, expected: Any, new: Any,
                         ttl: Optional[int] = None) -> CasResult:
        """
        Write new only if the stored value still equals expected.

        Args:
            key: Store key
            expected: Value last read, or None meaning "key must be absent"
            new: Value to store
            ttl: Optional time-to-live in milliseconds

        Returns:
            CasResult(applied=False) with nothing written when the value moved on
        """
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def now_ms() -> int:
    return int(time.time() * 1000)


class MemoryStore(KeyedStore):
    """
    In-process store guarded by a lock.

    Shares state between threads only; separate processes each get their own
    counters. Values are kept encoded so equality matches RedisStore.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, Tuple[str, Optional[int]]] = {}
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise StoreUnavailable("MemoryStore is closed")

    def _read(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return raw

    def _write(self, key: str, value: Any, ttl: Optional[int]):
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        self._entries[key] = (encode_value(value), expires_at)

    def get(self, key: str) -> Any:
        with self._lock:
            self._check_open()
            return decode_value(self._read(key))

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        with self._lock:
            self._check_open()
            self._write(key, value, ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._check_open()
            self._entries.pop(key, None)

    def compare_and_swap(self, key: str, expected: Any, new: Any,
                         ttl: Optional[int] = None) -> CasResult:
        with self._lock:
            self._check_open()
            current = self._read(key)
            if expected is None:
                matches = current is None
            else:
                matches = current == encode_value(expected)
            if not matches:
                return CasResult(applied=False)
            self._write(key, new, ttl)
            return CasResult(applied=True)

    def __len__(self):
        with self._lock:
            now = self._clock()
            return sum(1 for _, exp in self._entries.values() if exp is None or exp > now)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._entries.clear()
