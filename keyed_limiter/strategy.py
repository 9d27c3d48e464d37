"""
Strategy Base

Every strategy follows the same read-compute-swap cycle against the store:
read the current state, decide, then compare-and-swap the new state against
what was read. A lost race restarts the cycle on fresh state.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from . import config
from .errors import Contention, InvalidConfig, InvalidKey
from .storage import KeyedStore, hash_key, now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """
    Outcome of a single admission check.

    Attributes:
        allowed: Whether the action may proceed
        remaining: Actions still available right now (never negative)
        retry_after: Milliseconds to wait before retrying, 0 when allowed
    """

    allowed: bool
    remaining: int
    retry_after: int = 0


def require_positive_int(name: str, value) -> int:
    """Raise InvalidConfig unless value is an int greater than zero."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfig(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidConfig(f"{name} must be greater than 0, got {value!r}")
    return value


class Strategy(ABC):
    """Admission algorithm over a KeyedStore: check, peek and reset by key."""

    namespace = ''

    def __init__(
        self,
        store: KeyedStore,
        *,
        max_retries: int = config.DEFAULT_MAX_RETRIES,
        key_prefix: str = '',
        clock: Callable[[], int] = now_ms,
    ):
        """
        Args:
            store: Shared store holding per-key state
            max_retries: Extra compare-and-swap attempts after the first one
            key_prefix: Prepended to every store key
            clock: Returns the current time in milliseconds
        """
        if store is None:
            raise InvalidConfig("A valid store implementation is required.")
        if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0:
            raise InvalidConfig(f"max_retries must be a non-negative integer, got {max_retries!r}")
        self.store = store
        self.max_retries = max_retries
        self.key_prefix = key_prefix or ''
        self._clock = clock

    def store_key(self, key: str) -> str:
        if not isinstance(key, str) or not key.strip():
            raise InvalidKey(f"Rate limit key must be a non-empty string, got {key!r}")
        return f"{self.key_prefix}{self.namespace}:{key}"

    @abstractmethod
    def _evaluate(self, state: Any, now: int) -> Tuple[Any, Decision]:
        """
        Decide on one request given the stored state.

        Returns:
            Tuple of (state to persist, decision)
        """
        raise NotImplementedError

    @abstractmethod
    def _project(self, state: Any, now: int) -> Decision:
        """Decision a check would see right now, without consuming anything."""
        raise NotImplementedError

    def _ttl(self) -> Optional[int]:
        return None

    def check(self, key: str) -> Decision:
        """
        Record an attempt for key and decide whether it is allowed.

        Raises:
            InvalidKey: If key is empty
            StoreUnavailable: If the store cannot be reached
            Contention: If every compare-and-swap attempt lost a race
        """
        store_key = self.store_key(key)
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            state = self.store.get(store_key)
            new_state, decision = self._evaluate(state, self._clock())
            if self.store.compare_and_swap(store_key, state, new_state, ttl=self._ttl()).applied:
                return decision
            logger.debug(
                "CAS conflict on %s key %s (attempt %d/%d)",
                self.namespace, hash_key(key), attempt, attempts,
            )

        logger.warning(
            "Giving up on %s key %s after %d conflicting attempts",
            self.namespace, hash_key(key), attempts,
        )
        raise Contention(key, attempts)

    def peek(self, key: str) -> Decision:
        """Current decision for key. Writes nothing and consumes nothing."""
        state = self.store.get(self.store_key(key))
        return self._project(state, self._clock())

    def reset(self, key: str) -> None:
        """Forget all state for key; the next check sees a fresh key."""
        self.store.delete(self.store_key(key))
