"""
Sliding Window Rate Limiter

Keeps the exact timestamps of allowed requests made within the last
`window_size` milliseconds. No boundary bursts as with fixed windows; the log
never holds more than `max_requests` entries.
"""

import bisect
from typing import Any, List, Tuple

from .strategy import Decision, Strategy, require_positive_int


class SlidingWindowStrategy(Strategy):
    namespace = 'sliding_window'

    def __init__(self, store, *, window_size: int, max_requests: int, **kwargs):
        """
        Args:
            store: Shared KeyedStore
            window_size: Window length in milliseconds
            max_requests: Requests allowed within any window

        Raises:
            InvalidConfig: If window_size or max_requests is not a positive integer
        """
        self.window_size = require_positive_int('window_size', window_size)
        self.max_requests = require_positive_int('max_requests', max_requests)
        super().__init__(store, **kwargs)

    def _ttl(self) -> int:
        return self.window_size

    def _prune(self, state: Any, now: int) -> List[int]:
        """Timestamps still inside the window ending at now, oldest first."""
        if not state:
            return []
        return [ts for ts in state if now - ts < self.window_size]

    def _retry_after(self, timestamps: List[int], now: int) -> int:
        if len(timestamps) < self.max_requests:
            return 0
        # Wait for enough of the oldest entries to age out
        freeing = timestamps[len(timestamps) - self.max_requests]
        return self.window_size - (now - freeing)

    def _evaluate(self, state: Any, now: int) -> Tuple[List[int], Decision]:
        timestamps = self._prune(state, now)

        if len(timestamps) >= self.max_requests:
            decision = Decision(
                allowed=False,
                remaining=0,
                retry_after=self._retry_after(timestamps, now),
            )
            return timestamps, decision

        bisect.insort(timestamps, now)
        decision = Decision(
            allowed=True,
            remaining=self.max_requests - len(timestamps),
            retry_after=0,
        )
        return timestamps, decision

    def _project(self, state: Any, now: int) -> Decision:
        timestamps = self._prune(state, now)
        return Decision(
            allowed=len(timestamps) < self.max_requests,
            remaining=max(0, self.max_requests - len(timestamps)),
            retry_after=self._retry_after(timestamps, now),
        )
