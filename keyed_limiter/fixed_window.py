"""
Fixed Window Counter Rate Limiter

Counts requests per key in windows aligned to multiples of `window_size`.
Cheapest state of the three strategies, but allows up to twice `limit` around
a window boundary.
"""

from typing import Any, Tuple

from .strategy import Decision, Strategy, require_positive_int


class FixedWindowStrategy(Strategy):
    namespace = 'fixed_window'

    def __init__(self, store, *, window_size: int, limit: int, **kwargs):
        self.window_size = require_positive_int('window_size', window_size)
        self.limit = require_positive_int('limit', limit)
        super().__init__(store, **kwargs)

    def _ttl(self) -> int:
        return self.window_size

    def _current_count(self, state: Any, window_start: int) -> int:
        if state is None or state['window_start'] != window_start:
            return 0
        return state['count']

    def _evaluate(self, state: Any, now: int) -> Tuple[dict, Decision]:
        window_start = now // self.window_size * self.window_size
        count = self._current_count(state, window_start)

        if count >= self.limit:
            retry_after = window_start + self.window_size - now
            decision = Decision(allowed=False, remaining=0, retry_after=retry_after)
            return {'window_start': window_start, 'count': count}, decision

        count += 1
        decision = Decision(allowed=True, remaining=self.limit - count, retry_after=0)
        return {'window_start': window_start, 'count': count}, decision

    def _project(self, state: Any, now: int) -> Decision:
        window_start = now // self.window_size * self.window_size
        count = self._current_count(state, window_start)
        if count >= self.limit:
            return Decision(allowed=False, remaining=0,
                            retry_after=window_start + self.window_size - now)
        return Decision(allowed=True, remaining=self.limit - count, retry_after=0)
