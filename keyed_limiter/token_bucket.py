"""
Token Bucket Rate Limiter

Each key owns a reservoir of up to `capacity` tokens that refills continuously
at `refill_rate` tokens per second. An allowed check consumes one token.
"""

import math
from typing import Any, Tuple

from .strategy import Decision, Strategy, require_positive_int


class TokenBucketStrategy(Strategy):
    namespace = 'token_bucket'

    def __init__(self, store, *, capacity: int, refill_rate: int, **kwargs):
        """
        Args:
            store: Shared KeyedStore
            capacity: Maximum tokens held (burst size)
            refill_rate: Tokens added per second

        Raises:
            InvalidConfig: If capacity or refill_rate is not a positive integer
        """
        self.capacity = require_positive_int('capacity', capacity)
        self.refill_rate = require_positive_int('refill_rate', refill_rate)
        super().__init__(store, **kwargs)

    def _ttl(self) -> int:
        # An idle bucket is full again after this long, so eviction loses nothing
        return math.ceil(self.capacity * 1000 / self.refill_rate)

    def _refill(self, state: Any, now: int) -> Tuple[float, int]:
        """Tokens available at now, and the timestamp they were computed for."""
        if state is None:
            return float(self.capacity), now
        last_refill = state['last_refill']
        # A clock behind last_refill (skew between hosts) refills nothing
        if now <= last_refill:
            return min(float(self.capacity), state['tokens']), last_refill
        refilled = state['tokens'] + (now - last_refill) * self.refill_rate / 1000
        return min(float(self.capacity), refilled), now

    def _retry_after(self, tokens: float) -> int:
        """Milliseconds until one whole token is available, rounded up."""
        if tokens >= 1:
            return 0
        return max(1, math.ceil((1 - tokens) * 1000 / self.refill_rate))

    def _evaluate(self, state: Any, now: int) -> Tuple[dict, Decision]:
        tokens, refilled_at = self._refill(state, now)

        if tokens < 1:
            decision = Decision(allowed=False, remaining=0, retry_after=self._retry_after(tokens))
            return {'tokens': tokens, 'last_refill': refilled_at}, decision

        tokens -= 1
        decision = Decision(allowed=True, remaining=math.floor(tokens), retry_after=0)
        return {'tokens': tokens, 'last_refill': refilled_at}, decision

    def _project(self, state: Any, now: int) -> Decision:
        tokens, _ = self._refill(state, now)
        return Decision(
            allowed=tokens >= 1,
            remaining=math.floor(tokens),
            retry_after=self._retry_after(tokens),
        )
