"""
Core Rate Limiter Implementation
"""

import logging
from enum import Enum
from typing import Optional, Union

from .config import LimiterConfig, load_config
from .errors import InvalidConfig
from .fixed_window import FixedWindowStrategy
from .sliding_window import SlidingWindowStrategy
from .storage import KeyedStore
from .strategy import Decision, Strategy
from .token_bucket import TokenBucketStrategy

logger = logging.getLogger(__name__)


class StrategyName(str, Enum):
    TOKEN_BUCKET = 'token-bucket'
    SLIDING_WINDOW = 'sliding-window'
    FIXED_WINDOW = 'fixed-window'


_STRATEGIES = {
    StrategyName.TOKEN_BUCKET: TokenBucketStrategy,
    StrategyName.SLIDING_WINDOW: SlidingWindowStrategy,
    StrategyName.FIXED_WINDOW: FixedWindowStrategy,
}


class RateLimiter:
    """
    Uniform check/peek/reset surface over one configured strategy.

    The strategy is chosen once, at construction, and never changes.

    Example:
        with RedisStore.from_config() as store:
            limiter = RateLimiter('token-bucket', store, capacity=10, refill_rate=2)
            decision = limiter.check(build_key(user_id, ip, '/login'))
    """

    def __init__(self, strategy: Union[StrategyName, str], store: KeyedStore, **options):
        """
        Args:
            strategy: 'token-bucket', 'sliding-window' or 'fixed-window'
            store: Shared KeyedStore
            **options: Parameters of the chosen strategy

        Raises:
            InvalidConfig: On an unknown strategy or invalid parameters
        """
        try:
            name = StrategyName(strategy)
        except ValueError:
            raise InvalidConfig(f"Unknown rate limit strategy: {strategy!r}")
        try:
            self.strategy: Strategy = _STRATEGIES[name](store, **options)
        except TypeError as e:
            raise InvalidConfig(f"Bad options for {name.value}: {e}") from e
        self.name = name
        logger.debug("Rate limiter using %s strategy", name.value)

    @classmethod
    def from_config(cls, store: KeyedStore, config: Optional[LimiterConfig] = None) -> 'RateLimiter':
        """Build a limiter from a LimiterConfig, or from the environment if omitted."""
        config = config or load_config()
        return cls(config.strategy, store, **config.strategy_options())

    def check(self, key: str) -> Decision:
        return self.strategy.check(key)

    def peek(self, key: str) -> Decision:
        return self.strategy.peek(key)

    def reset(self, key: str) -> None:
        self.strategy.reset(key)


def build_key(user_id: Optional[str], ip: str, endpoint: str) -> str:
    """
    Build a rate limit key for a caller and endpoint.

    Args:
        user_id: User identifier if available, None otherwise
        ip: IP address (used as fallback if user_id is None)
        endpoint: The endpoint being accessed (e.g., '/login')

    Returns:
        Key such as "rate:user:42:/login" or "rate:ip:1.2.3.4:/login"
    """
    if user_id:
        identifier = f"user:{user_id}"
    else:
        identifier = f"ip:{ip}"

    return f"rate:{identifier}:{endpoint}"
