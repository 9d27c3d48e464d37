"""
Keyed Limiter

Per-key rate limiting (token bucket, sliding window log, fixed window) over a
shared store, kept race-free with compare-and-swap.
"""

import logging

from .errors import Contention, InvalidConfig, InvalidKey, RateLimiterError, StoreUnavailable
from .limiter import RateLimiter, StrategyName, build_key
from .storage import CasResult, KeyedStore, MemoryStore
from .strategy import Decision, Strategy
from .token_bucket import TokenBucketStrategy
from .sliding_window import SlidingWindowStrategy
from .fixed_window import FixedWindowStrategy
from .redis_store import RedisStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'RateLimiter', 'StrategyName', 'build_key', 'Decision', 'Strategy',
    'TokenBucketStrategy', 'SlidingWindowStrategy', 'FixedWindowStrategy',
    'KeyedStore', 'CasResult', 'MemoryStore', 'RedisStore',
    'RateLimiterError', 'InvalidConfig', 'InvalidKey', 'StoreUnavailable', 'Contention',
]
