import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import InvalidConfig

load_dotenv()

"""
Rate Limiter Configuration

Redis connection settings and limiter parameters, read from the environment
(or a .env file). Values are parsed when a store or limiter is built, so a
malformed variable never breaks the import.
"""


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfig(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfig(f"{name} must be a number, got {raw!r}")


# Defaults, used when the matching variable is unset or empty
DEFAULT_REDIS_HOST = 'localhost'
DEFAULT_REDIS_PORT = 6379
DEFAULT_REDIS_DB = 0

# Strategy: 'token-bucket' | 'sliding-window' | 'fixed-window'
DEFAULT_STRATEGY = 'token-bucket'
DEFAULT_CAPACITY = 100
DEFAULT_REFILL_RATE = 10   # tokens per second
DEFAULT_WINDOW_MS = 60000
DEFAULT_MAX_REQUESTS = 100

# Compare-and-swap attempts per check before giving up with Contention
DEFAULT_MAX_RETRIES = 5


@dataclass(frozen=True)
class RedisSettings:
    host: str = DEFAULT_REDIS_HOST
    port: int = DEFAULT_REDIS_PORT
    db: int = DEFAULT_REDIS_DB
    password: Optional[str] = None
    ssl: bool = False
    socket_timeout: Optional[float] = None


def load_redis_settings() -> RedisSettings:
    """
    Read REDIS_* settings from the current environment.

    Raises:
        InvalidConfig: If a numeric setting is malformed
    """
    return RedisSettings(
        host=os.getenv('REDIS_HOST') or DEFAULT_REDIS_HOST,
        port=_env_int('REDIS_PORT', DEFAULT_REDIS_PORT),
        db=_env_int('REDIS_DB', DEFAULT_REDIS_DB),
        password=os.getenv('REDIS_PASSWORD'),
        ssl=_env_bool('REDIS_SSL', False),
        socket_timeout=_env_float('REDIS_SOCKET_TIMEOUT'),
    )


@dataclass(frozen=True)
class LimiterConfig:
    """Everything needed to build a RateLimiter, minus the store."""

    strategy: str = DEFAULT_STRATEGY
    capacity: int = DEFAULT_CAPACITY
    refill_rate: int = DEFAULT_REFILL_RATE
    window_size: int = DEFAULT_WINDOW_MS
    max_requests: int = DEFAULT_MAX_REQUESTS
    max_retries: int = DEFAULT_MAX_RETRIES
    key_prefix: str = ''

    def strategy_options(self) -> dict:
        """Keyword arguments for the configured strategy only."""
        common = {'max_retries': self.max_retries, 'key_prefix': self.key_prefix}
        if self.strategy == 'token-bucket':
            return dict(common, capacity=self.capacity, refill_rate=self.refill_rate)
        if self.strategy == 'sliding-window':
            return dict(common, window_size=self.window_size, max_requests=self.max_requests)
        if self.strategy == 'fixed-window':
            return dict(common, window_size=self.window_size, limit=self.max_requests)
        raise InvalidConfig(f"Unknown rate limit strategy: {self.strategy!r}")


def load_config() -> LimiterConfig:
    """
    Read RATE_LIMIT_* settings from the current environment.

    Raises:
        InvalidConfig: If a numeric setting is malformed
    """
    return LimiterConfig(
        strategy=os.getenv('RATE_LIMIT_STRATEGY') or DEFAULT_STRATEGY,
        capacity=_env_int('RATE_LIMIT_CAPACITY', DEFAULT_CAPACITY),
        refill_rate=_env_int('RATE_LIMIT_REFILL_RATE', DEFAULT_REFILL_RATE),
        window_size=_env_int('RATE_LIMIT_WINDOW_MS', DEFAULT_WINDOW_MS),
        max_requests=_env_int('RATE_LIMIT_MAX_REQUESTS', DEFAULT_MAX_REQUESTS),
        max_retries=_env_int('RATE_LIMIT_MAX_RETRIES', DEFAULT_MAX_RETRIES),
        key_prefix=os.getenv('RATE_LIMIT_KEY_PREFIX', ''),
    )
