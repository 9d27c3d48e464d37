"""
Rate Limiter Errors

A denied request is not an error: it is a normal Decision. These exceptions
cover bad configuration, bad keys, store failures and CAS contention.
"""


class RateLimiterError(Exception):
    """Base class for all rate limiter errors."""


class InvalidConfig(RateLimiterError, ValueError):
    """Raised at construction time when limiter parameters are invalid."""


class InvalidKey(RateLimiterError, ValueError):
    """Raised when a rate limit key is empty or not a string."""


class StoreUnavailable(RateLimiterError):
    """Raised when the backing store cannot be reached."""


class Contention(RateLimiterError):
    """
    Raised when compare-and-swap kept failing for a key.

    Other callers won every race for the key during the allowed attempts.
    The caller may retry the whole check; it must not treat this as a denial.
    """

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Gave up after {attempts} conflicting compare-and-swap attempts")
