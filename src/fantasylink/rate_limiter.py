"""Token bucket rate limiting for fantasylink."""

import math
import time
import threading
import logging
from typing import Optional, Callable, Iterable, List, Tuple

from fantasylink.models import (
    RateLimitConfig,
    FANTASY_API_LIMIT,
    OAUTH_API_LIMIT,
    METADATA_API_LIMIT,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1


class RateLimiter:
    """Thread-safe token bucket with continuous refill.

    Tokens are floats. Each refill adds ``elapsed * refill_rate`` tokens,
    capped at ``capacity``, based on wall-clock time since the last refill.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        name: str = "default",
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """Initialize rate limiter.

        Args:
            capacity: Maximum number of tokens; the bucket starts full.
            refill_rate: Tokens added per second.
            name: Name used in log messages.
            clock: Monotonic clock in seconds.
            sleep: Sleep function used while blocking.
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")

        self.capacity = float(capacity)
        self.refill_rate = float(refill_rate)
        self.name = name
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep

        self._tokens = self.capacity
        self._last_refill = self._clock()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RateLimitConfig, **kwargs) -> "RateLimiter":
        return cls(config.capacity, config.refill_rate, name=config.name, **kwargs)

    def _refill(self) -> None:
        """Add tokens for the time elapsed since the last refill. Caller holds the lock."""
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
            self._last_refill = now

    def try_acquire(self) -> bool:
        """Take one token if available.

        Returns:
            True if a token was consumed.
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def time_until_next_token(self) -> float:
        """Seconds until a token is available, rounded up to the millisecond.

        Returns 0.0 only when a token can be taken now.
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                return 0.0
            wait = (1.0 - self._tokens) / self.refill_rate
        return math.ceil(wait * 1000) / 1000

    def block_until_acquired(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        """Poll until a token is taken. Only use where blocking is acceptable."""
        waited = 0
        while not self.try_acquire():
            if waited == 0:
                logger.debug(f"Waiting for token on {self.name} bucket")
            waited += 1
            self._sleep(poll_interval)

    def reset(self) -> None:
        """Refill the bucket completely."""
        with self._lock:
            self._tokens = self.capacity
            self._last_refill = self._clock()

    @property
    def remaining_tokens(self) -> float:
        """Tokens available after a refill pass."""
        with self._lock:
            self._refill()
            return self._tokens

    def __repr__(self) -> str:
        return (
            f"RateLimiter(name={self.name!r}, capacity={self.capacity}, "
            f"refill_rate={self.refill_rate})"
        )


class RateLimiterRegistry:
    """Selects a bucket per endpoint class by URL path prefix.

    Prefixes are tried in order and the first match wins; unmatched paths use
    the default bucket.
    """

    def __init__(
        self,
        limits: Optional[Iterable[RateLimitConfig]] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """Initialize registry.

        Args:
            limits: Bucket configurations. Exactly one entry may have no prefix;
                it becomes the default. Defaults to Yahoo's documented limits.
            clock: Clock shared by every bucket.
            sleep: Sleep function shared by every bucket.
        """
        if limits is None:
            limits = [FANTASY_API_LIMIT, OAUTH_API_LIMIT, METADATA_API_LIMIT]

        self._routes: List[Tuple[str, RateLimiter]] = []
        self._default: Optional[RateLimiter] = None

        for config in limits:
            limiter = RateLimiter.from_config(config, clock=clock, sleep=sleep)
            if config.prefix is None:
                if self._default is not None:
                    raise ValueError("Only one rate limit may omit a prefix")
                self._default = limiter
            else:
                self._routes.append((config.prefix, limiter))

        if self._default is None:
            self._default = RateLimiter.from_config(
                METADATA_API_LIMIT, clock=clock, sleep=sleep
            )

    @property
    def default(self) -> RateLimiter:
        return self._default

    @property
    def limiters(self) -> List[RateLimiter]:
        return [limiter for _, limiter in self._routes] + [self._default]

    def for_endpoint(self, path: str) -> RateLimiter:
        """Return the bucket guarding ``path``."""
        for prefix, limiter in self._routes:
            if path.startswith(prefix):
                return limiter
        return self._default

    def get(self, name: str) -> Optional[RateLimiter]:
        for limiter in self.limiters:
            if limiter.name == name:
                return limiter
        return None

    def reset_all(self) -> None:
        for limiter in self.limiters:
            limiter.reset()
