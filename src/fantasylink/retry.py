"""Caller-level retry helpers for fantasylink.

The client never retries on its own. These helpers let callers opt in,
retrying only errors whose code is marked retryable.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Callable, Any, TypeVar

from tenacity import (
    Retrying,
    RetryCallState,
    retry,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
    retry_if_exception,
    before_sleep_log,
)
import logging

from fantasylink.exceptions import FantasyLinkError, RateLimitExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for caller-level retries."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    respect_retry_after: bool = True
    max_retry_after: float = 300.0


def is_retryable_error(exc: BaseException) -> bool:
    """True for fantasylink errors whose code is retryable."""
    return isinstance(exc, FantasyLinkError) and exc.is_retryable


def parse_retry_after(header_value: Optional[str]) -> Optional[float]:
    """Parse Retry-After header value.

    Args:
        header_value: The header value (seconds or HTTP date).

    Returns:
        Delay in seconds, or None if not parseable.
    """
    if header_value is None:
        return None

    try:
        return max(0.0, float(header_value))
    except ValueError:
        pass

    try:
        retry_date = parsedate_to_datetime(header_value)
        now = datetime.now(timezone.utc)
        return max(0.0, (retry_date - now).total_seconds())
    except (ValueError, TypeError):
        pass

    return None


class _wait_for_error:
    """tenacity wait strategy honouring ``RateLimitExceeded.retry_after``."""

    def __init__(self, config: RetryConfig) -> None:
        self.config = config
        if config.jitter:
            self.fallback = wait_random_exponential(
                multiplier=config.initial_delay, max=config.max_delay
            )
        else:
            self.fallback = wait_exponential(
                multiplier=config.initial_delay,
                exp_base=config.multiplier,
                max=config.max_delay,
            )

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if (
            self.config.respect_retry_after
            and isinstance(exc, RateLimitExceeded)
            and exc.retry_after is not None
        ):
            return min(exc.retry_after, self.config.max_retry_after)
        return self.fallback(retry_state)


def _retry_kwargs(config: RetryConfig, sleep: Optional[Callable[[float], None]]) -> dict:
    kwargs = dict(
        stop=stop_after_attempt(config.max_attempts),
        wait=_wait_for_error(config),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    if sleep is not None:
        kwargs["sleep"] = sleep
    return kwargs


def create_retry_decorator(
    config: Optional[RetryConfig] = None,
    sleep: Optional[Callable[[float], None]] = None,
):
    """Create a retry decorator with the given configuration.

    Only exceptions with a retryable error code are retried; everything else,
    and the last failure once attempts run out, propagates unchanged.

    Args:
        config: Retry configuration.
        sleep: Sleep function, mainly for tests.

    Returns:
        A decorator function.
    """
    config = config or RetryConfig()
    return retry(**_retry_kwargs(config, sleep))


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    config: Optional[RetryConfig] = None,
    sleep: Optional[Callable[[float], None]] = None,
    **kwargs: Any,
) -> T:
    """Call ``func`` retrying retryable fantasylink errors."""
    retrying = Retrying(**_retry_kwargs(config or RetryConfig(), sleep or time.sleep))
    return retrying(func, *args, **kwargs)
