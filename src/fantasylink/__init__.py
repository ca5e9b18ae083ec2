"""
fantasylink - Yahoo Fantasy Sports API client.

A thread-safe request pipeline featuring:
- OAuth 1.0a (HMAC-SHA1) request signing
- Token bucket rate limiting per endpoint class
- TTL response cache for GET requests
- Typed error taxonomy with retryable classification
"""

from fantasylink.client import FantasyClient
from fantasylink.auth import TokenFlow, RequestToken, AccessToken
from fantasylink.oauth import Credentials, OAuthSigner, SignedRequest, percent_encode
from fantasylink.rate_limiter import RateLimiter, RateLimiterRegistry
from fantasylink.cache import ResponseCache, CacheJanitor, CacheStats, generate_cache_key
from fantasylink.models import (
    ApiResponse,
    CacheConfig,
    ClientConfig,
    ClientStats,
    RateLimitConfig,
)
from fantasylink.resources import FantasyResources
from fantasylink.retry import RetryConfig, create_retry_decorator, call_with_retry
from fantasylink.exceptions import (
    ErrorCode,
    ErrorContext,
    FantasyLinkError,
    CredentialsError,
    RateLimitExceeded,
    RequestError,
    ResponseError,
    classify_status,
    is_retryable,
)
from fantasylink.logging import LogConfig, RequestLogger

__version__ = "1.0.0"
__author__ = "fantasylink Contributors"

__all__ = [
    # Client
    "FantasyClient",
    "FantasyResources",
    # Auth
    "Credentials",
    "OAuthSigner",
    "SignedRequest",
    "percent_encode",
    "TokenFlow",
    "RequestToken",
    "AccessToken",
    # Rate limiting
    "RateLimiter",
    "RateLimiterRegistry",
    # Cache
    "ResponseCache",
    "CacheJanitor",
    "CacheStats",
    "generate_cache_key",
    # Models
    "ApiResponse",
    "CacheConfig",
    "ClientConfig",
    "ClientStats",
    "RateLimitConfig",
    # Retry
    "RetryConfig",
    "create_retry_decorator",
    "call_with_retry",
    # Errors
    "ErrorCode",
    "ErrorContext",
    "FantasyLinkError",
    "CredentialsError",
    "RateLimitExceeded",
    "RequestError",
    "ResponseError",
    "classify_status",
    "is_retryable",
    # Logging
    "LogConfig",
    "RequestLogger",
]
