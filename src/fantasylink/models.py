"""Pydantic models for fantasylink configuration and responses."""

import json
from typing import Optional, Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from fantasylink.exceptions import ParseError

BASE_URL = "https://fantasysports.yahooapis.com/fantasy/v2"
DEFAULT_USER_AGENT = "fantasylink/1.0"


class HTTPMethod(str, Enum):
    """HTTP methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ClientConfig(BaseModel):
    """Configuration for the fantasylink client."""

    base_url: str = Field(default=BASE_URL, description="Base URL for API requests")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    connect_timeout: float = Field(default=5.0, gt=0, description="Connection timeout")
    max_rate_limit_wait: float = Field(
        default=5.0, ge=0, description="Longest local wait for a rate-limit token"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url doesn't end with slash."""
        return v.rstrip("/")


class RateLimitConfig(BaseModel):
    """Token bucket settings for one endpoint class."""

    model_config = ConfigDict(frozen=True)

    name: str
    prefix: Optional[str] = Field(
        default=None, description="URL path prefix; None marks the default bucket"
    )
    capacity: float = Field(gt=0)
    refill_rate: float = Field(gt=0, description="Tokens added per second")

    @classmethod
    def per_window(
        cls,
        name: str,
        requests: int,
        window_seconds: float,
        prefix: Optional[str] = None,
    ) -> "RateLimitConfig":
        """Allow ``requests`` calls per ``window_seconds``, starting full."""
        return cls(
            name=name,
            prefix=prefix,
            capacity=float(requests),
            refill_rate=requests / window_seconds,
        )

    @classmethod
    def per_hour(
        cls, name: str, requests: int, prefix: Optional[str] = None
    ) -> "RateLimitConfig":
        return cls.per_window(name, requests, 3600.0, prefix=prefix)


# Yahoo's documented limits
FANTASY_API_LIMIT = RateLimitConfig.per_hour("fantasy", 100, prefix="/fantasy/")
OAUTH_API_LIMIT = RateLimitConfig.per_window("oauth", 10, 300.0, prefix="/oauth/")
METADATA_API_LIMIT = RateLimitConfig.per_hour("metadata", 50)


class CacheConfig(BaseModel):
    """Response cache sizing."""

    max_size: int = Field(default=1000, ge=1)
    default_ttl: float = Field(default=300.0, gt=0, description="Seconds")

    @classmethod
    def api_responses(cls) -> "CacheConfig":
        return cls(max_size=1000, default_ttl=300.0)

    @classmethod
    def user_data(cls) -> "CacheConfig":
        return cls(max_size=500, default_ttl=900.0)

    @classmethod
    def static_data(cls) -> "CacheConfig":
        return cls(max_size=100, default_ttl=3600.0)


class ApiResponse(BaseModel):
    """Response returned to callers, either from the network or the cache."""

    status_code: int
    body: bytes = b""
    headers: Dict[str, str] = Field(default_factory=dict)
    from_cache: bool = False
    elapsed_seconds: float = 0.0

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ParseError: If the body is not valid JSON.
        """
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(f"Response body is not valid JSON: {e}") from e


class ClientStats(BaseModel):
    """Statistics for the client."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    rate_limit_waits: int = 0
    rate_limit_rejections: int = 0
    average_response_time: float = 0.0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total

    def record_response_time(self, duration: float) -> None:
        """Fold a network round trip into the running average."""
        completed = self.successful_requests + self.failed_requests
        if completed <= 1:
            self.average_response_time = duration
            return
        self.average_response_time += (duration - self.average_response_time) / completed
