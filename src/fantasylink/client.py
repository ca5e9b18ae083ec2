"""Synchronous fantasylink API client."""

import json as jsonlib
import threading
import time
import uuid
import logging
from typing import Optional, Dict, Any, Mapping, Union, Iterable
from urllib.parse import urljoin, urlsplit

import httpx

from fantasylink.models import (
    BASE_URL,
    DEFAULT_USER_AGENT,
    ApiResponse,
    CacheConfig,
    ClientConfig,
    ClientStats,
    HTTPMethod,
    RateLimitConfig,
)
from fantasylink.oauth import Credentials, OAuthSigner
from fantasylink.rate_limiter import RateLimiterRegistry
from fantasylink.cache import CacheStats, ResponseCache, generate_cache_key
from fantasylink.logging import RequestLogger, LogConfig
from fantasylink.retry import parse_retry_after
from fantasylink.exceptions import (
    CredentialsError,
    InvalidParameterError,
    RateLimitExceeded,
    error_for_exception,
    error_for_status,
)

logger = logging.getLogger(__name__)


class FantasyClient:
    """OAuth 1.0a signed, rate-limited and cached Yahoo Fantasy API client.

    Each call goes through the same pipeline:
    - GET responses are served from the cache while fresh
    - a token is taken from the bucket guarding the endpoint class
    - the request is signed with the current credentials and sent
    - error statuses are raised as typed exceptions
    - successful GET bodies are stored in the cache

    The client never retries; see ``fantasylink.retry`` for opt-in retries.
    One instance may be shared between threads.
    """

    def __init__(
        self,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        access_token: Optional[str] = None,
        access_token_secret: Optional[str] = None,
        credentials: Optional[Credentials] = None,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        connect_timeout: float = 5.0,
        max_rate_limit_wait: float = 5.0,
        rate_limits: Optional[Iterable[RateLimitConfig]] = None,
        rate_limiters: Optional[RateLimiterRegistry] = None,
        cache: Optional[ResponseCache] = None,
        cache_config: Optional[CacheConfig] = None,
        enable_cache: bool = True,
        log_config: Optional[LogConfig] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        verify_ssl: bool = True,
        signer: Optional[OAuthSigner] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize client.

        Args:
            consumer_key: OAuth consumer key (ignored if ``credentials`` given).
            consumer_secret: OAuth consumer secret.
            access_token: Optional OAuth access token.
            access_token_secret: Optional OAuth access token secret.
            credentials: Prebuilt credentials.
            base_url: Base URL for API requests.
            timeout: Request timeout in seconds.
            connect_timeout: Connection timeout in seconds.
            max_rate_limit_wait: Longest wait for a rate-limit token before
                failing with ``RateLimitExceeded``.
            rate_limits: Bucket configurations for a new registry.
            rate_limiters: Prebuilt registry; takes precedence over ``rate_limits``.
            cache: Response cache instance.
            cache_config: Sizing for a new cache when ``cache`` is not given.
            enable_cache: Set False to disable response caching.
            log_config: Logging configuration.
            user_agent: User-Agent header value.
            verify_ssl: Verify SSL certificates.
            signer: OAuth signer.
            http_client: Preconfigured httpx client.

        Raises:
            CredentialsError: If the consumer key or secret is missing.
        """
        if credentials is None:
            credentials = Credentials(
                consumer_key=consumer_key or "",
                consumer_secret=consumer_secret or "",
                access_token=access_token,
                access_token_secret=access_token_secret,
            )
        elif not isinstance(credentials, Credentials):
            raise CredentialsError("credentials must be a Credentials instance")

        self.config = ClientConfig(
            base_url=base_url,
            timeout=timeout,
            connect_timeout=connect_timeout,
            max_rate_limit_wait=max_rate_limit_wait,
            user_agent=user_agent,
            verify_ssl=verify_ssl,
        )
        self.base_url = self.config.base_url
        self.max_rate_limit_wait = self.config.max_rate_limit_wait

        self._credentials = credentials
        self._credentials_lock = threading.Lock()
        self.signer = signer or OAuthSigner()
        self.rate_limiters = rate_limiters or RateLimiterRegistry(rate_limits)

        if not enable_cache:
            self.cache: Optional[ResponseCache] = None
        elif cache is not None:
            self.cache = cache
        else:
            self.cache = ResponseCache.from_config(cache_config or CacheConfig.api_responses())

        self.request_logger = RequestLogger(log_config)

        self._client = http_client or httpx.Client(
            timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
            verify=self.config.verify_ssl,
        )

        self._stats = ClientStats()
        self._stats_lock = threading.Lock()

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials.has_access_token

    def set_tokens(self, access_token: str, access_token_secret: str) -> None:
        """Replace the access token pair used for signing."""
        with self._credentials_lock:
            self._credentials = self._credentials.with_tokens(
                access_token, access_token_secret
            )
        logger.info("Access token updated")

    def clear_tokens(self) -> None:
        with self._credentials_lock:
            self._credentials = self._credentials.with_tokens(None, None)

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from endpoint."""
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return urljoin(self.base_url + "/", endpoint.lstrip("/"))

    def _record(self, **increments: int) -> None:
        with self._stats_lock:
            for name, amount in increments.items():
                setattr(self._stats, name, getattr(self._stats, name) + amount)

    def _acquire_token(self, url: str, request_id: str) -> None:
        """Take a token for ``url`` or fail when the wait is too long.

        Raises:
            RateLimitExceeded: If the projected wait exceeds the ceiling.
        """
        limiter = self.rate_limiters.for_endpoint(urlsplit(url).path)
        if limiter.try_acquire():
            return

        wait = limiter.time_until_next_token()
        if wait > self.max_rate_limit_wait:
            self.request_logger.log_rate_limit_wait(
                limiter.name, wait, will_wait=False, request_id=request_id
            )
            self._record(rate_limit_rejections=1)
            raise RateLimitExceeded(
                message=f"Rate limit reached for {limiter.name} bucket; next token in {wait:.3f}s",
                status_code=0,
                retry_after=wait,
                request_id=request_id,
            )

        self.request_logger.log_rate_limit_wait(
            limiter.name, wait, will_wait=True, request_id=request_id
        )
        self._record(rate_limit_waits=1)
        limiter.block_until_acquired()

    def request(
        self,
        method: Union[str, HTTPMethod],
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Union[str, bytes]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        use_cache: bool = True,
        credentials: Optional[Credentials] = None,
        oauth_params: Optional[Mapping[str, str]] = None,
    ) -> ApiResponse:
        """Make a signed, rate-limited request.

        Args:
            method: HTTP method.
            endpoint: Path relative to ``base_url``, or an absolute URL.
            params: Query parameters; they are part of the signature.
            body: Raw request body.
            json: Object to send as a JSON body (ignored if ``body`` is given).
            headers: Extra request headers.
            use_cache: Whether a GET may be served from and stored in the cache.
            credentials: Sign with these instead of the client's credentials.
            oauth_params: Extra ``oauth_*`` protocol parameters.

        Returns:
            The response.

        Raises:
            RateLimitExceeded: On 429 or when the local wait is too long.
            AuthenticationError: On 401.
            NotFoundError: On 404.
            ResponseError: On any other status >= 400.
            RequestError: When the request could not be sent.
        """
        if isinstance(method, HTTPMethod):
            method = method.value
        try:
            method = HTTPMethod(method.upper()).value
        except ValueError:
            raise InvalidParameterError(f"Unsupported HTTP method: {method}")
        request_id = str(uuid.uuid4())[:8]
        caching = self.cache is not None and use_cache and method == "GET"

        cache_key = None
        if caching:
            cache_key = generate_cache_key(endpoint, params)
            cached = self.cache.get(cache_key)
            if cached is not None:
                self._record(cache_hits=1)
                self.request_logger.log_cache_hit(cache_key, request_id=request_id)
                return ApiResponse(status_code=200, body=cached, from_cache=True)
            self._record(cache_misses=1)

        url = self._build_url(endpoint)
        self._acquire_token(url, request_id)

        if body is None and json is not None:
            body = jsonlib.dumps(json)
        content = body.encode("utf-8") if isinstance(body, str) else body

        signed = self.signer.sign_request(
            method,
            url,
            params,
            credentials or self._credentials,
            extra_oauth_params=oauth_params,
        )

        request_headers = {
            "Authorization": signed.authorization,
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }
        if content is not None:
            request_headers["Content-Type"] = "application/json"
        if headers:
            request_headers.update(headers)

        self.request_logger.log_request(
            method=method,
            url=url,
            headers=request_headers,
            body=content.decode("utf-8", errors="replace") if content else None,
            request_id=request_id,
        )
        self._record(total_requests=1)

        start_time = time.time()
        try:
            response = self._client.request(
                method=method,
                url=signed.url,
                params=list(signed.params) or None,
                headers=request_headers,
                content=content,
            )
        except httpx.HTTPError as e:
            self._record(failed_requests=1)
            error = error_for_exception(
                e,
                url=url,
                method=method,
                timeout=self.config.timeout,
                request_id=request_id,
            )
            self.request_logger.log_error(error, request_id=request_id)
            raise error from e

        duration = time.time() - start_time
        response_headers = dict(response.headers)

        self.request_logger.log_response(
            status_code=response.status_code,
            headers=response_headers,
            body=response.text,
            duration=duration,
            request_id=request_id,
        )

        if response.status_code >= 400:
            with self._stats_lock:
                self._stats.failed_requests += 1
                self._stats.record_response_time(duration)
            error = error_for_status(
                response.status_code,
                response_body=response.text,
                headers=response_headers,
                request_id=request_id,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
            self.request_logger.log_error(error, request_id=request_id)
            raise error

        with self._stats_lock:
            self._stats.successful_requests += 1
            self._stats.record_response_time(duration)

        result = ApiResponse(
            status_code=response.status_code,
            body=response.content,
            headers=response_headers,
            elapsed_seconds=duration,
        )

        if caching and response.status_code == 200:
            try:
                self.cache.put(cache_key, result.body)
            except Exception as e:
                self.request_logger.log_cache_write_failure(cache_key, e, request_id=request_id)

        return result

    def get(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> ApiResponse:
        """Make GET request."""
        return self.request("GET", endpoint, params=params, **kwargs)

    def get_json(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> Any:
        """Make GET request and decode the JSON body."""
        return self.get(endpoint, params=params, **kwargs).json()

    def post(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Union[str, bytes]] = None,
        **kwargs: Any,
    ) -> ApiResponse:
        """Make POST request."""
        return self.request("POST", endpoint, params=params, body=body, **kwargs)

    def put(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Union[str, bytes]] = None,
        **kwargs: Any,
    ) -> ApiResponse:
        """Make PUT request."""
        return self.request("PUT", endpoint, params=params, body=body, **kwargs)

    def delete(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> ApiResponse:
        """Make DELETE request."""
        return self.request("DELETE", endpoint, params=params, **kwargs)

    def cleanup_cache(self) -> int:
        """Drop expired cache entries; returns how many were removed."""
        if self.cache is None:
            return 0
        return self.cache.cleanup()

    def cache_stats(self) -> Optional[CacheStats]:
        if self.cache is None:
            return None
        return self.cache.stats()

    def get_stats(self) -> ClientStats:
        """Get client statistics."""
        with self._stats_lock:
            return self._stats.model_copy()

    def reset_stats(self) -> None:
        """Reset all statistics."""
        with self._stats_lock:
            self._stats = ClientStats()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "FantasyClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
