"""Error taxonomy and custom exceptions for fantasylink."""

import json
import ssl
import time
from enum import Enum
from typing import Optional, Any, Dict

import httpx
from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Closed set of machine-readable error codes."""

    # Network
    CONNECTION_FAILED = "CONNECTION_FAILED"
    TIMEOUT = "TIMEOUT"
    DNS_RESOLUTION_FAILED = "DNS_RESOLUTION_FAILED"
    SSL_HANDSHAKE_FAILED = "SSL_HANDSHAKE_FAILED"

    # HTTP
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    TOO_MANY_REQUESTS = "RATE_LIMITED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BAD_GATEWAY = "BAD_GATEWAY"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # OAuth
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_CONSUMER_KEY = "INVALID_CONSUMER_KEY"

    # Cache
    CACHE_EXPIRED = "CACHE_EXPIRED"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"
    CACHE_FULL = "CACHE_FULL"

    # Generic
    API_UNAVAILABLE = "API_UNAVAILABLE"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


RETRYABLE_CODES = frozenset(
    {
        ErrorCode.TIMEOUT,
        ErrorCode.CONNECTION_FAILED,
        ErrorCode.RATE_LIMITED,
        ErrorCode.SERVICE_UNAVAILABLE,
        ErrorCode.BAD_GATEWAY,
    }
)

_STATUS_CODES: Dict[int, ErrorCode] = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    429: ErrorCode.RATE_LIMITED,
    500: ErrorCode.INTERNAL_SERVER_ERROR,
    502: ErrorCode.BAD_GATEWAY,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


def is_retryable(code: ErrorCode) -> bool:
    """Check whether an error code is worth retrying."""
    return ErrorCode(code) in RETRYABLE_CODES


def classify_status(status_code: int) -> ErrorCode:
    """Map an HTTP status code to an error code.

    Args:
        status_code: HTTP status code (expected to be >= 400).

    Returns:
        The matching error code; unknown statuses map to API_UNAVAILABLE.
    """
    return _STATUS_CODES.get(status_code, ErrorCode.API_UNAVAILABLE)


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map a transport exception raised by httpx to an error code."""
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCode.TIMEOUT

    cause: Optional[BaseException] = exc
    while cause is not None:
        if isinstance(cause, ssl.SSLError):
            return ErrorCode.SSL_HANDSHAKE_FAILED
        cause = cause.__cause__ or cause.__context__

    message = str(exc).lower()
    if "certificate" in message or "ssl" in message:
        return ErrorCode.SSL_HANDSHAKE_FAILED
    if any(marker in message for marker in _DNS_MARKERS):
        return ErrorCode.DNS_RESOLUTION_FAILED

    return ErrorCode.CONNECTION_FAILED


class ErrorContext(BaseModel):
    """Structured description of a failure, suitable for serialization."""

    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    message: str
    timestamp: int = Field(default_factory=lambda: int(time.time()))
    request_id: Optional[str] = None
    details: Optional[str] = None

    @property
    def is_retryable(self) -> bool:
        return is_retryable(self.code)

    def with_request_id(self, request_id: str) -> "ErrorContext":
        return self.model_copy(update={"request_id": request_id})

    def with_details(self, details: str) -> "ErrorContext":
        return self.model_copy(update={"details": details})

    def to_dict(self) -> Dict[str, Any]:
        """Build the error payload, omitting unset optional fields."""
        payload: Dict[str, Any] = {
            "error": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.request_id is not None:
            payload["request_id"] = self.request_id
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class FantasyLinkError(Exception):
    """Base exception for all fantasylink errors."""

    default_code = ErrorCode.API_UNAVAILABLE

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        request_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        self.message = message
        self.code = ErrorCode(code) if code is not None else self.default_code
        self.request_id = request_id
        self.details = details
        super().__init__(message)

    @property
    def context(self) -> ErrorContext:
        """Error context for this exception."""
        return ErrorContext(
            code=self.code,
            message=self.message,
            request_id=self.request_id,
            details=self.details,
        )

    @property
    def is_retryable(self) -> bool:
        return is_retryable(self.code)


class CredentialsError(FantasyLinkError, ValueError):
    """Raised when OAuth credentials are missing or malformed."""

    default_code = ErrorCode.INVALID_CONSUMER_KEY


class InvalidParameterError(FantasyLinkError, ValueError):
    """Raised when request parameters cannot be signed or sent."""

    default_code = ErrorCode.INVALID_PARAMETER


class ParseError(FantasyLinkError):
    """Raised when a response body cannot be decoded."""

    default_code = ErrorCode.PARSE_ERROR


class CacheError(FantasyLinkError):
    """Raised on cache failures."""

    default_code = ErrorCode.CACHE_CORRUPTED


class CacheFullError(CacheError):
    """Raised when the cache cannot accept another entry."""

    default_code = ErrorCode.CACHE_FULL


class RequestError(FantasyLinkError):
    """Raised when a request fails to be sent."""

    default_code = ErrorCode.CONNECTION_FAILED

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        method: Optional[str] = None,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ) -> None:
        self.url = url
        self.method = method
        self.cause = cause
        super().__init__(message, **kwargs)


class TimeoutError(RequestError):
    """Raised when a request times out."""

    default_code = ErrorCode.TIMEOUT

    def __init__(
        self,
        message: str = "Request timed out",
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.timeout = timeout
        super().__init__(message, **kwargs)


class ConnectionError(RequestError):
    """Raised when connection to the server fails."""

    pass


class DNSResolutionError(ConnectionError):
    """Raised when the API host name cannot be resolved."""

    default_code = ErrorCode.DNS_RESOLUTION_FAILED


class SSLError(RequestError):
    """Raised when SSL/TLS negotiation or verification fails."""

    default_code = ErrorCode.SSL_HANDSHAKE_FAILED


class ResponseError(FantasyLinkError):
    """Raised when a response indicates an error."""

    def __init__(
        self,
        message: str,
        status_code: int,
        response_body: Optional[str] = None,
        headers: Optional[dict] = None,
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        self.headers = headers or {}
        super().__init__(
            message,
            code=code if code is not None else classify_status(status_code),
            **kwargs,
        )


class RateLimitExceeded(ResponseError):
    """Raised on HTTP 429 or when the local rate-limit wait is too long."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status_code: int = 429,
        retry_after: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.retry_after = retry_after
        kwargs.setdefault("code", ErrorCode.RATE_LIMITED)
        super().__init__(message, status_code=status_code, **kwargs)


class AuthenticationError(ResponseError):
    """Raised when authentication fails (401)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("status_code", 401)
        super().__init__(message, **kwargs)


class AuthorizationError(ResponseError):
    """Raised when authorization fails (403)."""

    def __init__(
        self,
        message: str = "Authorization failed",
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("status_code", 403)
        super().__init__(message, **kwargs)


class NotFoundError(ResponseError):
    """Raised when resource is not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("status_code", 404)
        super().__init__(message, **kwargs)


class ServerError(ResponseError):
    """Raised when server returns 5xx error."""

    pass


def error_for_status(
    status_code: int,
    message: Optional[str] = None,
    response_body: Optional[str] = None,
    headers: Optional[dict] = None,
    request_id: Optional[str] = None,
    retry_after: Optional[float] = None,
) -> ResponseError:
    """Build the exception matching an HTTP error status.

    Args:
        status_code: HTTP status code (>= 400).
        message: Optional message; defaults to one derived from the code.
        response_body: Response text.
        headers: Response headers.
        request_id: Request ID for correlation.
        retry_after: Parsed Retry-After value, used for 429.

    Returns:
        A ResponseError subclass instance.
    """
    code = classify_status(status_code)
    message = message or f"HTTP {status_code}: {code.value}"
    common = dict(
        status_code=status_code,
        response_body=response_body,
        headers=headers,
        request_id=request_id,
    )

    if status_code == 429:
        return RateLimitExceeded(message, retry_after=retry_after, **common)
    if status_code == 401:
        return AuthenticationError(message, **common)
    if status_code == 403:
        return AuthorizationError(message, **common)
    if status_code == 404:
        return NotFoundError(message, **common)
    if status_code >= 500:
        return ServerError(message, code=code, **common)
    return ResponseError(message, code=code, **common)


def error_for_exception(
    exc: Exception,
    url: Optional[str] = None,
    method: Optional[str] = None,
    timeout: Optional[float] = None,
    request_id: Optional[str] = None,
) -> RequestError:
    """Wrap an httpx transport exception in the matching RequestError."""
    code = classify_exception(exc)
    common = dict(url=url, method=method, cause=exc, request_id=request_id)
    message = str(exc) or code.value

    if code is ErrorCode.TIMEOUT:
        return TimeoutError(message, timeout=timeout, **common)
    if code is ErrorCode.SSL_HANDSHAKE_FAILED:
        return SSLError(message, **common)
    if code is ErrorCode.DNS_RESOLUTION_FAILED:
        return DNSResolutionError(message, **common)
    return ConnectionError(message, **common)
