"""Secure logging with credential redaction for fantasylink."""

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any, Pattern
from enum import Enum
from urllib.parse import urlsplit, parse_qsl, urlencode, urlunsplit


class MaskStyle(str, Enum):
    """Masking styles for sensitive data."""
    FULL = "full"
    PARTIAL = "partial"
    HASH = "hash"


@dataclass
class LogConfig:
    """Configuration for logging behavior."""

    log_request_headers: bool = True
    log_response_headers: bool = False
    log_request_body: bool = False
    log_response_body: bool = False
    log_timing: bool = True
    redact_headers: List[str] = field(
        default_factory=lambda: [
            "authorization",
            "cookie",
            "set-cookie",
        ]
    )
    redact_patterns: List[str] = field(
        default_factory=lambda: [
            r"oauth_(?:signature|token|token_secret|consumer_key|verifier|session_handle|nonce)"
            r"[\"\']?\s*[:=]\s*[\"\']?([^\s\"\'&,]+)",
            r"secret[\"\']?\s*[:=]\s*[\"\']?([^\s\"\'&,]+)",
            r"password[\"\']?\s*[:=]\s*[\"\']?([^\s\"\'&,]+)",
        ]
    )
    redact_query_params: List[str] = field(
        default_factory=lambda: [
            "oauth_token",
            "oauth_token_secret",
            "oauth_signature",
            "oauth_verifier",
            "oauth_session_handle",
            "oauth_consumer_key",
        ]
    )
    mask_style: MaskStyle = MaskStyle.PARTIAL
    partial_mask_chars: int = 4


class RequestLogger:
    """Request/response logger that keeps OAuth credentials out of logs."""

    REDACTION_PLACEHOLDER = "***REDACTED***"

    def __init__(self, config: Optional[LogConfig] = None) -> None:
        """Initialize request logger.

        Args:
            config: Logging configuration.
        """
        self.config = config or LogConfig()
        self.logger = logging.getLogger("fantasylink")

        self._compiled_patterns: List[Pattern] = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.config.redact_patterns
        ]

    def _mask_value(self, value: str) -> str:
        if self.config.mask_style == MaskStyle.FULL:
            return self.REDACTION_PLACEHOLDER

        elif self.config.mask_style == MaskStyle.PARTIAL:
            chars = self.config.partial_mask_chars
            if len(value) <= chars * 2:
                return "****"
            return f"{value[:chars]}...{value[-chars:]}"

        elif self.config.mask_style == MaskStyle.HASH:
            return f"[HASH:{hashlib.sha256(value.encode()).hexdigest()[:8]}]"

        return self.REDACTION_PLACEHOLDER

    def redact_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Redact sensitive headers.

        Args:
            headers: Request/response headers.

        Returns:
            Headers with sensitive values redacted.
        """
        redacted = {}
        redact_set = {h.lower() for h in self.config.redact_headers}

        for key, value in headers.items():
            if key.lower() in redact_set:
                redacted[key] = self._mask_value(value)
            else:
                redacted[key] = self._redact_value(value)

        return redacted

    def _redact_value(self, value: str) -> str:
        result = value

        for pattern in self._compiled_patterns:
            def replacer(match):
                full_match = match.group(0)
                sensitive_part = match.group(1) if match.lastindex else full_match
                return full_match.replace(sensitive_part, self._mask_value(sensitive_part))

            result = pattern.sub(replacer, result)

        return result

    def redact_body(self, body: str) -> str:
        """Redact token values from a request/response body."""
        return self._redact_value(body)

    def redact_url(self, url: str) -> str:
        """Redact sensitive query parameters from URL.

        Args:
            url: The request URL.

        Returns:
            URL with sensitive params redacted.
        """
        parsed = urlsplit(url)
        if not parsed.query:
            return url

        redact_set = {p.lower() for p in self.config.redact_query_params}
        params = [
            (key, self._mask_value(value) if key.lower() in redact_set else value)
            for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        ]
        return urlunsplit(parsed._replace(query=urlencode(params)))

    def log_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> str:
        """Log an outgoing request.

        Returns:
            Request ID for correlation.
        """
        request_id = request_id or str(uuid.uuid4())[:8]
        redacted_url = self.redact_url(url)

        self.logger.info(
            f"Request started: {method} {redacted_url}",
            extra={
                "request_id": request_id,
                "method": method,
                "url": redacted_url,
            }
        )

        if self.config.log_request_headers and headers:
            redacted_headers = self.redact_headers(headers)
            self.logger.debug(
                f"Request headers: {redacted_headers}",
                extra={"request_id": request_id, "headers": redacted_headers}
            )

        if self.config.log_request_body and body:
            self.logger.debug(
                f"Request body: {self.redact_body(body)}",
                extra={"request_id": request_id}
            )

        return request_id

    def log_response(
        self,
        status_code: int,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        duration: Optional[float] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Log an HTTP response.

        Args:
            status_code: HTTP status code.
            headers: Response headers.
            body: Response body.
            duration: Request duration in seconds.
            request_id: Request ID for correlation.
        """
        extra: Dict[str, Any] = {
            "request_id": request_id,
            "status_code": status_code,
        }

        if self.config.log_timing and duration is not None:
            extra["duration_seconds"] = duration

        log_level = logging.INFO if status_code < 400 else logging.WARNING

        message = f"Response: {status_code}"
        if self.config.log_timing and duration is not None:
            message += f" ({duration:.3f}s)"

        self.logger.log(log_level, message, extra=extra)

        if self.config.log_response_headers and headers:
            self.logger.debug(
                f"Response headers: {self.redact_headers(headers)}",
                extra={"request_id": request_id}
            )

        if self.config.log_response_body and body:
            self.logger.debug(
                f"Response body: {self.redact_body(body)}",
                extra={"request_id": request_id}
            )

    def log_error(
        self,
        error: Exception,
        request_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        extra: Dict[str, Any] = {
            "request_id": request_id,
            "error_type": type(error).__name__,
        }
        code = getattr(error, "code", None)
        if code is not None:
            extra["error_code"] = getattr(code, "value", code)
        if context:
            extra.update(context)

        self.logger.error(
            f"Request error: {self._redact_value(str(error))}",
            extra=extra,
        )

    def log_cache_hit(self, endpoint: str, request_id: Optional[str] = None) -> None:
        self.logger.debug(
            f"Cache hit for {self.redact_url(endpoint)}",
            extra={"request_id": request_id, "cache_hit": True},
        )

    def log_rate_limit_wait(
        self,
        bucket: str,
        wait_seconds: float,
        will_wait: bool,
        request_id: Optional[str] = None,
    ) -> None:
        """Log that a request found its rate-limit bucket empty.

        Args:
            bucket: Name of the bucket.
            wait_seconds: Projected wait for the next token.
            will_wait: False when the wait exceeds the ceiling and the request
                is rejected.
            request_id: Request ID for correlation.
        """
        action = "waiting" if will_wait else "rejecting request"
        self.logger.warning(
            f"Rate limited on {bucket} bucket, {action} ({wait_seconds * 1000:.0f}ms)",
            extra={
                "request_id": request_id,
                "bucket": bucket,
                "wait_seconds": wait_seconds,
            }
        )

    def log_cache_write_failure(
        self,
        key: str,
        error: Exception,
        request_id: Optional[str] = None,
    ) -> None:
        self.logger.warning(
            f"Failed to cache response for {self.redact_url(key)}: {error}",
            extra={"request_id": request_id, "error_type": type(error).__name__},
        )


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
) -> None:
    """Set up logging for fantasylink.

    Args:
        level: Log level.
        format_string: Custom format string.
    """
    if format_string is None:
        format_string = (
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=format_string,
    )
