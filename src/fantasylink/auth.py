"""OAuth 1.0a token exchange for fantasylink."""

import time
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode

from fantasylink.exceptions import ParseError

if TYPE_CHECKING:
    from fantasylink.client import FantasyClient

logger = logging.getLogger(__name__)

OAUTH_BASE_URL = "https://api.login.yahoo.com/oauth/v2"
OUT_OF_BAND = "oob"


@dataclass
class RequestToken:
    """Temporary credentials from the first leg of the flow."""

    token: str
    token_secret: str = field(repr=False)
    authorization_url: Optional[str] = None
    callback_confirmed: bool = False


@dataclass
class AccessToken:
    """Token credentials used to sign API requests."""

    token: str
    token_secret: str = field(repr=False)
    session_handle: Optional[str] = field(default=None, repr=False)
    expires_in: Optional[int] = None
    created_at: float = 0.0
    extra: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.created_at == 0.0:
            self.created_at = time.time()

    @property
    def expires_at(self) -> Optional[float]:
        """Get expiration timestamp."""
        if self.expires_in is None:
            return None
        return self.created_at + self.expires_in

    @property
    def is_expired(self) -> bool:
        """Check if token is expired."""
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at

    def should_refresh(self, buffer_seconds: int = 60) -> bool:
        """True once the token is within ``buffer_seconds`` of expiring."""
        if self.expires_at is None:
            return False
        return (time.time() + buffer_seconds) >= self.expires_at


def parse_token_response(body: str) -> Dict[str, str]:
    """Decode a form-encoded token response.

    Raises:
        ParseError: If ``oauth_token`` or ``oauth_token_secret`` is missing.
    """
    values = dict(parse_qsl(body.strip(), keep_blank_values=True))
    missing = [
        name for name in ("oauth_token", "oauth_token_secret") if not values.get(name)
    ]
    if missing:
        raise ParseError(
            f"Token response missing {', '.join(missing)}",
            details=body[:200],
        )
    return values


def _access_token_from(values: Dict[str, str]) -> AccessToken:
    expires_in = values.get("oauth_expires_in")
    known = {"oauth_token", "oauth_token_secret", "oauth_session_handle", "oauth_expires_in"}
    return AccessToken(
        token=values["oauth_token"],
        token_secret=values["oauth_token_secret"],
        session_handle=values.get("oauth_session_handle"),
        expires_in=int(expires_in) if expires_in and expires_in.isdigit() else None,
        extra={k: v for k, v in values.items() if k not in known},
    )


class TokenFlow:
    """Three-legged OAuth 1.0a flow run through a ``FantasyClient``.

    Token requests go through the client pipeline, so they are rate limited
    by the ``/oauth/`` bucket and never cached.
    """

    def __init__(self, client: "FantasyClient", oauth_base_url: str = OAUTH_BASE_URL) -> None:
        self.client = client
        self.oauth_base_url = oauth_base_url.rstrip("/")

    def _url(self, name: str) -> str:
        return f"{self.oauth_base_url}/{name}"

    def get_request_token(self, callback: str = OUT_OF_BAND) -> RequestToken:
        """Obtain temporary credentials.

        Args:
            callback: Callback URL, or ``"oob"`` for the PIN based flow.

        Returns:
            The request token.
        """
        consumer_only = self.client.credentials.with_tokens(None, None)
        response = self.client.post(
            self._url("get_request_token"),
            credentials=consumer_only,
            oauth_params={"oauth_callback": callback},
        )
        values = parse_token_response(response.text)
        logger.info("Obtained OAuth request token")
        return RequestToken(
            token=values["oauth_token"],
            token_secret=values["oauth_token_secret"],
            authorization_url=values.get("xoauth_request_auth_url"),
            callback_confirmed=values.get("oauth_callback_confirmed") == "true",
        )

    def authorization_url(self, request_token: RequestToken) -> str:
        """URL the user visits to approve access."""
        if request_token.authorization_url:
            return request_token.authorization_url
        query = urlencode({"oauth_token": request_token.token})
        return f"{self._url('request_auth')}?{query}"

    def get_access_token(self, request_token: RequestToken, verifier: str) -> AccessToken:
        """Exchange an authorized request token for an access token.

        The new token pair is installed on the client.
        """
        temporary = self.client.credentials.with_tokens(
            request_token.token, request_token.token_secret
        )
        response = self.client.post(
            self._url("get_token"),
            credentials=temporary,
            oauth_params={"oauth_verifier": verifier},
        )
        token = _access_token_from(parse_token_response(response.text))
        self.client.set_tokens(token.token, token.token_secret)
        logger.info("Obtained OAuth access token")
        return token

    def refresh_access_token(self, access_token: AccessToken) -> AccessToken:
        """Renew an expired access token using its session handle.

        Raises:
            ValueError: If the token carries no session handle.
        """
        if not access_token.session_handle:
            raise ValueError("Access token has no session handle to refresh with")

        current = self.client.credentials.with_tokens(
            access_token.token, access_token.token_secret
        )
        response = self.client.post(
            self._url("get_token"),
            credentials=current,
            oauth_params={"oauth_session_handle": access_token.session_handle},
        )
        token = _access_token_from(parse_token_response(response.text))
        self.client.set_tokens(token.token, token.token_secret)
        logger.info("Refreshed OAuth access token")
        return token
