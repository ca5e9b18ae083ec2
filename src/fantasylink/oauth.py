"""OAuth 1.0a request signing for fantasylink."""

import base64
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any, Callable, Iterable, List, Mapping, Tuple
from urllib.parse import urlsplit, urlunsplit, parse_qsl, unquote
import logging

from fantasylink.exceptions import CredentialsError, InvalidParameterError

logger = logging.getLogger(__name__)

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
)
_DEFAULT_PORTS = {"http": 80, "https": 443}

ParamPairs = List[Tuple[str, str]]


@dataclass(frozen=True)
class Credentials:
    """Consumer and (optional) access token credentials."""

    consumer_key: str
    consumer_secret: str = field(repr=False)
    access_token: Optional[str] = None
    access_token_secret: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.consumer_key:
            raise CredentialsError("consumer_key is required")
        if not self.consumer_secret:
            raise CredentialsError("consumer_secret is required")
        if bool(self.access_token) != bool(self.access_token_secret):
            raise CredentialsError(
                "access_token and access_token_secret must be set together"
            )

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    def with_tokens(
        self,
        access_token: Optional[str],
        access_token_secret: Optional[str],
    ) -> "Credentials":
        """Return a copy carrying a new access token pair."""
        return replace(
            self,
            access_token=access_token,
            access_token_secret=access_token_secret,
        )


@dataclass(frozen=True)
class SignedRequest:
    """A request together with its computed Authorization header."""

    method: str
    url: str
    params: Tuple[Tuple[str, str], ...]
    authorization: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": self.authorization}


def percent_encode(value: Any) -> str:
    """Percent-encode a value using RFC 3986 unreserved characters.

    Args:
        value: Value to encode; non-strings are converted with ``str``.

    Returns:
        Encoded string with uppercase hex escapes.
    """
    if isinstance(value, bytes):
        raw = value
    else:
        raw = str(value).encode("utf-8")
    return "".join(
        chr(byte) if byte in _UNRESERVED else f"%{byte:02X}" for byte in raw
    )


def generate_nonce() -> str:
    """Generate a random hex nonce (16 bytes of entropy)."""
    return secrets.token_hex(16)


def generate_timestamp() -> str:
    return str(int(time.time()))


def normalize_base_url(url: str) -> Tuple[str, ParamPairs]:
    """Split a URL into its signature base URL and its query parameters.

    The scheme and host are lower-cased, default ports are dropped and the
    query string and fragment are removed.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{parts.port}"
    path = parts.path or "/"
    query = parse_qsl(parts.query, keep_blank_values=True)
    return urlunsplit((scheme, host, path, "", "")), query


def normalize_parameters(params: Iterable[Tuple[str, Any]]) -> str:
    """Build the normalized parameter string used in the base string."""
    encoded = sorted(
        (percent_encode(key), percent_encode(value)) for key, value in params
    )
    return "&".join(f"{key}={value}" for key, value in encoded)


def signature_base_string(method: str, base_url: str, normalized_params: str) -> str:
    return "&".join(
        [
            method.upper(),
            percent_encode(base_url),
            percent_encode(normalized_params),
        ]
    )


def signing_key(consumer_secret: str, token_secret: Optional[str] = None) -> str:
    return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret or '')}"


def hmac_sha1_signature(key: str, base_string: str) -> str:
    """Base64-encoded HMAC-SHA1 digest of ``base_string``."""
    digest = hmac.new(
        key.encode("utf-8"),
        base_string.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def _as_pairs(params: Optional[Mapping[str, Any]]) -> ParamPairs:
    if not params:
        return []
    pairs: ParamPairs = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), str(v)) for v in value)
        else:
            pairs.append((str(key), str(value)))
    return pairs


class OAuthSigner:
    """Builds OAuth 1.0a ``Authorization`` headers with HMAC-SHA1.

    The signer holds no credentials of its own; they are passed per call so
    that token exchanges can sign with temporary token pairs.
    """

    def __init__(
        self,
        nonce_factory: Optional[Callable[[], str]] = None,
        timestamp_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        """Initialize signer.

        Args:
            nonce_factory: Returns a fresh nonce; defaults to ``generate_nonce``.
            timestamp_factory: Returns Unix seconds as a string.
        """
        self.nonce_factory = nonce_factory or generate_nonce
        self.timestamp_factory = timestamp_factory or generate_timestamp

    def oauth_parameters(
        self,
        credentials: Credentials,
        extra_oauth_params: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        """Protocol parameters for a request, without the signature."""
        oauth_params = {
            "oauth_consumer_key": credentials.consumer_key,
            "oauth_nonce": self.nonce_factory(),
            "oauth_signature_method": SIGNATURE_METHOD,
            "oauth_timestamp": self.timestamp_factory(),
            "oauth_version": OAUTH_VERSION,
        }
        if credentials.access_token:
            oauth_params["oauth_token"] = credentials.access_token
        if extra_oauth_params:
            for key, value in extra_oauth_params.items():
                if not key.startswith("oauth_"):
                    raise InvalidParameterError(
                        f"Extra protocol parameter must start with 'oauth_': {key}"
                    )
                oauth_params[key] = str(value)
        return oauth_params

    def sign_request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]],
        credentials: Credentials,
        extra_oauth_params: Optional[Mapping[str, str]] = None,
    ) -> SignedRequest:
        """Sign a request.

        Args:
            method: HTTP method.
            url: Target URL; any query string is folded into the parameters.
            params: Request (query or form) parameters.
            credentials: Credentials to sign with.
            extra_oauth_params: Additional ``oauth_*`` protocol parameters.

        Returns:
            The signed request.

        Raises:
            InvalidParameterError: If a request parameter collides with an
                OAuth protocol parameter.
        """
        base_url, query_pairs = normalize_base_url(url)
        request_pairs = query_pairs + _as_pairs(params)

        oauth_params = self.oauth_parameters(credentials, extra_oauth_params)
        collisions = sorted(
            {key for key, _ in request_pairs if key in oauth_params or key == "oauth_signature"}
        )
        if collisions:
            raise InvalidParameterError(
                f"Request parameters collide with OAuth parameters: {', '.join(collisions)}"
            )

        normalized = normalize_parameters(list(oauth_params.items()) + request_pairs)
        base_string = signature_base_string(method, base_url, normalized)
        key = signing_key(credentials.consumer_secret, credentials.access_token_secret)
        oauth_params["oauth_signature"] = hmac_sha1_signature(key, base_string)

        logger.debug(f"Signed {method.upper()} {base_url}")

        return SignedRequest(
            method=method.upper(),
            url=base_url,
            params=tuple(sorted(request_pairs)),
            authorization=self.build_header(oauth_params),
        )

    def sign(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]],
        credentials: Credentials,
        extra_oauth_params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Return only the ``Authorization`` header value for a request."""
        return self.sign_request(
            method, url, params, credentials, extra_oauth_params
        ).authorization

    @staticmethod
    def build_header(oauth_params: Mapping[str, str]) -> str:
        encoded = sorted(
            (percent_encode(key), percent_encode(value))
            for key, value in oauth_params.items()
        )
        return "OAuth " + ", ".join(f'{key}="{value}"' for key, value in encoded)


def parse_authorization_header(header: str) -> Dict[str, str]:
    """Parse an ``OAuth ...`` header back into decoded parameters."""
    if not header.startswith("OAuth "):
        raise InvalidParameterError("Not an OAuth authorization header")

    params: Dict[str, str] = {}
    for part in header[len("OAuth "):].split(", "):
        key, _, value = part.partition("=")
        params[unquote(key)] = unquote(value.strip('"'))
    return params
