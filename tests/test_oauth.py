"""Tests for OAuth 1.0a signing."""

import base64
import hashlib
import hmac
from urllib.parse import unquote

import pytest

from fantasylink.exceptions import CredentialsError, InvalidParameterError, ErrorCode
from fantasylink.oauth import (
    Credentials,
    OAuthSigner,
    generate_nonce,
    hmac_sha1_signature,
    normalize_base_url,
    normalize_parameters,
    parse_authorization_header,
    percent_encode,
    signature_base_string,
    signing_key,
)


class TestCredentials:
    """Tests for Credentials."""

    def test_requires_consumer_key(self):
        """Test missing consumer key fails at construction."""
        with pytest.raises(CredentialsError) as exc_info:
            Credentials(consumer_key="", consumer_secret="secret")

        assert exc_info.value.code is ErrorCode.INVALID_CONSUMER_KEY

    def test_requires_consumer_secret(self):
        with pytest.raises(CredentialsError):
            Credentials(consumer_key="key", consumer_secret="")

    def test_token_pair_must_be_complete(self):
        """Test a token without its secret is rejected."""
        with pytest.raises(CredentialsError):
            Credentials(consumer_key="key", consumer_secret="secret", access_token="tok")

    def test_with_tokens_replaces_pair(self, consumer_credentials):
        """Test with_tokens returns a new object with the new pair."""
        updated = consumer_credentials.with_tokens("new_token", "new_secret")

        assert updated.access_token == "new_token"
        assert updated.access_token_secret == "new_secret"
        assert consumer_credentials.access_token is None
        assert updated.consumer_key == consumer_credentials.consumer_key

    def test_empty_token_pair_is_not_an_access_token(self, fixed_signer):
        """Test empty token strings neither authenticate nor reach the header."""
        creds = Credentials(
            consumer_key="key", consumer_secret="secret", access_token="", access_token_secret=""
        )

        assert creds.has_access_token is False
        header = fixed_signer.sign("GET", "https://example.com/x", None, creds)
        assert "oauth_token" not in parse_authorization_header(header)

    def test_immutable(self, credentials):
        with pytest.raises(Exception):
            credentials.consumer_key = "other"

    def test_repr_hides_secrets(self, credentials):
        text = repr(credentials)

        assert "test_secret" not in text
        assert "test_token_secret" not in text


class TestPercentEncode:
    """Tests for RFC 3986 percent-encoding."""

    def test_unreserved_pass_through(self):
        assert percent_encode("AZaz09-._~") == "AZaz09-._~"

    @pytest.mark.parametrize(
        "raw, encoded",
        [
            ("&", "%26"),
            ("+", "%2B"),
            (" ", "%20"),
            ("=", "%3D"),
            ("/", "%2F"),
            (";", "%3B"),
            ("*", "%2A"),
        ],
    )
    def test_reserved_characters_escaped(self, raw, encoded):
        """Test reserved characters always become uppercase escapes."""
        assert percent_encode(raw) == encoded

    def test_utf8_bytes(self):
        assert percent_encode("é") == "%C3%A9"

    def test_decode_then_encode_reproduces_normalized_string(self):
        """Test decoding a normalized string and re-encoding gives it back."""
        normalized = normalize_parameters(
            [("status", "Hello Ladies + Gentlemen"), ("a", "x=y&z"), ("b", "~ok")]
        )

        pairs = [part.split("=", 1) for part in normalized.split("&")]
        decoded = [(unquote(k), unquote(v)) for k, v in pairs]

        assert normalize_parameters(decoded) == normalized
        assert " " not in normalized
        assert "+" not in normalized


class TestNormalization:
    """Tests for base string construction."""

    def test_sorted_by_key_then_value(self):
        result = normalize_parameters([("b", "2"), ("a", "2"), ("a", "1")])

        assert result == "a=1&a=2&b=2"

    def test_sorted_by_encoded_key(self):
        """Test sorting happens on encoded keys."""
        result = normalize_parameters([("a b", "1"), ("a", "2")])

        assert result == "a=2&a%20b=1"

    def test_base_url_normalization(self):
        base, query = normalize_base_url("HTTPS://Fantasy.Example.COM:443/v2/games?x=1&y=2")

        assert base == "https://fantasy.example.com/v2/games"
        assert query == [("x", "1"), ("y", "2")]

    def test_base_url_keeps_custom_port(self):
        base, _ = normalize_base_url("http://example.com:8080/path")

        assert base == "http://example.com:8080/path"

    def test_signature_base_string(self):
        result = signature_base_string("get", "https://example.com/a", "a=1&b=2")

        assert result == "GET&https%3A%2F%2Fexample.com%2Fa&a%3D1%26b%3D2"

    def test_signing_key_without_token_secret(self):
        assert signing_key("cs&1") == "cs%261&"

    def test_signing_key_with_token_secret(self):
        assert signing_key("cs", "ts") == "cs&ts"


class TestOAuthSigner:
    """Tests for OAuthSigner."""

    def test_generate_nonce_is_hex(self):
        nonce = generate_nonce()

        assert len(nonce) == 32
        int(nonce, 16)
        assert nonce != generate_nonce()

    def test_deterministic_with_fixed_nonce_and_timestamp(self, fixed_signer, credentials):
        """Test signing is deterministic for fixed inputs."""
        url = "https://fantasysports.yahooapis.com/fantasy/v2/games"
        params = {"format": "json", "game_keys": "nfl"}

        first = fixed_signer.sign("GET", url, params, credentials)
        second = fixed_signer.sign("GET", url, params, credentials)

        assert first == second

    def test_signature_recoverable_from_base_string(self, fixed_signer, credentials):
        """Test the signature can be re-derived from the base string."""
        url = "https://fantasysports.yahooapis.com/fantasy/v2/games"
        params = {"format": "json"}

        header = fixed_signer.sign("GET", url, params, credentials)
        oauth_params = parse_authorization_header(header)
        signature = oauth_params.pop("oauth_signature")

        normalized = "&".join(
            f"{percent_encode(k)}={percent_encode(v)}"
            for k, v in sorted(list(oauth_params.items()) + [("format", "json")])
        )
        base_string = "GET&" + percent_encode(url) + "&" + percent_encode(normalized)
        expected = base64.b64encode(
            hmac.new(b"test_secret&test_token_secret", base_string.encode(), hashlib.sha1).digest()
        ).decode()

        assert signature == expected
        assert len(base64.b64decode(signature)) == 20

    def test_header_contains_oauth_parameters(self, fixed_signer, credentials):
        header = fixed_signer.sign("GET", "https://example.com/x", {"q": "1"}, credentials)
        params = parse_authorization_header(header)

        assert header.startswith("OAuth ")
        assert params["oauth_consumer_key"] == "test_key"
        assert params["oauth_signature_method"] == "HMAC-SHA1"
        assert params["oauth_version"] == "1.0"
        assert params["oauth_nonce"] == "0123456789abcdef0123456789abcdef"
        assert params["oauth_timestamp"] == "1700000000"
        assert params["oauth_token"] == "test_token"
        assert "q" not in params

    def test_header_ordered_by_key(self, fixed_signer, credentials):
        header = fixed_signer.sign("GET", "https://example.com/x", None, credentials)
        keys = [part.split("=", 1)[0] for part in header[len("OAuth "):].split(", ")]

        assert keys == sorted(keys)

    def test_no_token_without_access_token(self, fixed_signer, consumer_credentials):
        header = fixed_signer.sign("GET", "https://example.com/x", None, consumer_credentials)

        assert "oauth_token" not in parse_authorization_header(header)

    def test_consumer_only_signing_key(self, fixed_signer, consumer_credentials):
        """Test the signing key ends with '&' when there is no token secret."""
        signed = fixed_signer.sign_request(
            "POST", "https://example.com/x", None, consumer_credentials
        )
        params = parse_authorization_header(signed.authorization)
        signature = params.pop("oauth_signature")

        base_string = signature_base_string(
            "POST", "https://example.com/x", normalize_parameters(params.items())
        )

        assert signature == hmac_sha1_signature("test_secret&", base_string)

    def test_url_query_folded_into_params(self, fixed_signer, credentials):
        """Test query parameters in the URL are signed and stripped from the base URL."""
        with_query = fixed_signer.sign_request(
            "GET", "https://example.com/x?b=2", {"a": "1"}, credentials
        )
        without_query = fixed_signer.sign_request(
            "GET", "https://example.com/x", {"a": "1", "b": "2"}, credentials
        )

        assert with_query.url == "https://example.com/x"
        assert with_query.params == (("a", "1"), ("b", "2"))
        assert with_query.authorization == without_query.authorization

    def test_colliding_parameter_rejected(self, fixed_signer, credentials):
        """Test a request parameter named like an OAuth parameter is an error."""
        with pytest.raises(InvalidParameterError):
            fixed_signer.sign(
                "GET", "https://example.com/x", {"oauth_nonce": "x"}, credentials
            )

    def test_extra_oauth_params_in_header(self, fixed_signer, consumer_credentials):
        header = fixed_signer.sign(
            "POST",
            "https://api.login.yahoo.com/oauth/v2/get_request_token",
            None,
            consumer_credentials,
            extra_oauth_params={"oauth_callback": "oob"},
        )

        assert parse_authorization_header(header)["oauth_callback"] == "oob"

    def test_extra_params_must_be_oauth(self, fixed_signer, credentials):
        with pytest.raises(InvalidParameterError):
            fixed_signer.sign(
                "GET", "https://example.com/x", None, credentials,
                extra_oauth_params={"callback": "oob"},
            )

    def test_method_upper_cased(self, fixed_signer, credentials):
        lower = fixed_signer.sign("get", "https://example.com/x", None, credentials)
        upper = fixed_signer.sign("GET", "https://example.com/x", None, credentials)

        assert lower == upper
