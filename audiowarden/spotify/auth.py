"""
OAuth 2.0 Authorization Code flow with PKCE for the Spotify accounts service.

PKCE needs no client secret, so audiowarden can ship a public client ID.

Flow:
    1. generate_code_verifier() / generate_state()
    2. build_authorization_url() with code_challenge(verifier)
    3. The user consents in the browser, Spotify redirects to the local
       callback listener with ?code=...&state=...
    4. exchange_code() trades the code for an AccessToken
    5. refresh_access_token() is used whenever the API answers 401
"""

import base64
import hashlib
import secrets
import string
import urllib.parse

import requests

from audiowarden.core.config import SpotifyConfig
from audiowarden.core.exceptions import RefreshFailedError, SpotifyError
from audiowarden.core.logger import get_logger
from audiowarden.spotify.models import AccessToken

logger = get_logger(__name__)


AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

CODE_VERIFIER_LENGTH = 128
STATE_LENGTH = 16

_ALPHANUMERIC = string.ascii_letters + string.digits


def generate_random_string(length: int) -> str:
    """Random alphanumeric string from a cryptographically secure source."""
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def generate_code_verifier() -> str:
    return generate_random_string(CODE_VERIFIER_LENGTH)


def generate_state() -> str:
    return generate_random_string(STATE_LENGTH)


def code_challenge(verifier: str) -> str:
    """
    Derive the S256 code challenge of a verifier.

    base64url encoding of the SHA-256 digest, without '=' padding.
    Deterministic for a given verifier.
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def build_authorization_url(config: SpotifyConfig, state: str, challenge: str) -> str:
    """Build the URL the user has to visit to grant access."""
    params = {
        "response_type": "code",
        "client_id": config.client_id,
        "scope": config.scope,
        "state": state,
        "code_challenge_method": "S256",
        "code_challenge": challenge,
        "redirect_uri": config.redirect_uri,
    }
    return f"{AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"


def _post_token_request(
    data: dict[str, str],
    config: SpotifyConfig,
    session: requests.Session | None
) -> requests.Response:
    http = session or requests
    try:
        return http.post(
            TOKEN_URL,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=config.request_timeout
        )
    except requests.RequestException as e:
        raise SpotifyError(
            f"Unable to reach the Spotify token endpoint: {e}",
            details={"url": TOKEN_URL, "grant_type": data["grant_type"], "original_error": str(e)}
        ) from e


def exchange_code(
    code: str,
    verifier: str,
    config: SpotifyConfig,
    session: requests.Session | None = None
) -> AccessToken:
    """
    Exchange an authorization code for a token.

    Raises:
        SpotifyError: If the request fails, is rejected or returns an
                      unusable payload.
    """
    response = _post_token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": config.redirect_uri,
            "client_id": config.client_id,
            "code_verifier": verifier,
        },
        config,
        session
    )

    if response.status_code != 200:
        raise SpotifyError(
            f"Spotify rejected the authorization code (HTTP {response.status_code})",
            details={"response": response.text[:500]},
            http_status=response.status_code
        )

    try:
        return AccessToken.from_token_response(response.json())
    except (KeyError, TypeError, ValueError) as e:
        raise SpotifyError(
            f"Unexpected token response from Spotify: {e}",
            details={"original_error": str(e)},
            http_status=response.status_code
        ) from e


def refresh_access_token(
    refresh_token: str,
    config: SpotifyConfig,
    session: requests.Session | None = None
) -> AccessToken:
    """
    Obtain a new access token with a refresh token.

    Spotify may rotate the refresh token; when the response omits it the
    previous one stays valid.

    Raises:
        RefreshFailedError: If Spotify rejects the refresh token or answers
                            with an unusable payload.
        SpotifyError: If the token endpoint cannot be reached.
    """
    response = _post_token_request(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": config.client_id,
        },
        config,
        session
    )

    if response.status_code != 200:
        raise RefreshFailedError(
            f"Spotify rejected the token refresh (HTTP {response.status_code})",
            details={"response": response.text[:500]},
            http_status=response.status_code
        )

    try:
        return AccessToken.from_token_response(response.json(), previous_refresh_token=refresh_token)
    except (KeyError, TypeError, ValueError) as e:
        raise RefreshFailedError(
            f"Unexpected token response from Spotify: {e}",
            details={"original_error": str(e)},
            http_status=response.status_code
        ) from e
