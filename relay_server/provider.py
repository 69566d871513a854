"""
Spotify accounts + Web API calls used by the relay.
Code exchange and refresh go to the accounts service with HTTP Basic client auth;
profile and top items go to the Web API with the caller's Bearer token.
"""
import logging
from urllib.parse import urlencode

import httpx

from relay_server.config import (
    ACCOUNTS_URL,
    API_URL,
    PROVIDER_TIMEOUT,
    REDIRECT_URI,
    SCOPES,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
)
from relay_server.errors import ProviderError, ProviderUnavailable

logger = logging.getLogger(__name__)


def build_authorize_url(scopes: list[str] | None = None, state: str | None = None) -> str:
    """Accounts /authorize URL for the authorization code flow. No side effects."""
    params = {
        "client_id": SPOTIFY_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": REDIRECT_URI,
        "scope": " ".join(scopes or SCOPES),
    }
    if state:
        params["state"] = state
    return f"{ACCOUNTS_URL}/authorize?{urlencode(params)}"


def _error_from_response(r: httpx.Response) -> ProviderError:
    """
    Accounts errors look like {"error": "invalid_grant", "error_description": "..."};
    Web API errors look like {"error": {"status": 401, "message": "..."}}.
    """
    try:
        body = r.json()
    except ValueError:
        body = {}
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        message = err.get("message") or r.reason_phrase
        return ProviderError(r.status_code, message, message)
    if isinstance(err, str) and err:
        return ProviderError(r.status_code, err, body.get("error_description"))
    return ProviderError(r.status_code, r.reason_phrase or f"HTTP {r.status_code}")


def _json_body(r: httpx.Response) -> dict:
    """Body of a 200 reply. Anything but a JSON object is a provider error."""
    try:
        body = r.json()
    except ValueError as e:
        raise ProviderError(r.status_code, "invalid_response", "response body is not JSON") from e
    if not isinstance(body, dict):
        raise ProviderError(r.status_code, "invalid_response", "response body is not a JSON object")
    return body


def _token_request(data: dict) -> dict:
    try:
        r = httpx.post(
            f"{ACCOUNTS_URL}/api/token",
            data=data,
            auth=(SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET),
            headers={"Accept": "application/json"},
            timeout=PROVIDER_TIMEOUT,
        )
    except httpx.HTTPError as e:
        raise ProviderUnavailable(str(e)) from e
    if r.status_code != 200:
        raise _error_from_response(r)
    return _json_body(r)


def exchange_code(code: str) -> dict:
    """authorization_code grant. Returns access_token, expires_in, refresh_token."""
    return _token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": REDIRECT_URI,
        }
    )


def refresh_access_token(refresh_token: str) -> dict:
    """refresh_token grant. Spotify may or may not rotate the refresh token."""
    return _token_request({"grant_type": "refresh_token", "refresh_token": refresh_token})


def _api_get(path: str, access_token: str, params: dict | None = None) -> dict:
    try:
        r = httpx.get(
            f"{API_URL}{path}",
            params=params,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            timeout=PROVIDER_TIMEOUT,
        )
    except httpx.HTTPError as e:
        raise ProviderUnavailable(str(e)) from e
    if r.status_code != 200:
        raise _error_from_response(r)
    return _json_body(r)


def get_me(access_token: str) -> dict:
    return _api_get("/me", access_token)


def get_top_items(access_token: str, item_type: str, time_range: str, limit: int) -> dict:
    """GET /me/top/{artists|tracks}. Caller validates item_type."""
    return _api_get(
        f"/me/top/{item_type}",
        access_token,
        params={"time_range": time_range, "limit": limit},
    )
