"""
Auth gateway routes: authorize URL, code exchange, refresh, logout.
The refresh token never leaves the HTTP-only cookie; the client only ever sees access tokens.
"""
import logging

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from relay_server import provider
from relay_server.config import REFRESH_COOKIE_NAME
from relay_server.cookies import clear_refresh_cookie, set_refresh_cookie
from relay_server.errors import ProviderError, ProviderUnavailable, RelayError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class CallbackBody(BaseModel):
    code: str | None = None


def _grant_response(data: dict) -> dict:
    return {"accessToken": data["access_token"], "expiresIn": data.get("expires_in", 3600)}


@router.get("/login")
def login():
    """Provider authorization URL (profile, email, top items scopes)."""
    return {"authUrl": provider.build_authorize_url()}


@router.post("/callback")
def callback(response: Response, body: CallbackBody | None = None):
    """
    Exchange the authorization code for tokens. Access token goes back in the body;
    refresh token goes into the cookie. No cookie on any failure.
    """
    code = (body.code if body else None) or ""
    code = code.strip()
    if not code:
        logger.warning("callback without authorization code")
        raise RelayError(400, "No authorization code provided")

    logger.info("Received authorization code: %s...", code[:10])
    try:
        data = provider.exchange_code(code)
    except ProviderError as e:
        logger.error("Spotify rejected code exchange: %s", e.error)
        raise RelayError(400, "Authorization failed", e.detail)
    except ProviderUnavailable as e:
        logger.error("Code exchange failed, Spotify unreachable: %s", e)
        raise RelayError(502, "Authorization failed", str(e))

    if not data.get("access_token"):
        raise RelayError(400, "Authorization failed", "Spotify response had no access token")

    logger.info(
        "Token exchange successful (expires_in=%s, refresh token received: %s)",
        data.get("expires_in"),
        "yes" if data.get("refresh_token") else "no",
    )
    if data.get("refresh_token"):
        set_refresh_cookie(response, data["refresh_token"])
    return _grant_response(data)


@router.post("/refresh-token")
def refresh_token(request: Request, response: Response):
    """New access token from the refresh cookie. Re-issues the cookie if Spotify rotated it."""
    current = request.cookies.get(REFRESH_COOKIE_NAME)
    if not current:
        raise RelayError(401, "No refresh token")

    try:
        data = provider.refresh_access_token(current)
    except ProviderError as e:
        logger.error("Spotify rejected refresh token: %s", e.error)
        raise RelayError(400, "Failed to refresh token", e.detail)
    except ProviderUnavailable as e:
        logger.error("Refresh failed, Spotify unreachable: %s", e)
        raise RelayError(502, "Failed to refresh token", str(e))

    if not data.get("access_token"):
        raise RelayError(400, "Failed to refresh token", "Spotify response had no access token")

    rotated = data.get("refresh_token")
    if rotated and rotated != current:
        set_refresh_cookie(response, rotated)
        logger.info("Refresh token rotated by provider")
    return _grant_response(data)


@router.post("/logout")
def logout(response: Response):
    """Clear the refresh cookie. Idempotent: succeeds whether or not a cookie was sent."""
    clear_refresh_cookie(response)
    return {"success": True, "message": "Successfully logged out"}
