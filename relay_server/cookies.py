"""
Refresh credential cookie. HTTP-only, SameSite=Lax, 30-day lifetime; Secure in production.
"""
from fastapi import Response

from relay_server.config import COOKIE_SECURE, REFRESH_COOKIE_MAX_AGE, REFRESH_COOKIE_NAME


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=REFRESH_COOKIE_MAX_AGE,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def clear_refresh_cookie(response: Response) -> None:
    # Must match the attributes used when setting, or browsers keep the old cookie
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
