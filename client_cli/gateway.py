"""
HTTP client for the relay. Owns the cookie jar, so the refresh credential never reaches
the token store or the session consumer. Relay failures are mapped to client_cli.errors:
401 -> MissingCredential, other 4xx -> ProviderRejection, 5xx/transport -> NetworkFailure.
A 2xx reply we cannot use (not JSON, missing fields) is also a NetworkFailure.
"""
import logging
from dataclasses import dataclass
from http.cookiejar import LoadError, LWPCookieJar
from pathlib import Path

import httpx

from client_cli.config import HTTP_TIMEOUT, RELAY_URL
from client_cli.errors import MissingCredential, NetworkFailure, ProviderRejection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    expires_in: int


def _load_jar(path: Path) -> LWPCookieJar:
    jar = LWPCookieJar(str(path))
    if path.exists():
        try:
            jar.load(ignore_discard=True)
        except (LoadError, OSError) as e:
            logger.warning("Ignoring unreadable cookie jar %s: %s", path, e)
            jar.clear()
    return jar


class RelayClient:
    """
    Async client for the relay's /api routes.
    Pass `client` to reuse an existing httpx.AsyncClient; otherwise one is built with a
    file-backed cookie jar at `cookie_path` (and `transport`, if given).
    """

    def __init__(
        self,
        base_url: str = RELAY_URL,
        cookie_path: Path | None = None,
        timeout: float = HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._jar: LWPCookieJar | None = None
        if client is None:
            if cookie_path is not None:
                cookie_path.parent.mkdir(parents=True, exist_ok=True)
                self._jar = _load_jar(cookie_path)
            client = httpx.AsyncClient(
                base_url=base_url,
                cookies=self._jar,
                timeout=timeout,
                transport=transport,
            )
        self._http = client

    async def aclose(self) -> None:
        await self._http.aclose()

    def _save_cookies(self) -> None:
        if self._jar is not None:
            self._jar.save(ignore_discard=True)

    async def _request(self, method: str, path: str, *, token: str | None = None, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        logger.debug("Making %s request to %s", method, path)
        try:
            r = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise NetworkFailure(f"{method} {path}: {e}") from e

        if r.status_code < 400:
            try:
                body = r.json()
            except ValueError as e:
                raise NetworkFailure(f"{method} {path}: relay sent a non-JSON reply") from e
            if not isinstance(body, dict):
                raise NetworkFailure(f"{method} {path}: relay sent an unexpected reply")
            return body

        try:
            body = r.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("error") or f"HTTP {r.status_code}"
        details = body.get("details")
        logger.debug("Relay error %s on %s: %s", r.status_code, path, message)
        if r.status_code == 401:
            raise MissingCredential(message)
        if r.status_code >= 500:
            raise NetworkFailure(f"{message}: {details}" if details else message)
        raise ProviderRejection(message, details, status_code=r.status_code)

    @staticmethod
    def _grant(data: dict) -> TokenGrant:
        try:
            grant = TokenGrant(access_token=data["accessToken"], expires_in=int(data["expiresIn"]))
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkFailure(f"relay token reply unusable: {e!r}") from e
        if not grant.access_token or grant.expires_in < 0:
            raise NetworkFailure("relay token reply unusable: empty token or negative lifetime")
        return grant

    async def get_auth_url(self) -> str:
        data = await self._request("GET", "/api/login")
        if not data.get("authUrl"):
            raise NetworkFailure("relay login reply had no authUrl")
        return data["authUrl"]

    async def exchange_code(self, code: str) -> TokenGrant:
        """POST /api/callback. The refresh cookie lands in our jar."""
        data = await self._request("POST", "/api/callback", json={"code": code})
        self._save_cookies()
        return self._grant(data)

    async def refresh(self) -> TokenGrant:
        """POST /api/refresh-token using the stored cookie."""
        data = await self._request("POST", "/api/refresh-token")
        self._save_cookies()
        return self._grant(data)

    def forget_credentials(self) -> None:
        """Drop our copy of the refresh cookie, in memory and on disk."""
        self._http.cookies.clear()
        self._save_cookies()

    async def logout(self) -> None:
        try:
            await self._request("POST", "/api/logout")
        finally:
            # even if the relay is unreachable
            self.forget_credentials()

    async def get_user_profile(self, token: str) -> dict:
        if not token:
            raise MissingCredential("No access token provided for user profile fetch")
        return await self._request("GET", "/api/user-profile", token=token)

    async def get_top_items(self, token: str, item_type: str, time_range: str, limit: int = 20) -> dict:
        return await self._request(
            "GET",
            "/api/top-items",
            token=token,
            params={"type": item_type, "timeRange": time_range, "limit": limit},
        )

    async def generate_collage(
        self,
        token: str,
        item_type: str,
        time_range: str,
        limit: int = 20,
        collage_size: str = "3x3",
    ) -> dict:
        return await self._request(
            "POST",
            "/api/generate-collage",
            token=token,
            json={"type": item_type, "timeRange": time_range, "limit": limit, "collageSize": collage_size},
        )
