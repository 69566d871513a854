"""
Bearer token extraction for the proxied Spotify endpoints.
The relay does not validate access tokens itself; Spotify does. We only require one to be present.
"""
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from relay_server.errors import RelayError

security = HTTPBearer(auto_error=False)

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(security)]


def require_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    """Access token from 'Authorization: Bearer ...'. Raises 401 if missing."""
    if credentials is None or not credentials.credentials:
        raise RelayError(401, "No access token provided")
    return credentials.credentials


def get_bearer_token(credentials: Credentials) -> str:
    """Dependency form of require_token for routes with nothing to validate first."""
    return require_token(credentials)
