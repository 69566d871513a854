"""
Client-side auth failures. Every failure is local to its call site; the worst outcome is re-login.
"""


class AuthError(Exception):
    """Base class for session and gateway failures."""


class MissingCredential(AuthError):
    """No access token or no refresh cookie. The user has to log in."""


class ProviderRejection(AuthError):
    """The relay or Spotify explicitly refused the request."""

    def __init__(self, message: str, details: str | None = None, status_code: int | None = None):
        super().__init__(f"{message}: {details}" if details else message)
        self.message = message
        self.details = details
        self.status_code = status_code


class NetworkFailure(AuthError):
    """Transport-level failure or relay 5xx. Assumed transient; session is left alone."""


class MalformedPersistedState(AuthError):
    """Stored session could not be decoded. Treated as no session."""
