"""
Relay error types. Routes raise RelayError; main.py renders it as {"error", "details"}.
"""


class RelayError(Exception):
    """HTTP-facing error with a short message and optional provider detail."""

    def __init__(self, status_code: int, error: str, details: str | None = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class ProviderError(Exception):
    """Spotify answered with an error status (e.g. invalid_grant)."""

    def __init__(self, status_code: int, error: str, description: str | None = None):
        super().__init__(description or error)
        self.status_code = status_code
        self.error = error
        self.description = description

    @property
    def detail(self) -> str:
        return f"Spotify error: {self.error}"


class ProviderUnavailable(Exception):
    """Spotify could not be reached (DNS, connect, timeout)."""
