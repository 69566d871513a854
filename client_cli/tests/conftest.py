"""
Pytest configuration for client_cli. State goes to a throwaway directory; the relay app used in
integration tests gets fixed Spotify credentials and non-secure cookies.
"""
import os
import tempfile

import pytest

os.environ["COLLAGE_STATE_DIR"] = tempfile.mkdtemp(prefix="collage-test-")
os.environ["SPOTIFY_CLIENT_ID"] = "test-client-id"
os.environ["SPOTIFY_CLIENT_SECRET"] = "test-client-secret"
os.environ["RELAY_ENV"] = "test"


class FixedClock:
    """Settable clock so expiry math is exact."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'session.db'}"
