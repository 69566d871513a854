"""
Client configuration. Relay location, where session state and cookies live on disk, refresh lead time.
"""
import os
from pathlib import Path

# Relay (backend) base URL
RELAY_URL = os.environ.get("COLLAGE_RELAY_URL", "http://localhost:5000").rstrip("/")

# Durable key-value store for the session (access token, expiry, profile)
STATE_DIR = Path(os.environ.get("COLLAGE_STATE_DIR", str(Path.home() / ".spotify-collage")))
STATE_DB_URL = os.environ.get("COLLAGE_STATE_DB_URL", f"sqlite:///{STATE_DIR / 'session.db'}")

# Cookie jar holding the relay's HTTP-only refresh cookie. Only the gateway client reads it.
COOKIE_PATH = Path(os.environ.get("COLLAGE_COOKIE_PATH", str(STATE_DIR / "cookies.txt")))

# Refresh this many seconds before the access token expires
REFRESH_LEAD_SECONDS = int(os.environ.get("COLLAGE_REFRESH_LEAD_SECONDS", "300"))

HTTP_TIMEOUT = float(os.environ.get("COLLAGE_HTTP_TIMEOUT", "15"))

# Where exported collages are written
OUTPUT_DIR = Path(os.environ.get("COLLAGE_OUTPUT_DIR", "."))

# Grid size -> number of tiles requested from the relay
GRID_SIZES = {"3x3": 9, "4x4": 16, "5x5": 25}
DEFAULT_GRID_SIZE = "3x3"
