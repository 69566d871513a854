"""
Relay configuration. Spotify app credentials come from env; nothing secret in this file.
"""
import os

# Spotify app registration
SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
REDIRECT_URI = os.environ.get("SPOTIFY_REDIRECT_URI", "http://localhost:3000/callback")

# Provider endpoints (overridable for tests / proxies)
ACCOUNTS_URL = os.environ.get("SPOTIFY_ACCOUNTS_URL", "https://accounts.spotify.com").rstrip("/")
API_URL = os.environ.get("SPOTIFY_API_URL", "https://api.spotify.com/v1").rstrip("/")
PROVIDER_TIMEOUT = float(os.environ.get("RELAY_PROVIDER_TIMEOUT", "10"))

# Scopes: read profile, read email, read top items
SCOPES = ["user-read-private", "user-read-email", "user-top-read"]

# Browser origin allowed to call us with credentials
CLIENT_URL = os.environ.get("CLIENT_URL", "http://localhost:3000").rstrip("/")

# Refresh credential cookie. Secure only in production so local http works.
REFRESH_COOKIE_NAME = "refreshToken"
REFRESH_COOKIE_MAX_AGE = 30 * 24 * 60 * 60  # 30 days
ENVIRONMENT = os.environ.get("RELAY_ENV", os.environ.get("NODE_ENV", "development"))
COOKIE_SECURE = ENVIRONMENT == "production"

# Top items query
ITEM_TYPES = ("artists", "tracks")
TIME_RANGES = ("short_term", "medium_term", "long_term")
DEFAULT_TIME_RANGE = "medium_term"
DEFAULT_LIMIT = 20
MAX_LIMIT = 50

# Attribution returned with every collage
SPOTIFY_LOGO_URL = "https://developer.spotify.com/assets/branding-guidelines/logo@2x.png"
ATTRIBUTION_DISCLAIMER = (
    "This collage is generated using Spotify content and is for personal use only. "
    "All content belongs to Spotify."
)

PORT = int(os.environ.get("PORT", "5000"))
