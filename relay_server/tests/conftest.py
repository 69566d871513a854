"""
Pytest configuration for relay_server. Fixed Spotify app credentials so tests never need real ones.
"""
import os

os.environ["SPOTIFY_CLIENT_ID"] = "test-client-id"
os.environ["SPOTIFY_CLIENT_SECRET"] = "test-client-secret"
os.environ["SPOTIFY_REDIRECT_URI"] = "http://localhost:3000/callback"
# Non-secure cookie so TestClient (http://testserver) sends it back
os.environ["RELAY_ENV"] = "test"
