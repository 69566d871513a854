"""Tests for the Spotify provider helpers and collage tile mapping."""
from unittest.mock import patch

import httpx
import pytest

from relay_server import provider
from relay_server.collage import best_image_url, collage_items
from relay_server.errors import ProviderError, ProviderUnavailable


def test_build_authorize_url_with_state():
    url = provider.build_authorize_url(state="xyz")
    assert url.startswith("https://accounts.spotify.com/authorize?")
    assert "state=xyz" in url
    assert "redirect_uri=http%3A%2F%2Flocalhost%3A3000%2Fcallback" in url


def test_build_authorize_url_without_state():
    assert "state=" not in provider.build_authorize_url()


def test_exchange_code_accounts_error():
    resp = httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid authorization code"})
    with patch("relay_server.provider.httpx.post", return_value=resp):
        with pytest.raises(ProviderError) as exc:
            provider.exchange_code("bad")
    assert exc.value.status_code == 400
    assert exc.value.error == "invalid_grant"
    assert exc.value.description == "Invalid authorization code"
    assert exc.value.detail == "Spotify error: invalid_grant"


def test_api_error_without_json_body():
    resp = httpx.Response(503, text="upstream unavailable")
    with patch("relay_server.provider.httpx.get", return_value=resp):
        with pytest.raises(ProviderError) as exc:
            provider.get_me("tok")
    assert exc.value.status_code == 503
    assert exc.value.error == "Service Unavailable"


def test_transport_error_is_unavailable():
    with patch("relay_server.provider.httpx.get", side_effect=httpx.ConnectError("dns failure")):
        with pytest.raises(ProviderUnavailable):
            provider.get_top_items("tok", "artists", "medium_term", 5)


def test_best_image_url_picks_widest():
    images = [
        {"url": "https://i/300.jpg", "width": 300},
        {"url": "https://i/640.jpg", "width": 640},
        {"url": "https://i/none.jpg", "width": None},
    ]
    assert best_image_url(images) == "https://i/640.jpg"
    assert best_image_url([]) == ""
    assert best_image_url(None) == ""


def test_collage_items_track_without_artists():
    payload = {"items": [{"id": "t", "name": "Solo", "artists": [], "album": {}, "external_urls": {}}]}
    items = collage_items(payload, "tracks")
    assert items == [{"name": "Solo", "spotifyUrl": "", "id": "t", "artist": "", "imageUrl": ""}]


@pytest.mark.parametrize("resp", [httpx.Response(200, text="not json"), httpx.Response(200, json=["a", "b"])])
def test_success_reply_must_be_json_object(resp):
    with patch("relay_server.provider.httpx.get", return_value=resp):
        with pytest.raises(ProviderError) as exc:
            provider.get_me("tok")
    assert exc.value.error == "invalid_response"
