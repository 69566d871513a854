"""CLI tests: argument parsing and commands run against the in-process relay."""
import asyncio
from unittest.mock import patch

import httpx
import pytest

from client_cli.auth_session import AuthSession
from client_cli.gateway import RelayClient
from client_cli.main import build_parser, run
from client_cli.storage import DurableStore
from client_cli.token_store import TokenStore
from relay_server.main import app

ME = {"id": "u1", "display_name": "Ada", "email": "ada@example.com", "images": []}
TOKEN = {"access_token": "tok_x", "expires_in": 3600, "refresh_token": "rt_1", "token_type": "Bearer"}


def _auth(db_url) -> AuthSession:
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    return AuthSession(TokenStore(DurableStore(db_url)), RelayClient(client=http))


def _run(db_url, *argv) -> int:
    return asyncio.run(run(build_parser().parse_args(list(argv)), auth=_auth(db_url)))


def _log_in(db_url):
    with patch("relay_server.provider.httpx.post", return_value=httpx.Response(200, json=TOKEN)), \
            patch("relay_server.provider.httpx.get", return_value=httpx.Response(200, json=ME)):
        assert _run(db_url, "callback", "abc123") == 0


def test_parser_defaults():
    args = build_parser().parse_args(["collage"])
    assert args.command == "collage"
    assert args.type == "artists"
    assert args.time_range == "medium_term"
    assert args.size == "3x3"
    assert args.no_labels is False


def test_parser_top_limit():
    args = build_parser().parse_args(["top", "--type", "tracks", "--time-range", "long_term", "--limit", "5"])
    assert (args.type, args.time_range, args.limit) == ("tracks", "long_term", 5)


@pytest.mark.parametrize("argv", [[], ["collage", "--size", "7x7"], ["top", "--type", "albums"]])
def test_parser_rejects_bad_arguments(argv):
    with pytest.raises(SystemExit):
        build_parser().parse_args(argv)


def test_status_when_logged_out(db_url, capsys):
    assert _run(db_url, "status") == 1
    assert "Not logged in" in capsys.readouterr().out


def test_login_prints_authorize_url(db_url, capsys):
    assert _run(db_url, "login") == 0
    assert "https://accounts.spotify.com/authorize?" in capsys.readouterr().out


def test_callback_then_status(db_url, capsys):
    _log_in(db_url)
    assert "Successfully logged in as Ada" in capsys.readouterr().out
    assert _run(db_url, "status") == 0
    out = capsys.readouterr().out
    assert "Logged in" in out
    assert "Ada <ada@example.com>" in out


def test_profile_requires_login(db_url, capsys):
    assert _run(db_url, "profile") == 1
    assert "spotify-collage login" in capsys.readouterr().err


def test_top_lists_tracks(db_url, capsys):
    _log_in(db_url)
    capsys.readouterr()
    top = {"items": [{"name": "Song A", "artists": [{"name": "X"}, {"name": "Y"}]}]}
    with patch("relay_server.provider.httpx.get", return_value=httpx.Response(200, json=top)) as mock_get:
        assert _run(db_url, "top", "--type", "tracks", "--limit", "1") == 0
    assert mock_get.call_args.kwargs["params"] == {"time_range": "medium_term", "limit": 1}
    assert " 1. Song A - X, Y" in capsys.readouterr().out


def test_collage_exports_png(db_url, tmp_path, capsys):
    _log_in(db_url)
    capsys.readouterr()
    top = {"items": [{"id": "a1", "name": "Artist 1", "images": [], "external_urls": {}}]}
    with patch("relay_server.provider.httpx.get", return_value=httpx.Response(200, json=top)):
        assert _run(db_url, "collage", "--output-dir", str(tmp_path)) == 0
    assert (tmp_path / "spotify-collage-artists-medium_term.png").exists()
    assert "Collage saved to" in capsys.readouterr().out


def test_refresh_without_cookie_asks_for_login(db_url, capsys):
    _log_in(db_url)
    # each run gets a fresh in-memory cookie jar, so the relay sees no refresh cookie
    assert _run(db_url, "refresh") == 1
    assert "please log in again" in capsys.readouterr().err
    assert _run(db_url, "status") == 1


def test_logout(db_url, capsys):
    _log_in(db_url)
    assert _run(db_url, "logout") == 0
    assert "Successfully logged out" in capsys.readouterr().out
    assert _run(db_url, "status") == 1
