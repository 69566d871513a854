"""Tests for collage rendering and the ordered export fallbacks."""
import asyncio
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image

from client_cli.collage import Collage, build_collage, canvas_size, fetch_tiles, grid_dimension, render_collage
from client_cli.errors import MissingCredential
from client_cli.export import (
    DEFAULT_STRATEGIES,
    ExportStrategy,
    ExportUnavailable,
    export_collage,
    run_strategy,
)


def _png(color=(200, 30, 30), size=(64, 64)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def _close(pixel, expected, tolerance=2):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))


def _items(n, with_artist=False):
    items = []
    for i in range(n):
        item = {
            "name": f"Item {i}",
            "spotifyUrl": f"https://open.spotify.com/track/{i}",
            "id": str(i),
            "imageUrl": f"https://img.test/{i}.png",
        }
        if with_artist:
            item["artist"] = f"Artist {i}"
        items.append(item)
    return items


@pytest.mark.parametrize("size,dim", [("3x3", 3), ("4x4", 4), ("5x5", 5)])
def test_grid_dimension(size, dim):
    assert grid_dimension(size) == dim


@pytest.mark.parametrize("size", ["2x2", "6x6", "big", ""])
def test_grid_dimension_rejects_unknown(size):
    with pytest.raises(ValueError):
        grid_dimension(size)


def test_canvas_size():
    assert canvas_size(9) == 1200
    assert canvas_size(10) == 1600
    assert canvas_size(25) == 1600


def test_render_places_tiles_and_leaves_bad_ones_black():
    items = _items(9)
    tiles = [_png() for _ in range(7)] + [None, b"not an image"]
    image = render_collage(items, tiles, "3x3", show_labels=False)
    assert image.size == (1200, 1200)
    assert _close(image.getpixel((10, 10)), (200, 30, 30))
    # 8th and 9th cells (bottom row, middle and right) stay black
    assert image.getpixel((600, 1000)) == (0, 0, 0)
    assert image.getpixel((1000, 1000)) == (0, 0, 0)


def test_render_labels_draw_a_strip():
    items = _items(1, with_artist=True)
    image = render_collage(items, [_png(color=(255, 255, 255))], "3x3", show_labels=True)
    # top of the tile untouched, bottom strip painted black behind the label
    assert _close(image.getpixel((200, 10)), (255, 255, 255))
    assert image.getpixel((390, 395)) == (0, 0, 0)


def test_fetch_tiles_tolerates_failures():
    good = _png()

    def handler(request):
        if request.url.path == "/0.png":
            return httpx.Response(200, content=good)
        return httpx.Response(404)

    async def scenario():
        items = _items(2) + [{"name": "no art", "imageUrl": ""}]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await fetch_tiles(items, http)

    assert asyncio.run(scenario()) == [good, None, None]


class FakeGateway:
    def __init__(self, response):
        self.response = response
        self.calls = []

    async def generate_collage(self, token, item_type, time_range, limit=20, collage_size="3x3"):
        self.calls.append((token, item_type, time_range, limit, collage_size))
        return self.response


class FakeAuth:
    def __init__(self, gateway, token="tok_x"):
        self.gateway = gateway
        self.token = token

    def require_token(self):
        if not self.token:
            raise MissingCredential("Not logged in")
        return self.token


def test_build_collage_requests_grid_sized_limit():
    items = _items(16)
    gateway = FakeGateway({"success": True, "images": items, "attribution": {"disclaimer": "Data from Spotify"}})

    def handler(request):
        return httpx.Response(200, content=_png())

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await build_collage(FakeAuth(gateway), "tracks", "short_term", collage_size="4x4", http=http)

    collage = asyncio.run(scenario())
    assert gateway.calls == [("tok_x", "tracks", "short_term", 16, "4x4")]
    assert collage.image.size == (1600, 1600)
    assert collage.attribution["disclaimer"] == "Data from Spotify"
    assert collage.file_stem == "spotify-collage-tracks-short_term"


def test_build_collage_with_no_items_skips_render():
    gateway = FakeGateway({"success": True, "images": [], "attribution": {}})
    collage = asyncio.run(build_collage(FakeAuth(gateway), "artists", "long_term"))
    assert collage.items == []
    assert collage.image is None


def test_build_collage_requires_login():
    gateway = FakeGateway({})
    with pytest.raises(MissingCredential):
        asyncio.run(build_collage(FakeAuth(gateway, token=None), "artists", "long_term"))
    assert gateway.calls == []


def _collage(image=True, items=None):
    return Collage(
        item_type="artists",
        time_range="medium_term",
        collage_size="3x3",
        items=_items(9) if items is None else items,
        attribution={"spotifyLogo": "https://logo.test/spotify.png", "disclaimer": "Data from Spotify"},
        image=Image.new("RGB", (1200, 1200)) if image else None,
    )


def test_export_stops_at_first_success(tmp_path):
    report = export_collage(_collage(), tmp_path)
    assert [a.strategy for a in report.attempts] == ["png"]
    result = report.result
    assert result.success
    assert result.path == tmp_path / "spotify-collage-artists-medium_term.png"
    with Image.open(result.path) as img:
        assert img.format == "PNG"


def test_export_without_image_falls_back_to_html(tmp_path):
    report = export_collage(_collage(image=False), tmp_path)
    assert [(a.strategy, a.success) for a in report.attempts] == [("png", False), ("jpeg", False), ("html", True)]
    page = report.result.path.read_text(encoding="utf-8")
    assert "repeat(3, 1fr)" in page
    assert "https://open.spotify.com/track/0" in page
    assert "Data from Spotify" in page
    assert not (tmp_path / "spotify-collage-artists-medium_term.png").exists()


def test_html_escapes_item_text(tmp_path):
    items = [{"name": "<script>", "artist": "A & B", "spotifyUrl": "https://x", "imageUrl": ""}]
    report = export_collage(_collage(image=False, items=items), tmp_path)
    page = report.result.path.read_text(encoding="utf-8")
    assert "<script>" not in page
    assert "&lt;script&gt;" in page
    assert "A &amp; B" in page


def test_all_strategies_failing_reports_every_attempt(tmp_path):
    report = export_collage(_collage(image=False, items=[]), tmp_path)
    assert report.result is None
    assert len(report.attempts) == len(DEFAULT_STRATEGIES)
    assert all(not a.success and a.error for a in report.attempts)


def test_failed_strategy_removes_partial_file(tmp_path):
    def half_write(collage, path: Path):
        path.write_text("partial")
        raise OSError("disk full")

    result = run_strategy(ExportStrategy("broken", ".bin", half_write), _collage(), tmp_path)
    assert not result.success
    assert result.error == "disk full"
    assert not (tmp_path / "spotify-collage-artists-medium_term.bin").exists()


def test_unavailable_strategy_is_a_failed_attempt(tmp_path):
    def unavailable(collage, path):
        raise ExportUnavailable("nope")

    strategies = (ExportStrategy("first", ".a", unavailable), DEFAULT_STRATEGIES[0])
    report = export_collage(_collage(), tmp_path, strategies=strategies)
    assert [(a.strategy, a.success) for a in report.attempts] == [("first", False), ("png", True)]
