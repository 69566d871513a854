"""
Collage building: ask the relay for tile data, download the tile images, paste them into a grid.
Pillow does the pixel work; it runs in a worker thread so the event loop (and the refresh timer) keep going.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from io import BytesIO

import httpx
from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from client_cli.auth_session import AuthSession
from client_cli.config import DEFAULT_GRID_SIZE, GRID_SIZES, HTTP_TIMEOUT

logger = logging.getLogger(__name__)

SMALL_CANVAS = 1200  # up to 9 tiles
LARGE_CANVAS = 1600
LABEL_HEIGHT_RATIO = 0.16
BACKGROUND = (0, 0, 0)


@dataclass
class Collage:
    item_type: str
    time_range: str
    collage_size: str
    items: list[dict]
    attribution: dict = field(default_factory=dict)
    image: Image.Image | None = None

    @property
    def file_stem(self) -> str:
        return f"spotify-collage-{self.item_type}-{self.time_range}"


def grid_dimension(collage_size: str) -> int:
    """'4x4' -> 4. Only the sizes in GRID_SIZES are accepted."""
    if collage_size not in GRID_SIZES:
        raise ValueError(f"Unsupported collage size {collage_size!r}; choose one of {', '.join(GRID_SIZES)}")
    return int(collage_size.split("x")[0])


def canvas_size(item_count: int) -> int:
    return SMALL_CANVAS if item_count <= 9 else LARGE_CANVAS


async def _fetch_one(http: httpx.AsyncClient, url: str) -> bytes | None:
    if not url:
        return None
    try:
        r = await http.get(url)
        r.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Tile image %s failed to load: %s", url, e)
        return None
    return r.content


async def fetch_tiles(items: list[dict], http: httpx.AsyncClient) -> list[bytes | None]:
    """Download every tile image concurrently. Failed downloads come back as None."""
    return list(await asyncio.gather(*(_fetch_one(http, item.get("imageUrl", "")) for item in items)))


def _label(item: dict) -> str:
    if item.get("artist"):
        return f"{item.get('name', '')} - {item['artist']}"
    return item.get("name", "")


def render_collage(
    items: list[dict],
    tiles: list[bytes | None],
    collage_size: str,
    show_labels: bool = True,
) -> Image.Image:
    """Square grid on a black canvas. Missing or unreadable tiles stay black."""
    dim = grid_dimension(collage_size)
    side = canvas_size(len(items))
    cell = side // dim
    canvas = Image.new("RGB", (side, side), BACKGROUND)
    draw = ImageDraw.Draw(canvas)

    for index, (item, data) in enumerate(zip(items[: dim * dim], tiles)):
        x, y = (index % dim) * cell, (index // dim) * cell
        if data:
            try:
                with Image.open(BytesIO(data)) as img:
                    tile = ImageOps.fit(img.convert("RGB"), (cell, cell), Image.Resampling.LANCZOS)
                canvas.paste(tile, (x, y))
            except (UnidentifiedImageError, OSError) as e:
                logger.warning("Skipping unreadable tile for %s: %s", item.get("name"), e)
        if show_labels:
            strip = int(cell * LABEL_HEIGHT_RATIO)
            draw.rectangle((x, y + cell - strip, x + cell - 1, y + cell - 1), fill=BACKGROUND)
            draw.text((x + 8, y + cell - strip + 8), _label(item), fill=(255, 255, 255))
    return canvas


async def build_collage(
    auth: AuthSession,
    item_type: str,
    time_range: str,
    collage_size: str = DEFAULT_GRID_SIZE,
    show_labels: bool = True,
    http: httpx.AsyncClient | None = None,
) -> Collage:
    """Relay call -> tile downloads -> rendered grid."""
    grid_dimension(collage_size)
    limit = GRID_SIZES[collage_size]
    data = await auth.gateway.generate_collage(
        auth.require_token(), item_type, time_range, limit=limit, collage_size=collage_size
    )
    items = data.get("images", [])
    collage = Collage(
        item_type=item_type,
        time_range=time_range,
        collage_size=collage_size,
        items=items,
        attribution=data.get("attribution", {}),
    )
    if not items:
        logger.warning("Relay returned no %s for %s", item_type, time_range)
        return collage

    own_http = http is None
    http = http or httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True)
    try:
        tiles = await fetch_tiles(items, http)
    finally:
        if own_http:
            await http.aclose()
    logger.info("Loaded %d/%d tile images", sum(1 for t in tiles if t), len(items))
    collage.image = await asyncio.to_thread(render_collage, items, tiles, collage_size, show_labels)
    return collage
