"""
Map Spotify top-items payloads to collage tiles.
Artists use their own images; tracks use their album art. Widest image wins.
"""
from relay_server.config import ATTRIBUTION_DISCLAIMER, SPOTIFY_LOGO_URL


def best_image_url(images: list[dict] | None) -> str:
    """URL of the widest image, or '' when there are none."""
    if not images:
        return ""
    best = max(images, key=lambda img: img.get("width") or 0)
    return best.get("url") or ""


def to_collage_item(item: dict, item_type: str) -> dict:
    entry = {
        "name": item.get("name", ""),
        "spotifyUrl": (item.get("external_urls") or {}).get("spotify", ""),
        "id": item.get("id", ""),
    }
    if item_type == "tracks":
        artists = item.get("artists") or []
        entry["artist"] = artists[0].get("name", "") if artists else ""
        entry["imageUrl"] = best_image_url((item.get("album") or {}).get("images"))
    else:
        entry["imageUrl"] = best_image_url(item.get("images"))
    return entry


def collage_items(payload: dict, item_type: str) -> list[dict]:
    return [to_collage_item(item, item_type) for item in payload.get("items", [])]


def attribution() -> dict:
    return {"spotifyLogo": SPOTIFY_LOGO_URL, "disclaimer": ATTRIBUTION_DISCLAIMER}
