"""
Proxied Spotify data routes: user profile, top items, collage tile data.
Query parameters are validated before the bearer token, so bad input is 400 whatever the token.
"""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from relay_server import provider
from relay_server.auth import Credentials, get_bearer_token, require_token
from relay_server.collage import attribution, collage_items
from relay_server.config import DEFAULT_LIMIT, DEFAULT_TIME_RANGE, ITEM_TYPES, MAX_LIMIT, TIME_RANGES
from relay_server.errors import ProviderError, ProviderUnavailable, RelayError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class CollageBody(BaseModel):
    type: str | None = None
    timeRange: str | None = None
    limit: int | None = None
    collageSize: str | None = None


def validate_top_query(item_type: str | None, time_range: str | None, limit: int | None) -> tuple[str, str, int]:
    """Normalize (type, timeRange, limit) with defaults; raise 400 on anything Spotify would reject."""
    if not item_type or item_type not in ITEM_TYPES:
        raise RelayError(400, "Invalid type parameter. Must be 'artists' or 'tracks'")
    time_range = time_range or DEFAULT_TIME_RANGE
    if time_range not in TIME_RANGES:
        raise RelayError(400, f"Invalid timeRange parameter. Must be one of: {', '.join(TIME_RANGES)}")
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit < 1 or limit > MAX_LIMIT:
        raise RelayError(400, f"Invalid limit parameter. Must be between 1 and {MAX_LIMIT}")
    return item_type, time_range, limit


def _fetch_top(access_token: str, item_type: str, time_range: str, limit: int, error: str) -> dict:
    try:
        data = provider.get_top_items(access_token, item_type, time_range, limit)
    except ProviderError as e:
        logger.error("%s: %s", error, e.error)
        raise RelayError(400, error, e.detail)
    except ProviderUnavailable as e:
        logger.error("%s, Spotify unreachable: %s", error, e)
        raise RelayError(502, error, str(e))
    logger.info("Fetched %d top %s", len(data.get("items", [])), item_type)
    return data


@router.get("/user-profile")
def user_profile(access_token: str = Depends(get_bearer_token)):
    """Spotify /me for the caller's token."""
    try:
        data = provider.get_me(access_token)
    except ProviderError as e:
        logger.error("Failed to fetch user profile: %s", e.error)
        raise RelayError(400, "Failed to fetch user profile", e.detail)
    except ProviderUnavailable as e:
        raise RelayError(502, "Failed to fetch user profile", str(e))
    logger.info("User profile fetched: %s", data.get("display_name"))
    return data


@router.get("/top-items")
def top_items(
    credentials: Credentials,
    type: str | None = None,
    timeRange: str | None = None,
    limit: int | None = None,
):
    """Raw Spotify top artists/tracks payload."""
    item_type, time_range, limit = validate_top_query(type, timeRange, limit)
    access_token = require_token(credentials)
    logger.info("Fetching top %s, time range: %s, limit: %s", item_type, time_range, limit)
    return _fetch_top(access_token, item_type, time_range, limit, f"Failed to fetch top {item_type}")


@router.post("/generate-collage")
def generate_collage(credentials: Credentials, body: CollageBody | None = None):
    """Top items reduced to collage tiles (name, image, link) plus Spotify attribution."""
    body = body or CollageBody()
    item_type, time_range, limit = validate_top_query(body.type, body.timeRange, body.limit)
    access_token = require_token(credentials)
    logger.info(
        "Generating collage for %s, time range: %s, limit: %s, size: %s",
        item_type,
        time_range,
        limit,
        body.collageSize,
    )
    data = _fetch_top(access_token, item_type, time_range, limit, "Failed to generate collage")
    return {
        "success": True,
        "images": collage_items(data, item_type),
        "collageSize": body.collageSize,
        "type": item_type,
        "timeRange": time_range,
        "attribution": attribution(),
    }
