"""
Nominatim (OpenStreetMap) geocoding.

Nominatim usage policy requires a User-Agent with contact info and a low request
rate, so results are cached in Redis and the public proxy is rate limited.
"""

import logging
from typing import Optional

import httpx

from .. import config
from ..cache import cache

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 8.0


class GeocodingError(Exception):
    """The geocoding provider returned an error or an unreadable response"""


def _headers() -> dict:
    return {
        "User-Agent": config.NOMINATIM_USER_AGENT,
        "Accept": "application/json",
        "Accept-Language": "en",
    }


async def _search(params: dict) -> list[dict]:
    url = f"{config.NOMINATIM_BASE_URL}/search"
    async with httpx.AsyncClient(timeout=TIMEOUT_SECONDS) as client:
        resp = await client.get(url, params=params, headers=_headers())
    if resp.status_code >= 400:
        logger.warning(f"Nominatim error {resp.status_code}: {resp.text[:200]}")
        raise GeocodingError(f"Nominatim returned {resp.status_code}")
    data = resp.json()
    if not isinstance(data, list):
        raise GeocodingError("Unexpected Nominatim response")
    return data


async def geocode_suburb(name: str) -> Optional[tuple[float, float]]:
    """
    Resolve a suburb name to (lat, lng).

    Returns None when the name is blank, nothing matches, or the provider fails.
    """
    name = (name or "").strip()
    if not name:
        return None

    cache_key = f"geo:suburb:{name.lower()}"
    cached = cache.get(cache_key)
    if cached:
        return cached[0], cached[1]

    query = f"{name}, {config.GEOCODE_COUNTRY_SUFFIX}" if config.GEOCODE_COUNTRY_SUFFIX else name
    params = {"q": query, "format": "json", "limit": "1"}
    if config.GEOCODE_COUNTRY_CODES:
        params["countrycodes"] = config.GEOCODE_COUNTRY_CODES

    try:
        results = await _search(params)
        if not results:
            logger.info(f"No geocoding match for '{name}'")
            return None
        coords = float(results[0]["lat"]), float(results[0]["lon"])
    except (httpx.HTTPError, GeocodingError, KeyError, ValueError) as e:
        logger.warning(f"Geocoding '{name}' failed: {e}")
        return None

    cache.set(cache_key, list(coords), ttl=config.GEOCODE_CACHE_SECONDS)
    return coords


async def autocomplete(q: str, limit: int = 6) -> list[dict]:
    """
    Place suggestions for a partial query.

    Raises:
        GeocodingError: provider failure (the route maps this to 502)
    """
    q = (q or "").strip()
    if len(q) < 3:
        return []
    limit = max(1, min(int(limit), 10))

    cache_key = f"geo:auto:{config.GEOCODE_COUNTRY_CODES or 'all'}:{limit}:{q.lower()}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    params = {"q": q, "format": "json", "addressdetails": 1, "limit": str(limit), "dedupe": 1}
    if config.GEOCODE_COUNTRY_CODES:
        params["countrycodes"] = config.GEOCODE_COUNTRY_CODES

    try:
        raw = await _search(params)
    except httpx.HTTPError as e:
        raise GeocodingError(str(e)) from e

    results = [
        {"display_name": item["display_name"], "lat": item.get("lat"), "lon": item.get("lon")}
        for item in raw
        if item.get("display_name")
    ]
    cache.set(cache_key, results, ttl=config.GEOCODE_CACHE_SECONDS)
    return results
