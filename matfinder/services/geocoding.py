"""
Address and zip code geocoding via Nominatim (OpenStreetMap)
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from ..cache import geocode_cache
from ..config import NOMINATIM_BASE_URL, NOMINATIM_USER_AGENT

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Raised when an address cannot be resolved to coordinates"""

    pass


class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    display_name: Optional[str] = None
    country: Optional[str] = None


async def geocode_address(
    address: str, transport: Optional[httpx.AsyncBaseTransport] = None
) -> GeocodeResult:
    """
    Resolve a street address or zip code to coordinates.

    Raises:
        GeocodingError: If the address is empty, unknown or the lookup fails
    """
    query = (address or "").strip()
    if not query:
        raise GeocodingError("Address is required")

    cache_key = query.lower()
    cached = geocode_cache.get(cache_key)
    if cached:
        return GeocodeResult(**cached)

    params = {"q": query, "format": "json", "addressdetails": "1", "limit": "1"}
    headers = {"User-Agent": NOMINATIM_USER_AGENT}

    try:
        async with httpx.AsyncClient(transport=transport) as client:
            resp = await client.get(
                f"{NOMINATIM_BASE_URL}/search", params=params, headers=headers, timeout=10.0
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Nominatim request failed for '{query}': {e}")
        raise GeocodingError("Address lookup service unavailable") from e

    if resp.status_code >= 400:
        logger.warning(f"Nominatim API error {resp.status_code}: {resp.text[:200]}")
        raise GeocodingError("Address lookup service unavailable")

    results = resp.json()
    if not results:
        logger.info(f"🔍 No geocoding match for '{query}'")
        raise GeocodingError(f"Could not find location for '{query}'")

    item = results[0]
    try:
        result = GeocodeResult(
            latitude=float(item["lat"]),
            longitude=float(item["lon"]),
            display_name=item.get("display_name"),
            country=(item.get("address") or {}).get("country"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise GeocodingError("Unexpected geocoding response") from e

    geocode_cache.set(cache_key, result.model_dump())
    logger.info(f"📍 Geocoded '{query}' to ({result.latitude:.5f}, {result.longitude:.5f})")
    return result
