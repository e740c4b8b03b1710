"""
Places search and geocoding client.

Proxies nearby-business search to the Google Places API (v1
``places:searchNearby``) and address lookups to the Geocoding API, and
reshapes their responses into the flat records the map UI consumes.
"""
import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import settings
from .errors import BadRequest, InternalError, UpstreamError
from .schemas import PlacesSearch

logger = logging.getLogger(__name__)

# Semaphore to limit concurrent provider requests (prevents rate limiting)
_SEM: asyncio.Semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_PLACES_REQUESTS)

# Only request the fields we reshape; the provider bills per field set.
PHOTO_REFERENCE = re.compile(r"places/[A-Za-z0-9_-]+/photos/[A-Za-z0-9_-]+")

FIELD_MASK: str = ",".join([
    "places.id",
    "places.displayName",
    "places.formattedAddress",
    "places.location",
    "places.rating",
    "places.userRatingCount",
    "places.priceLevel",
    "places.photos",
    "places.regularOpeningHours",
    "places.internationalPhoneNumber",
    "places.nationalPhoneNumber",
    "places.websiteUri",
    "places.businessStatus",
    "places.primaryType",
    "places.types",
])


def make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.PLACES_API_TIMEOUT)


def require_api_key() -> str:
    if not settings.PLACES_API_KEY:
        raise InternalError("Places API key not configured")
    return settings.PLACES_API_KEY


async def _send(method: str, url: str, **kwargs) -> httpx.Response:
    """
    Send one request to the provider.

    Raises:
        UpstreamError: on a non-2xx status, timeout or connection failure
    """
    try:
        async with _SEM:
            async with make_client() as client:
                r = await client.request(method, url, **kwargs)
                r.raise_for_status()
                return r
    except httpx.HTTPStatusError as e:
        logger.warning("Provider %s returned %s", url, e.response.status_code)
        raise UpstreamError(
            f"Places provider returned {e.response.status_code}",
            details=e.response.text[:500],
        )
    except httpx.HTTPError as e:
        logger.warning("Provider %s unreachable: %s", url, e)
        raise UpstreamError(f"Places provider unreachable: {e.__class__.__name__}")


async def _request(method: str, url: str, **kwargs) -> Dict[str, Any]:
    return (await _send(method, url, **kwargs)).json()


async def fetch_nearby(params: PlacesSearch) -> Dict[str, Any]:
    """
    Fetch businesses around a point from the Places API.

    Args:
        params: Validated search request

    Returns:
        Raw provider payload (``{"places": [...]}``)
    """
    payload: Dict[str, Any] = {
        "locationRestriction": {
            "circle": {
                "center": {"latitude": params.location.lat, "longitude": params.location.lng},
                "radius": params.radius,
            },
        },
        "maxResultCount": params.max_results,
        "rankPreference": "POPULARITY",
    }
    if params.types:
        payload["includedTypes"] = params.types
    headers = {
        "X-Goog-Api-Key": require_api_key(),
        "X-Goog-FieldMask": FIELD_MASK,
    }
    logger.debug("Places search: %s", payload)
    return await _request("POST", settings.PLACES_API_URL, json=payload, headers=headers)


def place_to_business(place: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reshape one provider place into a business record.

    Args:
        place: A single entry of the provider's ``places`` list

    Returns:
        Dict with id, name, address, location, rating, price level, contact
        details, opening hours and photo references
    """
    location = place.get("location") or {}
    hours = place.get("regularOpeningHours") or {}
    price_level = place.get("priceLevel")
    return {
        "id": place.get("id"),
        "name": (place.get("displayName") or {}).get("text", ""),
        "address": place.get("formattedAddress"),
        "location": {"lat": location.get("latitude"), "lng": location.get("longitude")},
        "rating": place.get("rating"),
        "ratingCount": place.get("userRatingCount"),
        "priceLevel": price_level.replace("PRICE_LEVEL_", "") if price_level else None,
        "phone": place.get("internationalPhoneNumber") or place.get("nationalPhoneNumber"),
        "website": place.get("websiteUri"),
        "isOpen": hours.get("openNow"),
        "openingHours": hours.get("weekdayDescriptions"),
        "photos": [photo.get("name") for photo in place.get("photos") or []],
        "businessType": place.get("primaryType"),
        "businessStatus": place.get("businessStatus"),
    }


def filter_businesses(
    businesses: List[Dict[str, Any]],
    min_rating: Optional[float] = None,
    open_now: Optional[bool] = None,
    query: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Filters the provider cannot apply to a nearby search."""
    out = businesses
    if min_rating:
        out = [b for b in out if b.get("rating") and b["rating"] >= min_rating]
    if open_now:
        out = [b for b in out if b.get("isOpen") is True]
    if query:
        q = query.lower()
        out = [
            b for b in out
            if q in (b.get("name") or "").lower() or q in (b.get("address") or "").lower()
        ]
    return out


async def search_places(params: PlacesSearch) -> Dict[str, Any]:
    raw = await fetch_nearby(params)
    businesses = [place_to_business(p) for p in raw.get("places") or []]
    businesses = filter_businesses(businesses, params.min_rating, params.open_now, params.query)
    return {
        "businesses": businesses,
        "totalResults": len(businesses),
        "searchParams": params.model_dump(by_alias=True, exclude_none=True),
    }


def geocode_results(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Reshape a Geocoding API payload.

    Raises:
        BadRequest: when the provider reports anything but ``OK``
    """
    status = payload.get("status")
    if status != "OK":
        raise BadRequest(f"Geocoding failed: {status}")
    results = []
    for result in payload.get("results", []):
        location = (result.get("geometry") or {}).get("location") or {}
        results.append({
            "address": result.get("formatted_address"),
            "location": {"lat": location.get("lat"), "lng": location.get("lng")},
            "placeId": result.get("place_id"),
            "types": result.get("types", []),
        })
    return results


async def geocode_address(address: str) -> List[Dict[str, Any]]:
    params = {"address": address, "key": require_api_key()}
    return geocode_results(await _request("GET", settings.GEOCODE_API_URL, params=params))


async def reverse_geocode(lat: float, lng: float) -> List[Dict[str, Any]]:
    params = {"latlng": f"{lat},{lng}", "key": require_api_key()}
    return geocode_results(await _request("GET", settings.GEOCODE_API_URL, params=params))


async def fetch_photo(reference: str, max_width: int = 400, max_height: int = 400) -> Tuple[bytes, str]:
    """
    Download a place photo by the reference returned in a business record.

    Returns:
        Tuple of (image bytes, content type)

    Raises:
        BadRequest: when the reference is not a places/<id>/photos/<id> name
    """
    if not PHOTO_REFERENCE.fullmatch(reference):
        raise BadRequest("Invalid photo reference")
    params = {"key": require_api_key(), "maxWidthPx": max_width, "maxHeightPx": max_height}
    r = await _send("GET", f"{settings.PLACES_MEDIA_URL}/{reference}/media", params=params)
    return r.content, r.headers.get("content-type", "image/jpeg")
