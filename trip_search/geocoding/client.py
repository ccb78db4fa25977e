"""
Place index (Pelias) client: strict single-match search and autocomplete suggestions.
Both queries are biased to Skåne (region boundary) and focused on Lund.
"""
import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from trip_search.errors import NetworkError, SchemaError, ValidationError
from trip_search.geocoding.models import AutocompleteResponse, Point, SearchResponse, Suggestion

logger = logging.getLogger(__name__)

PELIAS_BASE = "https://pelias.example.org/v1"
GEOCODE_REQUEST_TIMEOUT_SECONDS = 10.0
SUGGEST_SIZE = 5
SEARCH_LAYERS = "venue,address"
# Keep searches inside Skåne, ranked around Lund
BOUNDARY_GID = "whosonfirst:region:85688377"
FOCUS_POINT_LAT = 55.7029296
FOCUS_POINT_LON = 13.1929449


def _region_params(text: str, size: int) -> dict[str, Any]:
    return {
        "text": text,
        "layers": SEARCH_LAYERS,
        "size": str(size),
        "boundary.gid": BOUNDARY_GID,
        "focus.point.lat": str(FOCUS_POINT_LAT),
        "focus.point.lon": str(FOCUS_POINT_LON),
    }


def point_from_search_response(text: str, raw: dict[str, Any]) -> Point:
    """
    Validate a /search body and build the Point for `text`.
    Raises SchemaError if required fields are missing, ValidationError unless exactly one feature matched.
    """
    try:
        parsed = SearchResponse.model_validate(raw)
    except PydanticValidationError as e:
        raise SchemaError(f"Malformed place index response for {text!r}") from e
    if len(parsed.features) != 1:
        raise ValidationError([text])
    lon, lat = parsed.features[0].geometry.coordinates[:2]
    return Point(lat=lat, lon=lon, label=text)


def suggestions_from_autocomplete_response(raw: dict[str, Any]) -> list[Suggestion]:
    try:
        parsed = AutocompleteResponse.model_validate(raw)
    except PydanticValidationError as e:
        raise SchemaError("Malformed place index autocomplete response") from e
    return [
        Suggestion(id=f.properties.id, display_name=f.display_name)
        for f in parsed.features[:SUGGEST_SIZE]
    ]


class GeocodeClient:
    """Async client for the place index used to resolve origin and destination text."""

    def __init__(
        self,
        base_url: str = PELIAS_BASE,
        accept_language: str = "sv",
        timeout: float | None = GEOCODE_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base = base_url.rstrip("/")
        self._headers = {"Accept-Language": accept_language, "Accept": "application/json"}
        self._timeout = timeout
        self._transport = transport

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base}/{path}"
        resp: httpx.Response | None = None
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers=self._headers, transport=self._transport
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            raise NetworkError(f"Place index request failed: {e}", response=resp) from e
        except ValueError as e:
            raise SchemaError("Place index returned invalid JSON", response=resp) from e

    async def search(self, text: str) -> Point:
        """
        Resolve `text` to exactly one point.
        Raises ValidationError on zero or ambiguous matches, NetworkError on transport or non-2xx failure.
        """
        try:
            raw = await self._get("search", _region_params(text, 1))
            point = point_from_search_response(text, raw)
        except NetworkError as e:
            logger.warning(
                "telemetry geocode_search_error text=%s status=%s error=%s",
                text[:80],
                e.status_code,
                str(e),
                extra={"text": text[:80], "status": e.status_code},
            )
            raise
        logger.info("telemetry geocode_search_resolved text=%s", text[:80], extra={"text": text[:80]})
        return point

    async def suggest(self, text: str) -> list[Suggestion]:
        """
        Up to five ranked suggestions for `text`. Empty input makes no request.
        Failures are logged and yield no suggestions.
        """
        if not text.strip():
            return []
        try:
            raw = await self._get("autocomplete", _region_params(text, SUGGEST_SIZE))
            return suggestions_from_autocomplete_response(raw)
        except NetworkError as e:
            logger.warning(
                "telemetry geocode_suggest_error text=%s error=%s",
                text[:80],
                str(e),
                extra={"text": text[:80], "error": str(e)},
            )
            return []
