"""
Routing backend client: one GraphQL planConnection query per search, 24h search window.
"""
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from trip_search.errors import NetworkError, SchemaError
from trip_search.geocoding.models import Point
from trip_search.routing.models import PlanConnectionResponse, Route

logger = logging.getLogger(__name__)

OTP_URL = "https://otp.example.org/otp/gtfs/v1"
PLAN_REQUEST_TIMEOUT_SECONDS = 30.0
SEARCH_WINDOW = "24h"

TRIP_QUERY = """
query Trip(
  $origin: PlanLabeledLocationInput!
  $destination: PlanLabeledLocationInput!
  $time: PlanDateTimeInput!
) {
  planConnection(
    origin: $origin
    destination: $destination
    searchWindow: "%s"
    dateTime: $time
  ) {
    edges {
      node {
        legs {
          id
          mode
          distance
          legGeometry { points }
          start { scheduledTime }
          end { scheduledTime }
          from { name lat lon stop { platformCode vehicleMode } }
          to { name lat lon stop { platformCode vehicleMode } }
          route { desc shortName }
        }
      }
    }
  }
}
""" % SEARCH_WINDOW


def _location(point: Point) -> dict[str, Any]:
    return {
        "label": point.label,
        "location": {"coordinate": {"latitude": point.lat, "longitude": point.lon}},
    }


def build_plan_variables(origin: Point, destination: Point, depart_at: bool, time: datetime) -> dict[str, Any]:
    """GraphQL variables. Naive `time` is taken as local wall-clock time; sent as UTC ISO 8601."""
    iso = time.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return {
        "origin": _location(origin),
        "destination": _location(destination),
        "time": {"earliestDeparture" if depart_at else "latestArrival": iso},
    }


def routes_from_plan_response(raw: dict[str, Any]) -> list[Route]:
    try:
        return PlanConnectionResponse.model_validate(raw).routes()
    except PydanticValidationError as e:
        raise SchemaError("Malformed planConnection response") from e


class ItineraryClient:
    """Async client for the OpenTripPlanner GraphQL endpoint."""

    def __init__(
        self,
        url: str = OTP_URL,
        accept_language: str = "sv",
        timeout: float | None = PLAN_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._headers = {
            "Accept-Language": accept_language,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._timeout = timeout
        self._transport = transport

    async def plan(self, origin: Point, destination: Point, depart_at: bool, time: datetime) -> list[Route]:
        """
        Candidate itineraries between two points. An empty list means no itinerary exists.
        Raises NetworkError (with the raw response) on transport failure or non-2xx.
        """
        body = {"query": TRIP_QUERY, "variables": build_plan_variables(origin, destination, depart_at, time)}
        resp: httpx.Response | None = None
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers=self._headers, transport=self._transport
            ) as client:
                resp = await client.post(self._url, json=body)
                resp.raise_for_status()
                data = resp.json()
            routes = routes_from_plan_response(data)
        except httpx.HTTPError as e:
            logger.warning(
                "telemetry plan_error status=%s error=%s",
                resp.status_code if resp is not None else None,
                str(e),
                extra={"status": resp.status_code if resp is not None else None},
            )
            raise NetworkError(f"Routing request failed: {e}", response=resp) from e
        except SchemaError as e:
            e.response = resp
            logger.warning("telemetry plan_schema_error error=%s", str(e.__cause__ or e))
            raise
        except ValueError as e:
            logger.warning("telemetry plan_schema_error error=%s", str(e))
            raise SchemaError("Routing backend returned invalid JSON", response=resp) from e
        logger.info(
            "telemetry plan_fetched depart_at=%s count=%s",
            depart_at,
            len(routes),
            extra={"depart_at": depart_at, "count": len(routes)},
        )
        return routes
