"""
Search lifecycle for one trip-search UI: resolve origin and destination concurrently,
plan, and commit results only if no newer submit has happened meanwhile.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from trip_search.errors import NetworkError, ValidationError
from trip_search.geocoding.models import Point
from trip_search.itinerary.decompose import key_from_route
from trip_search.routing.models import Route

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "A network error has occurred."


class Phase(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    SUCCESS = "success"
    ERROR = "error"


class ErrorKind(str, Enum):
    NETWORK = "network"
    VALIDATION = "validation"


class Geocoder(Protocol):
    async def search(self, text: str) -> Point: ...


class Planner(Protocol):
    async def plan(self, origin: Point, destination: Point, depart_at: bool, time: datetime) -> list[Route]: ...


@dataclass
class SearchState:
    phase: Phase = Phase.IDLE
    routes: list[Route] = field(default_factory=list)
    selected_route: Route | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None


class SearchOrchestrator:
    """Owns SearchState. Last submit wins: stale responses are dropped, not cancelled."""

    def __init__(self, geocoder: Geocoder, planner: Planner):
        self._geocoder = geocoder
        self._planner = planner
        self._generation = 0
        self.state = SearchState()

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, token: int) -> bool:
        if token != self._generation:
            logger.debug(
                "telemetry search_stale_result token=%s current=%s",
                token,
                self._generation,
                extra={"token": token, "current": self._generation},
            )
            return False
        return True

    async def submit(self, origin: str, destination: str, depart_at: bool, time: datetime) -> SearchState:
        """Run one search. Returns the state as it stands when this search finishes (or is superseded)."""
        origin, destination = origin.strip(), destination.strip()
        if not origin or not destination:
            raise ValueError("origin and destination must not be empty")

        self._generation += 1
        token = self._generation
        self.state = SearchState(phase=Phase.SEARCHING)

        # Fire both lookups before awaiting either
        results = await asyncio.gather(
            self._geocoder.search(origin),
            self._geocoder.search(destination),
            return_exceptions=True,
        )
        if not self._is_current(token):
            return self.state

        network = [r for r in results if isinstance(r, NetworkError)]
        if network:
            return self._fail_network(network[0])
        unresolved = [q for r in results if isinstance(r, ValidationError) for q in r.queries]
        if unresolved:
            return self._fail_validation(ValidationError(unresolved))
        for r in results:
            if isinstance(r, BaseException):
                raise r
        origin_point, destination_point = results

        try:
            routes = await self._planner.plan(origin_point, destination_point, depart_at, time)
        except NetworkError as e:
            if not self._is_current(token):
                return self.state
            return self._fail_network(e)
        if not self._is_current(token):
            return self.state

        self.state = SearchState(phase=Phase.SUCCESS, routes=routes)
        logger.info(
            "telemetry search_success generation=%s count=%s",
            token,
            len(routes),
            extra={"generation": token, "count": len(routes)},
        )
        return self.state

    def _fail_network(self, error: NetworkError) -> SearchState:
        logger.warning(
            "telemetry search_network_error status=%s error=%s",
            error.status_code,
            str(error),
            extra={"status": error.status_code},
        )
        self.state = SearchState(
            phase=Phase.ERROR, error_kind=ErrorKind.NETWORK, error_message=NETWORK_ERROR_MESSAGE
        )
        return self.state

    def _fail_validation(self, error: ValidationError) -> SearchState:
        logger.info("telemetry search_validation_error queries=%s", error.queries, extra={"queries": error.queries})
        self.state = SearchState(phase=Phase.ERROR, error_kind=ErrorKind.VALIDATION, error_message=str(error))
        return self.state

    def select_route(self, route: Route | None) -> Route | None:
        """Select `route`, or clear the selection if it is already selected or None. Phase is unchanged."""
        if route is None:
            self.state.selected_route = None
            return None
        if self.state.phase is not Phase.SUCCESS:
            raise ValueError("no search results to select from")
        current = self.state.selected_route
        if current is not None and key_from_route(current) == key_from_route(route):
            self.state.selected_route = None
        else:
            self.state.selected_route = route
        return self.state.selected_route
