"""Pydantic request/response models for the trip search session endpoints."""
from datetime import datetime

from pydantic import BaseModel, field_validator

from trip_search.itinerary.decompose import (
    DisplaySegment,
    decompose,
    duration,
    format_clock,
    key_from_leg,
    key_from_route,
)
from trip_search.routing.models import Leg, Route
from trip_search.search.autocomplete import AutocompleteField
from trip_search.search.orchestrator import SearchState


class SearchRequest(BaseModel):
    origin: str
    destination: str
    depart_at: bool = True
    time: datetime | None = None  # defaults to now

    @field_validator("origin", "destination")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Enter both an origin and a destination.")
        return v


class SelectRequest(BaseModel):
    index: int | None = None


class FieldInputRequest(BaseModel):
    text: str = ""


class SuggestionResponse(BaseModel):
    id: str
    display_name: str


class FieldResponse(BaseModel):
    value: str
    suggestions: list[SuggestionResponse]
    open: bool


class LegResponse(BaseModel):
    key: str
    mode: str
    from_name: str | None
    to_name: str | None
    start_time: datetime
    end_time: datetime
    start_clock: str
    end_clock: str
    distance: float
    line: str | None = None  # route short name, transit legs only
    line_desc: str | None = None
    platform: str | None = None


class SegmentResponse(BaseModel):
    mode: str
    label: str
    color: str
    duration: str
    distance: float
    path: list[tuple[float, float]]
    legs: list[LegResponse]


class RouteResponse(BaseModel):
    key: str
    start_clock: str
    end_clock: str
    duration: str
    distance: float
    segments: list[SegmentResponse]


class SearchStateResponse(BaseModel):
    session_id: str
    phase: str
    error_kind: str | None
    error_message: str | None
    routes: list[RouteResponse]
    selected_index: int | None


def _key_str(key: tuple[datetime, float, datetime]) -> str:
    start, distance, end = key
    return f"{start.isoformat()} {distance} {end.isoformat()}"


def leg_response(leg: Leg) -> LegResponse:
    return LegResponse(
        key=_key_str(key_from_leg(leg)),
        mode=leg.mode.value,
        from_name=leg.from_.name,
        to_name=leg.to.name,
        start_time=leg.start.scheduled_time,
        end_time=leg.end.scheduled_time,
        start_clock=format_clock(leg.start.scheduled_time),
        end_clock=format_clock(leg.end.scheduled_time),
        distance=leg.distance,
        line=leg.route.short_name if leg.route else None,
        line_desc=leg.route.desc if leg.route else None,
        platform=leg.from_.stop.platform_code if leg.from_.stop else None,
    )


def segment_response(segment: DisplaySegment) -> SegmentResponse:
    attrs = segment.attributes()
    return SegmentResponse(
        mode=segment.mode,
        label=attrs.label,
        color=attrs.color,
        duration=segment.duration,
        distance=segment.distance,
        path=segment.decoded_path,
        legs=[leg_response(leg) for leg in segment.legs],
    )


def route_response(route: Route) -> RouteResponse:
    return RouteResponse(
        key=_key_str(key_from_route(route)),
        start_clock=format_clock(route[0].start.scheduled_time),
        end_clock=format_clock(route[-1].end.scheduled_time),
        duration=duration(route[0], route[-1]),
        distance=sum(leg.distance for leg in route),
        segments=[segment_response(s) for s in decompose(route)],
    )


def state_response(session_id: str, state: SearchState) -> SearchStateResponse:
    selected_index = None
    if state.selected_route is not None:
        selected_key = key_from_route(state.selected_route)
        selected_index = next(
            (i for i, r in enumerate(state.routes) if key_from_route(r) == selected_key), None
        )
    return SearchStateResponse(
        session_id=session_id,
        phase=state.phase.value,
        error_kind=state.error_kind.value if state.error_kind else None,
        error_message=state.error_message,
        routes=[route_response(r) for r in state.routes],
        selected_index=selected_index,
    )


def field_response(field: AutocompleteField) -> FieldResponse:
    return FieldResponse(
        value=field.value,
        suggestions=[SuggestionResponse(id=s.id, display_name=s.display_name) for s in field.suggestions],
        open=field.open,
    )
