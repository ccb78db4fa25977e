"""
Itinerary decomposition: a flat, ordered leg list -> display segments.

The first and last legs get their own segment when they are walks; everything
between them (connector walks included) forms a single transit group.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Mapping, Sequence

import polyline

from trip_search.itinerary.display import DEFAULT_DISPLAY, TRANSIT_GROUP, DisplayAttributes, display_attributes
from trip_search.routing.models import Leg, Mode, Route

LatLon = tuple[float, float]
Decoder = Callable[[str], list[LatLon]]

RouteKey = tuple[datetime, float, datetime]
LegKey = tuple[datetime, float, datetime]


@dataclass(frozen=True)
class DisplaySegment:
    mode: str  # a Mode value or TRANSIT_GROUP
    legs: tuple[Leg, ...]
    leg_paths: tuple[tuple[LatLon, ...], ...] = field(repr=False)

    @property
    def decoded_path(self) -> list[LatLon]:
        return [p for path in self.leg_paths for p in path]

    @property
    def duration(self) -> str:
        return duration(self.legs[0], self.legs[-1])

    @property
    def distance(self) -> float:
        return sum(leg.distance for leg in self.legs)

    def attributes(self, table: Mapping[str, DisplayAttributes] = DEFAULT_DISPLAY) -> DisplayAttributes:
        return display_attributes(self.mode, table)


def _segment(legs: Sequence[Leg], mode: str, decode: Decoder) -> DisplaySegment:
    paths = tuple(tuple(tuple(p) for p in decode(leg.leg_geometry.points)) for leg in legs)
    return DisplaySegment(mode=mode, legs=tuple(legs), leg_paths=paths)


def decompose(route: Route, decode: Decoder = polyline.decode) -> list[DisplaySegment]:
    """Split a route into leading walk, transit group, trailing walk. Raises ValueError on an empty route."""
    if not route:
        raise ValueError("cannot decompose an empty route")
    if len(route) == 1:
        return [_segment(route, route[0].mode.value, decode)]

    start = 1 if route[0].mode is Mode.WALK else 0
    stop = len(route) - 1 if route[-1].mode is Mode.WALK else len(route)

    segments: list[DisplaySegment] = []
    if start:
        segments.append(_segment(route[:1], Mode.WALK.value, decode))
    middle = route[start:stop]
    if len(middle) == 1:
        segments.append(_segment(middle, middle[0].mode.value, decode))
    elif middle:
        segments.append(_segment(middle, TRANSIT_GROUP, decode))
    if stop < len(route):
        segments.append(_segment(route[-1:], Mode.WALK.value, decode))
    return segments


def duration(first: Leg, last: Leg) -> str:
    """
    Human duration from first.start to last.end, e.g. "1 hr, 30 min" or "1 d, 1 hr".
    Whole units (floored); zero units dropped; seconds only when the minute part is zero; 0 -> "".
    """
    total = max(0, int((last.end.scheduled_time - first.start.scheduled_time).total_seconds()))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    parts = [f"{value} {unit}" for value, unit in ((days, "d"), (hours, "hr"), (minutes, "min")) if value]
    if seconds and not minutes:
        parts.append(f"{seconds} s")
    return ", ".join(parts)


def key_from_route(route: Route) -> RouteKey:
    """List key for a route. Distinct routes with equal start, total distance and end collide."""
    return (
        route[0].start.scheduled_time,
        sum(leg.distance for leg in route),
        route[-1].end.scheduled_time,
    )


def key_from_leg(leg: Leg) -> LegKey:
    return (leg.start.scheduled_time, leg.distance, leg.end.scheduled_time)


def route_points(route: Route | None, decode: Decoder = polyline.decode) -> list[LatLon]:
    """Whole-route geometry for map bounds."""
    if not route:
        return []
    points: list[LatLon] = []
    for leg in route:
        points.extend(tuple(p) for p in decode(leg.leg_geometry.points))
    return points


def format_clock(ts: datetime) -> str:
    return ts.strftime("%H:%M")
