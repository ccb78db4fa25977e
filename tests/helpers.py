"""Builders for raw OTP legs and parsed routes used across tests."""
from datetime import datetime, timedelta, timezone

import polyline

from trip_search.routing.models import Leg

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone(timedelta(hours=1)))

LUND_C = (55.7056, 13.1870)
MALMO_C = (55.6095, 13.0007)


def raw_leg(
    mode: str,
    start_min: float,
    end_min: float,
    distance: float = 100.0,
    points: list[tuple[float, float]] | None = None,
    short_name: str | None = None,
) -> dict:
    points = points or [LUND_C, MALMO_C]
    leg = {
        "id": f"{mode}-{start_min}",
        "mode": mode,
        "from": {"name": "A", "lat": points[0][0], "lon": points[0][1], "stop": None},
        "to": {"name": "B", "lat": points[-1][0], "lon": points[-1][1], "stop": {"platformCode": "3", "vehicleMode": mode}},
        "start": {"scheduledTime": (T0 + timedelta(minutes=start_min)).isoformat()},
        "end": {"scheduledTime": (T0 + timedelta(minutes=end_min)).isoformat()},
        "distance": distance,
        "legGeometry": {"points": polyline.encode(points)},
        "route": None,
    }
    if mode != "WALK":
        leg["route"] = {"desc": f"{mode.title()} line", "shortName": short_name or "1"}
    return leg


def leg(mode: str, start_min: float, end_min: float, **kwargs) -> Leg:
    return Leg.model_validate(raw_leg(mode, start_min, end_min, **kwargs))


def plan_body(*routes: list[dict]) -> dict:
    return {"data": {"planConnection": {"edges": [{"node": {"legs": list(r)}} for r in routes]}}}


def search_body(text: str, *coords: tuple[float, float]) -> dict:
    """Pelias /search body; coords given as (lat, lon), emitted as [lon, lat]."""
    return {
        "features": [{"geometry": {"coordinates": [lon, lat]}} for lat, lon in coords],
        "geocoding": {"query": {"text": text}},
    }
