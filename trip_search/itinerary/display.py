"""Mode -> display attributes used when rendering segments and map polylines."""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from trip_search.routing.models import Mode

TRANSIT_GROUP = "TRANSIT_GROUP"


@dataclass(frozen=True)
class DisplayAttributes:
    label: str
    color: str  # CSS hex


_FALLBACK = DisplayAttributes(label="Transit", color="#6b7280")

DEFAULT_DISPLAY: Mapping[str, DisplayAttributes] = MappingProxyType({
    Mode.WALK.value: DisplayAttributes("Walk", "#9ca3af"),
    Mode.BUS.value: DisplayAttributes("Bus", "#16a34a"),
    Mode.COACH.value: DisplayAttributes("Coach", "#15803d"),
    Mode.TROLLEYBUS.value: DisplayAttributes("Trolleybus", "#22c55e"),
    Mode.TRAM.value: DisplayAttributes("Tram", "#dc2626"),
    Mode.RAIL.value: DisplayAttributes("Train", "#7c3aed"),
    Mode.SUBWAY.value: DisplayAttributes("Metro", "#2563eb"),
    Mode.MONORAIL.value: DisplayAttributes("Monorail", "#1d4ed8"),
    Mode.FERRY.value: DisplayAttributes("Ferry", "#0891b2"),
    Mode.BICYCLE.value: DisplayAttributes("Bicycle", "#ea580c"),
    Mode.SCOOTER.value: DisplayAttributes("Scooter", "#f97316"),
    Mode.CAR.value: DisplayAttributes("Car", "#374151"),
    Mode.TAXI.value: DisplayAttributes("Taxi", "#ca8a04"),
    TRANSIT_GROUP: DisplayAttributes("Transit", "#0f766e"),
})


def display_attributes(mode: Mode | str, table: Mapping[str, DisplayAttributes] = DEFAULT_DISPLAY) -> DisplayAttributes:
    key = mode.value if isinstance(mode, Mode) else mode
    return table.get(key, _FALLBACK)
