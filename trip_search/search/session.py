"""One search UI session: the orchestrator plus the origin and destination autocomplete fields."""
import time
import uuid
from dataclasses import dataclass, field

from trip_search.search.autocomplete import AutocompleteField, Suggester
from trip_search.search.orchestrator import Geocoder, Planner, SearchOrchestrator

FIELD_NAMES = ("origin", "destination")


@dataclass
class TripSession:
    orchestrator: SearchOrchestrator
    fields: dict[str, AutocompleteField]
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.monotonic)


def new_session(geocoder: Geocoder, suggester: Suggester, planner: Planner, debounce_seconds: float) -> TripSession:
    return TripSession(
        orchestrator=SearchOrchestrator(geocoder, planner),
        fields={name: AutocompleteField(suggester, debounce_seconds) for name in FIELD_NAMES},
    )
