"""End-to-end tests for the session API with mocked place index and routing backends."""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

import main
from helpers import leg, plan_body, raw_leg, search_body
from trip_search.geocoding.client import GeocodeClient
from trip_search.monitoring.metrics import get_metrics, reset_metrics
from trip_search.routing.client import ItineraryClient

PLACES = {
    "Lund C": (55.7056, 13.1870),
    "Malmö C": (55.6095, 13.0007),
}

THREE_ROUTES = plan_body(
    [raw_leg("WALK", 0, 4, distance=250), raw_leg("RAIL", 5, 20, distance=17000), raw_leg("WALK", 20, 26, distance=400)],
    [raw_leg("WALK", 10, 14), raw_leg("BUS", 15, 50, short_name="170"), raw_leg("WALK", 50, 53)],
    [raw_leg("RAIL", 30, 45, distance=17000)],
)


def _pelias(request: httpx.Request) -> httpx.Response:
    text = request.url.params["text"]
    if request.url.path.endswith("/autocomplete"):
        return httpx.Response(200, json={"features": [
            {"properties": {"id": "wof:1", "name": "Lund C", "county": "Lund"}},
            {"properties": {"id": "wof:2", "name": "Lunds domkyrka", "county": "Lund"}},
        ]})
    coords = [PLACES[text]] if text in PLACES else []
    return httpx.Response(200, json=search_body(text, *coords))


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main.settings, "suggest_debounce_ms", 10)
    reset_metrics()
    with TestClient(main.app) as c:
        geocoder = GeocodeClient(base_url="https://pelias.test/v1", transport=httpx.MockTransport(_pelias))
        main.app.state.geocoder = geocoder
        main.app.state.suggester = geocoder
        main.app.state.planner = ItineraryClient(
            url="https://otp.test/graphql",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=THREE_ROUTES)),
        )
        yield c


def _session(client: TestClient) -> str:
    r = client.post("/sessions")
    assert r.status_code == 201
    assert r.json()["phase"] == "idle"
    return r.json()["session_id"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "X-Request-ID" in r.headers


def test_search_success_returns_three_routes_with_segments(client):
    sid = _session(client)
    r = client.post(
        f"/sessions/{sid}/search",
        json={"origin": "Lund C", "destination": "Malmö C", "depart_at": True, "time": "2025-03-10T09:00:00+01:00"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["phase"] == "success"
    assert len(data["routes"]) == 3
    assert data["selected_index"] is None

    first = data["routes"][0]
    assert [s["mode"] for s in first["segments"]] == ["WALK", "RAIL", "WALK"]
    assert first["duration"] == "26 min"
    assert first["start_clock"] == "09:00"
    assert first["distance"] == 17650
    assert first["segments"][1]["label"] == "Train"
    assert len(first["segments"][0]["path"]) == 2
    assert data["routes"][1]["segments"][1]["legs"][0]["line"] == "170"

    assert client.get(f"/sessions/{sid}").json()["phase"] == "success"
    assert get_metrics()["searches_success"] == 1


def test_search_unknown_destination_reports_validation_error(client):
    sid = _session(client)
    r = client.post(f"/sessions/{sid}/search", json={"origin": "Lund C", "destination": "Atlantis"})
    data = r.json()
    assert r.status_code == 200
    assert data["phase"] == "error"
    assert data["error_kind"] == "validation"
    assert data["error_message"] == "Could not find Atlantis."
    assert get_metrics()["searches_validation_error"] == 1


def test_search_routing_500_reports_network_error(client):
    main.app.state.planner = ItineraryClient(
        url="https://otp.test/graphql",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    sid = _session(client)
    data = client.post(f"/sessions/{sid}/search", json={"origin": "Lund C", "destination": "Malmö C"}).json()
    assert data["phase"] == "error"
    assert data["error_kind"] == "network"
    assert data["error_message"] == "A network error has occurred."


def test_search_blank_origin_is_rejected(client):
    sid = _session(client)
    r = client.post(f"/sessions/{sid}/search", json={"origin": " ", "destination": "Malmö C"})
    assert r.status_code == 422


def test_unknown_session_is_404(client):
    assert client.get("/sessions/nope").status_code == 404


def test_select_toggle_and_reset_on_new_search(client):
    sid = _session(client)
    assert client.post(f"/sessions/{sid}/select", json={"index": 0}).status_code == 409

    body = {"origin": "Lund C", "destination": "Malmö C"}
    client.post(f"/sessions/{sid}/search", json=body)
    assert client.post(f"/sessions/{sid}/select", json={"index": 1}).json()["selected_index"] == 1
    assert client.post(f"/sessions/{sid}/select", json={"index": 1}).json()["selected_index"] is None
    assert client.post(f"/sessions/{sid}/select", json={"index": 2}).json()["selected_index"] == 2
    assert client.post(f"/sessions/{sid}/select", json={"index": 9}).status_code == 400

    data = client.post(f"/sessions/{sid}/search", json=body).json()
    assert data["selected_index"] is None


def test_field_autocomplete_and_popover(client):
    sid = _session(client)
    r = client.put(f"/sessions/{sid}/fields/origin", json={"text": "Lun"})
    assert r.status_code == 200
    data = r.json()
    assert data["value"] == "Lun"
    assert [s["display_name"] for s in data["suggestions"]] == ["Lund C, Lund", "Lunds domkyrka, Lund"]
    assert data["open"] is True

    data = client.put(f"/sessions/{sid}/fields/origin", json={"text": "Lund C, Lund"}).json()
    assert data["open"] is False

    data = client.put(f"/sessions/{sid}/fields/origin", json={"text": ""}).json()
    assert data["suggestions"] == []
    assert data["open"] is False


def test_unknown_field_is_404(client):
    sid = _session(client)
    assert client.put(f"/sessions/{sid}/fields/via", json={"text": "Lund"}).status_code == 404


# --- session lifetime ---


def test_session_count_is_capped_oldest_evicted_first(client, monkeypatch):
    monkeypatch.setattr(main.settings, "max_sessions", 3)
    ids = [_session(client) for _ in range(5)]
    assert len(main.app.state.sessions) == 3
    assert set(main.app.state.sessions) == set(ids[2:])
    assert client.get(f"/sessions/{ids[0]}").status_code == 404
    assert client.get(f"/sessions/{ids[4]}").status_code == 200


def test_delete_session(client):
    sid = _session(client)
    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert sid not in main.app.state.sessions
    assert client.get(f"/sessions/{sid}").status_code == 404
    assert client.delete(f"/sessions/{sid}").status_code == 404


# --- metrics under overlapping searches ---


class SlowFirstPlanner:
    """First plan call waits for a gate; later calls return immediately."""

    def __init__(self):
        self.gate = asyncio.Event()
        self.calls = 0

    async def plan(self, origin, destination, depart_at, time):
        self.calls += 1
        if self.calls == 1:
            await self.gate.wait()
            return [[leg("RAIL", 0, 15)]]
        return [[leg("RAIL", 0, 15)], [leg("BUS", 5, 40)]]


def test_superseded_search_is_not_counted_twice(client):
    planner = SlowFirstPlanner()
    main.app.state.planner = planner
    sid = _session(client)
    body = {"origin": "Lund C", "destination": "Malmö C"}

    async def run():
        transport = httpx.ASGITransport(app=main.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
            slow = asyncio.ensure_future(ac.post(f"/sessions/{sid}/search", json=body))
            for _ in range(200):
                if planner.calls:
                    break
                await asyncio.sleep(0.01)
            newer = await ac.post(f"/sessions/{sid}/search", json=body)
            planner.gate.set()
            return (await slow).json(), newer.json()

    slow, newer = asyncio.run(run())
    assert planner.calls == 2
    assert len(newer["routes"]) == 2
    # the earlier request reports the newer result
    assert len(slow["routes"]) == 2
    assert get_metrics()["searches_success"] == 1
    assert get_metrics()["searches_total"] == 1
