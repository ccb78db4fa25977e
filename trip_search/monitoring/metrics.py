"""In-memory request and search-outcome counters for the /metrics endpoint."""
import time
from collections.abc import MutableMapping
from threading import Lock

_start_time = time.monotonic()
_requests: MutableMapping[str, int] = {}
_searches: MutableMapping[str, int] = {}
_lock = Lock()


def _status_bucket(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "2xx"
    if 400 <= status_code < 500:
        return "4xx"
    if status_code >= 500:
        return "5xx"
    return "other"


def record_request(status_code: int) -> None:
    bucket = _status_bucket(status_code)
    with _lock:
        _requests[bucket] = _requests.get(bucket, 0) + 1


def record_search(outcome: str) -> None:
    """outcome: a search phase or error kind, e.g. "success", "validation", "network"."""
    with _lock:
        _searches[outcome] = _searches.get(outcome, 0) + 1


def get_metrics() -> dict:
    with _lock:
        requests = dict(_requests)
        searches = dict(_searches)
    return {
        "requests_total": sum(requests.values()),
        "requests_2xx": requests.get("2xx", 0),
        "requests_4xx": requests.get("4xx", 0),
        "requests_5xx": requests.get("5xx", 0),
        "searches_total": sum(searches.values()),
        "searches_success": searches.get("success", 0),
        "searches_validation_error": searches.get("validation", 0),
        "searches_network_error": searches.get("network", 0),
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
    }


def reset_metrics() -> None:
    with _lock:
        _requests.clear()
        _searches.clear()
