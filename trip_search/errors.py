"""
Typed failures surfaced by the place index and routing clients.
The orchestrator maps each kind to exactly one user-visible message.
"""
from __future__ import annotations

import httpx


class TripSearchError(Exception):
    """Base error for trip search."""


class NetworkError(TripSearchError):
    """Transport failure or non-2xx response. Carries the raw response when there was one."""

    def __init__(self, message: str, response: httpx.Response | None = None):
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None


class SchemaError(NetworkError):
    """Upstream answered 2xx but the body is missing required fields."""


class ValidationError(TripSearchError):
    """Place text resolved to zero or more than one feature."""

    def __init__(self, queries: list[str]):
        self.queries = list(queries)
        super().__init__(f"Could not find {' or '.join(self.queries)}.")
