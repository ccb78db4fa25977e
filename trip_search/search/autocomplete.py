"""
Debounced autocomplete for one place input (origin or destination).

The raw value updates on every keystroke; only the trailing value of a quiet
period reaches the place index. A response is committed only if no keystroke
happened after the one that triggered it.
"""
import asyncio
import logging
from typing import Protocol

from trip_search.geocoding.models import Suggestion

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.2


class Suggester(Protocol):
    async def suggest(self, text: str) -> list[Suggestion]: ...


class AutocompleteField:
    def __init__(self, suggester: Suggester, debounce_seconds: float = DEBOUNCE_SECONDS):
        self._suggester = suggester
        self._debounce = debounce_seconds
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self.value = ""
        self.suggestions: list[Suggestion] = []
        self._dismissed = False

    @property
    def open(self) -> bool:
        """Popover visibility: something typed that is not already one of the suggestions."""
        if self._dismissed or not self.value:
            return False
        typed = self.value.strip()
        return not any(s.display_name == typed for s in self.suggestions)

    def set_value(self, text: str) -> None:
        """Record a keystroke. Must be called from inside the running event loop."""
        self.value = text
        self._dismissed = False
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not text:
            self.suggestions = []
            self._update_idle()
            return
        self._idle.clear()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce, self._fire, text, self._generation)

    def choose(self, suggestion: Suggestion) -> None:
        """Take a suggestion; the popover stays closed until the next keystroke."""
        self.set_value(suggestion.display_name)
        self._dismissed = True

    async def settled(self) -> None:
        """Wait until no debounce timer is pending and no request is in flight."""
        await self._idle.wait()

    def _fire(self, text: str, token: int) -> None:
        self._timer = None
        task = asyncio.ensure_future(self._fetch(text, token))
        self._in_flight.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("telemetry suggest_task_failed error=%s", str(task.exception()))
        self._update_idle()

    def _update_idle(self) -> None:
        if self._timer is None and not self._in_flight:
            self._idle.set()

    async def _fetch(self, text: str, token: int) -> None:
        results = await self._suggester.suggest(text)
        if token != self._generation:
            logger.debug(
                "telemetry suggest_stale_result text=%s token=%s current=%s",
                text[:80],
                token,
                self._generation,
            )
            return
        self.suggestions = results
