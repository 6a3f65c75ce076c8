"""Handler registry — single source of truth for condition → handler mapping.

Handlers are registered with ``@registry.register(condition, description=…)``
in :mod:`bot.handlers` and dispatched through
:meth:`bale.client.BaleClient.on_message`, which only fires a handler when
the event's ``data`` equals its condition exactly.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Protocol, runtime_checkable

from bale.client import BaleClient
from bale.models import NormalizedEvent
from core.matching import MatchResult


@runtime_checkable
class EventHandler(Protocol):
    """Handler invoked with the matching event and the client."""
    def __call__(self, event: NormalizedEvent, client: BaleClient) -> Any: ...  # noqa: E704


@dataclasses.dataclass(frozen=True, slots=True)
class HandlerEntry:
    """Metadata for a single registered condition."""
    condition: str            # exact event data, e.g. "/start" or "help"
    description: str          # shown by the help handler
    handler: EventHandler


class HandlerRegistry:
    """Singleton registry of exact-match handlers.

    Usage::

        @registry.register("/ping", description="Ping")
        def handle_ping(event, client): ...

        registry.dispatch(client, event)
    """

    _instance: HandlerRegistry | None = None
    _entries: dict[str, HandlerEntry]

    def __new__(cls) -> HandlerRegistry:
        if cls._instance is None:
            inst = super().__new__(cls)
            inst._entries = {}
            cls._instance = inst
        return cls._instance

    # ── decorator ────────────────────────────────────────────────────────

    def register(self, condition: str, *, description: str) -> Callable[[EventHandler], EventHandler]:
        """Decorator that registers *handler* for events whose data is *condition*."""
        def decorator(func: EventHandler) -> EventHandler:
            self._entries[condition] = HandlerEntry(condition, description, func)
            return func
        return decorator

    # ── lookup helpers ───────────────────────────────────────────────────

    def get(self, condition: str) -> HandlerEntry | None:
        return self._entries.get(condition)

    def entries(self) -> dict[str, HandlerEntry]:
        """Return a copy of all registered entries."""
        return dict(self._entries)

    def dispatch(self, client: BaleClient, event: NormalizedEvent) -> MatchResult:
        """Run the first handler whose condition matches *event*.

        Returns :attr:`MatchResult.NO_DATA` when the event carries no data,
        :attr:`MatchResult.NOT_MATCHED` when no condition matched.
        """
        for entry in self._entries.values():
            outcome = client.on_message(event, entry.condition, entry.handler)
            if outcome is not MatchResult.NOT_MATCHED:
                return outcome
        return MatchResult.NOT_MATCHED


# Module-level singleton — import this everywhere.
registry = HandlerRegistry()
