"""Equality-gated dispatch and command-argument extraction.

Both helpers report an explicit :class:`MatchResult` so callers can tell a
non-match apart from an event that carried nothing to match against, and an
empty command argument apart from a missing one.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Mapping
from typing import Any, Callable, Optional

_MISSING = object()


class MatchResult(str, enum.Enum):
    """Outcome of a match attempt.  Only :attr:`MATCHED` is truthy."""

    MATCHED = "matched"
    NOT_MATCHED = "not_matched"
    NO_DATA = "no_data"

    def __bool__(self) -> bool:
        return self is MatchResult.MATCHED


@dataclasses.dataclass(frozen=True, slots=True)
class CommandData:
    """Result of :func:`extract_command_data`.

    ``value`` is set only when ``status`` is :attr:`MatchResult.MATCHED`,
    and may be an empty string.
    """

    status: MatchResult
    value: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.status)


def event_data(event: Any) -> Any:
    """Return the ``data`` field of a mapping or event, or ``_MISSING``."""
    if isinstance(event, Mapping):
        return event.get("data", _MISSING)
    return getattr(event, "data", _MISSING)


def match_event(event: Any, condition: Any) -> MatchResult:
    """Compare ``event.data`` with *condition*."""
    data = event_data(event)
    if data is _MISSING or data is None:
        return MatchResult.NO_DATA
    return MatchResult.MATCHED if data == condition else MatchResult.NOT_MATCHED


def run_if_matches(event: Any, condition: Any, handler: Callable[..., Any], *args: Any) -> MatchResult:
    """Call ``handler(event, *args)`` when ``event.data == condition``."""
    result = match_event(event, condition)
    if result:
        handler(event, *args)
    return result


def _split_after(command: str, text: str) -> CommandData:
    parts = text.split(command)
    if len(parts) < 2:
        return CommandData(MatchResult.NOT_MATCHED)
    return CommandData(MatchResult.MATCHED, parts[1])


def extract_command_data(command: str, source: Any) -> CommandData:
    """Return the text following *command* in *source*.

    *source* is either a string or anything with a string ``data`` field.
    The value is the segment between the first occurrence of *command* and
    the next one (or the end of the text).

    Raises:
        ValueError: If *command* is empty.
    """
    if not command:
        raise ValueError("command must be a non-empty string")
    if isinstance(source, str):
        return _split_after(command, source)
    data = event_data(source)
    if not isinstance(data, str):
        return CommandData(MatchResult.NO_DATA)
    return _split_after(command, data)
