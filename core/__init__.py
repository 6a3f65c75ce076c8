"""Core helpers — logging, destination resolution, matching.

This package is framework-agnostic. It must NEVER import from ``bot/`` or ``bale/``.
"""

from core.destination import (
    EventRef,
    RawId,
    UnresolvedDestinationError,
    as_destination,
    resolve_chat_id,
    resolve_message_ref,
)
from core.logger import BaleLogger
from core.matching import CommandData, MatchResult, extract_command_data, match_event

__all__ = [
    "BaleLogger",
    "RawId",
    "EventRef",
    "UnresolvedDestinationError",
    "as_destination",
    "resolve_chat_id",
    "resolve_message_ref",
    "MatchResult",
    "CommandData",
    "match_event",
    "extract_command_data",
]
