"""Destination resolution for outbound operations.

Every send/forward/copy call accepts either a bare chat identifier or
something that carries one (a normalized event, a previous send result, a
plain ``{"chat_id": ..., "message_id": ...}`` mapping).  This module turns
that polymorphic input into an explicit :data:`Destination` and is the only
place where the lookup happens.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, Optional, Union

from core.logger import BaleLogger

logger = BaleLogger.get_logger("destination")

ChatId = Union[int, str]


@dataclasses.dataclass(frozen=True, slots=True)
class RawId:
    """A bare chat identifier (numeric id or ``@username``)."""

    chat_id: ChatId


@dataclasses.dataclass(frozen=True, slots=True)
class EventRef:
    """A chat reference taken from an event, a send result or a mapping.

    ``message_id`` is ``None`` when the source did not carry one.
    """

    chat_id: ChatId
    message_id: Optional[int] = None


Destination = Union[RawId, EventRef]


class UnresolvedDestinationError(ValueError):
    """Raised when a destination or origin carries no usable chat id."""


def _is_chat_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _field(value: Any, name: str) -> Any:
    """Read *name* from a mapping key or an object attribute."""
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def as_destination(value: Any) -> Destination:
    """Classify *value* as an :class:`EventRef` or a :class:`RawId`.

    Integers and strings are chat ids themselves.  Anything else must expose
    an integer or string ``chat_id`` (mapping key or attribute).

    Raises:
        UnresolvedDestinationError: If no chat id can be taken from *value*.
    """
    if isinstance(value, (RawId, EventRef)):
        return value
    if _is_chat_id(value):
        return RawId(chat_id=value)
    chat_id = _field(value, "chat_id")
    if not _is_chat_id(chat_id):
        raise UnresolvedDestinationError("Destination has no chat_id")
    message_id = _field(value, "message_id")
    return EventRef(chat_id=chat_id, message_id=message_id if isinstance(message_id, int) else None)


def resolve_chat_id(value: Any) -> ChatId:
    """Return the chat id a send operation should target."""
    return as_destination(value).chat_id


def resolve_message_ref(origin: Any, message_id: Optional[int] = None) -> tuple[ChatId, Optional[int]]:
    """Return the ``(chat_id, message_id)`` pair for forward/copy.

    An explicit *message_id* wins; otherwise it is taken from *origin*.
    """
    destination = as_destination(origin)
    if message_id is None and isinstance(destination, EventRef):
        message_id = destination.message_id
    if message_id is None:
        logger.debug("No message id on origin", extra={"chat_id": destination.chat_id})
    return destination.chat_id, message_id


def reply_message_id(value: Any) -> Optional[int]:
    """Return the message id to reply to.

    Integers pass through; events and mappings yield their ``message_id``.
    """
    if value is None or isinstance(value, int):
        return value
    return _field(value, "message_id")
