"""Update loop and normalizer.

:func:`normalize_update` maps a raw ``getUpdates`` item onto a
:class:`~bale.models.NormalizedEvent`.  :class:`UpdatePoller` implements the
blocking "wait for the next update" primitive on top of
:class:`~bale.transport.Transport`; the polling cursor lives in the
:class:`~bale.models.BotSession` that is passed in and returned.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from bale.models import BotSession, EventType, NormalizedEvent
from bale.transport import Transport
from core.logger import BaleLogger

logger = BaleLogger.get_logger("updates")


def _get(mapping: Any, *path: str) -> Any:
    """Walk nested mappings, returning ``None`` as soon as a step is missing."""
    current = mapping
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _classify(raw: Mapping) -> Dict[str, Any]:
    """Build the keyword arguments of a NormalizedEvent for *raw*.

    Precedence is fixed: message text, then callback query, then photo.
    """
    message = raw.get("message")
    callback_query = raw.get("callback_query")

    if _get(message, "text") is not None:
        return {
            "status": True,
            "type": EventType.TEXT,
            "id": raw.get("update_id"),
            "message_id": _get(message, "message_id"),
            "chat_id": _get(message, "chat", "id"),
            "from_field": _get(message, "from"),
            "request_time": _get(message, "date"),
            "data": message["text"],
        }
    if callback_query is not None:
        return {
            "status": True,
            "type": EventType.CALLBACK,
            "id": raw.get("update_id"),
            "message_id": _get(callback_query, "message", "message_id"),
            "chat_id": _get(callback_query, "message", "chat", "id"),
            "from_field": _get(callback_query, "from"),
            "request_time": _get(callback_query, "date"),
            "data": _get(callback_query, "data"),
        }
    if _get(message, "photo") is not None:
        return {
            "status": True,
            "type": EventType.PHOTO,
            "id": raw.get("update_id"),
            "message_id": _get(message, "message_id"),
            "chat_id": _get(message, "chat", "id"),
            "from_field": _get(message, "from"),
            "request_time": _get(message, "date"),
            "data": message["photo"],
            "caption": _get(message, "caption"),
        }
    return {}


def normalize_update(raw: Any) -> NormalizedEvent:
    """Convert one raw update into a :class:`NormalizedEvent`.

    Never raises: anything that is not a recognised text, callback or photo
    update becomes an ``unknown_message`` event with ``status=False``.
    """
    if not isinstance(raw, Mapping):
        logger.debug("Update is not a mapping", extra={"raw_type": type(raw).__name__})
        return NormalizedEvent.unknown()

    fields = _classify(raw)
    if not fields:
        logger.debug("Unrecognised update shape", extra={"update_id": raw.get("update_id")})
        return NormalizedEvent.unknown()

    try:
        return NormalizedEvent(**fields)
    except ValidationError as exc:
        logger.warning(
            "Update failed validation, treating as unknown",
            extra={"update_id": raw.get("update_id"), "error": str(exc)},
        )
        return NormalizedEvent.unknown()


class UpdatePoller:
    """Blocking long-poll loop over ``getUpdates``.

    Args:
        transport: Transport used for the ``getUpdates`` calls.
        poll_interval: Seconds to sleep after an empty poll.  The default of
            ``0.0`` polls again immediately.

    A session must never be polled by two loops at once; the cursor would
    race.  Run one loop per session.
    """

    def __init__(self, transport: Transport, poll_interval: float = 0.0) -> None:
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        self._transport = transport
        self._poll_interval = poll_interval

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def fetch(self, session: BotSession) -> List[Any]:
        """Return the raw batch for the session's current offset.

        A reply with ``ok: false`` is logged and yields an empty batch.

        Raises:
            TransportError: If the request itself failed.
        """
        response = self._transport.invoke("getUpdates", {"offset": session.offset})
        if not response.get("ok"):
            logger.warning(
                "getUpdates returned ok=false",
                extra={
                    "api_endpoint": "getUpdates",
                    "error_code": response.get("error_code"),
                    "description": response.get("description"),
                },
            )
            return []
        result = response.get("result")
        return result if isinstance(result, list) else []

    def poll_once(self, session: BotSession) -> Tuple[Optional[NormalizedEvent], BotSession]:
        """Run one ``getUpdates`` round.

        The cursor advances for every inspected item that carries an
        ``update_id``; the first such item is normalized and returned
        straight away, leaving the rest of the batch for the next call.

        Returns:
            ``(event, session)``, with ``event`` ``None`` when the batch held
            no usable update.
        """
        for raw in self.fetch(session):
            update_id = raw.get("update_id") if isinstance(raw, Mapping) else None
            if not isinstance(update_id, int) or isinstance(update_id, bool):
                logger.debug("Skipping update without update_id")
                continue
            session = session.advance(update_id)
            logger.debug("Update received", extra={"update_id": update_id, "offset": session.offset})
            return normalize_update(raw), session
        return None, session

    def next_event(
        self,
        session: BotSession,
        stop: Optional[threading.Event] = None,
    ) -> Tuple[Optional[NormalizedEvent], BotSession]:
        """Block until an update arrives and return it with the advanced session.

        Returns ``(None, session)`` only when *stop* is set.

        Raises:
            TransportError: If a ``getUpdates`` request fails.
        """
        while stop is None or not stop.is_set():
            event, session = self.poll_once(session)
            if event is not None:
                return event, session
            if self._poll_interval:
                if stop is not None:
                    stop.wait(self._poll_interval)
                else:
                    time.sleep(self._poll_interval)
        logger.info("Polling stopped", extra={"last_update_id": session.last_update_id})
        return None, session
