"""Bale bot SDK — transport, update polling, normalized events and send operations.

Usage::

    from bale import BaleClient

    client = BaleClient(token)
    event = client.handle()
    client.send_message(event, "hello")
"""

from bale.client import BaleClient, get_default_client
from bale.exceptions import ApiError, BaleError, LocalValidationError, TransportError
from bale.keyboard import inline_keyboard
from bale.models import (
    BotSession,
    EventType,
    InlineKeyboardButton,
    MediaKind,
    NormalizedEvent,
    SendFailure,
    SendResult,
    SendSuccess,
)
from bale.transport import Encoding, InputFile, Transport
from bale.updates import UpdatePoller, normalize_update

__all__ = [
    "BaleClient",
    "get_default_client",
    "BaleError",
    "TransportError",
    "ApiError",
    "LocalValidationError",
    "inline_keyboard",
    "BotSession",
    "EventType",
    "InlineKeyboardButton",
    "MediaKind",
    "NormalizedEvent",
    "SendFailure",
    "SendResult",
    "SendSuccess",
    "Encoding",
    "InputFile",
    "Transport",
    "UpdatePoller",
    "normalize_update",
]
