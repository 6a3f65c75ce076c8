"""Bale bot application layer — registry, handlers, dispatcher loop.

This package may import from ``bale/``, ``core/`` and ``config`` only.
"""

from bot.dispatcher import process_event, run
from bot.handlers import handle_echo, handle_help, handle_photo, handle_start
from bot.registry import HandlerRegistry, registry

__all__ = [
    # Dispatcher
    "run",
    "process_event",
    # Handlers
    "handle_start",
    "handle_help",
    "handle_echo",
    "handle_photo",
    # Registry
    "HandlerRegistry",
    "registry",
]
