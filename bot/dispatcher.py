"""Event dispatcher and main polling loop.

Routes each normalized event to the handlers in :mod:`bot.handlers`.  The
loop is synchronous: one event is received, handled, then the next one is
requested.
"""

import threading
from typing import Optional

from bale.client import BaleClient, get_default_client
from bale.models import EventType, NormalizedEvent
from core.logger import BaleLogger
from core.matching import MatchResult
from bot.registry import registry

# Import handlers module so @registry.register decorators execute.
from bot.handlers import ECHO_COMMAND, handle_echo, handle_photo

logger = BaleLogger.get_logger("bot")


def process_event(client: BaleClient, event: NormalizedEvent) -> bool:
    """Dispatch a single event.  Returns ``True`` if a handler ran."""
    if not event.status:
        logger.debug("Ignoring unknown update")
        return False

    if event.type is EventType.PHOTO:
        handle_photo(event, client)
        return True

    outcome = registry.dispatch(client, event)
    if outcome is MatchResult.MATCHED:
        return True

    if event.type is EventType.TEXT:
        command = client.get_command_data(ECHO_COMMAND, event)
        if command and event.data.startswith(ECHO_COMMAND):
            handle_echo(event, client, command.value)
            return True

    logger.debug("No handler matched", extra={"update_id": event.id, "chat_id": event.chat_id})
    return False


def run(client: Optional[BaleClient] = None, stop: Optional[threading.Event] = None) -> None:
    """Start the blocking polling loop.

    Runs until *stop* is set, or forever when it is ``None``.

    Raises:
        EnvironmentError: If no client is given and ``BOT_TOKEN`` is not set.
        TransportError: If a request to the API fails.
    """
    client = client or get_default_client()
    logger.info("Bale bot is running. Polling for updates...")
    for event in client.iter_events(log=True, stop=stop):
        process_event(client, event)
    logger.info("Bale bot stopped", extra={"last_update_id": client.session.last_update_id})
