"""Sample handlers for the bale bot.

Exact-match handlers are registered in :mod:`bot.registry`; the argument
and photo handlers are called directly by :mod:`bot.dispatcher`.
"""

from bale.client import BaleClient
from bale.keyboard import inline_keyboard
from bale.models import NormalizedEvent
from bot.registry import registry
from core.logger import BaleLogger

logger = BaleLogger.get_logger("bot")

ECHO_COMMAND = "/echo "


@registry.register("/start", description="Show the welcome message")
def handle_start(event: NormalizedEvent, client: BaleClient) -> None:
    """Handle /start — greet the sender and offer the help button."""
    sender = event.from_field or {}
    display_name = sender.get("first_name") or str(sender.get("id", "there"))
    logger.info("User invoked /start", extra={"chat_id": event.chat_id, "command": "/start"})
    markup = inline_keyboard([[{"text": "📖 Help", "callback_data": "help"}]])
    client.send_message(event, f"👋 Welcome, {display_name}!", reply_to=event, reply_markup=markup)


@registry.register("help", description="List the available commands")
def handle_help(event: NormalizedEvent, client: BaleClient) -> None:
    """Handle the help button — list every registered condition."""
    lines = [f"• {entry.condition} — {entry.description}" for entry in registry.entries().values()]
    lines.append(f"• {ECHO_COMMAND.strip()} <text> — Repeat the text back")
    lines.append("• send a photo — Receive the same photo back")
    client.send_message(event, "📖 Available commands:\n" + "\n".join(lines))


def handle_echo(event: NormalizedEvent, client: BaleClient, text: str) -> None:
    """Handle /echo <text> — repeat *text*, or explain the usage when empty."""
    if not text.strip():
        client.send_message(event, f"Usage: {ECHO_COMMAND.strip()} <text>", reply_to=event)
        return
    client.send_message(event, text.strip(), reply_to=event)


def handle_photo(event: NormalizedEvent, client: BaleClient) -> None:
    """Send a received photo back by file id, keeping its caption."""
    result = client.send_photo(event, event, caption=event, reply_to=event)
    if not result.ok:
        logger.warning("Photo echo failed", extra={"chat_id": event.chat_id, "error": result.error})
