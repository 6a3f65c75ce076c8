"""BaleClient -- polling, sending and matching on top of one Transport.

Every outbound operation follows the same steps: resolve the destination,
build the method payload, pick JSON or multipart encoding, invoke the
transport and map the decoded reply onto a
:class:`~bale.models.SendSuccess` / :class:`~bale.models.SendFailure`.
API errors and local validation errors are returned, never raised; only
:class:`~bale.exceptions.TransportError` propagates.

The module also provides :func:`get_default_client`, which lazily builds a
client from :mod:`config`.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

from pydantic import ValidationError

from bale.exceptions import LocalValidationError
from bale.models import (
    DEFAULT_BASE_URL,
    MEDIA_SPECS,
    BotSession,
    MediaKind,
    MediaSpec,
    NormalizedEvent,
    SendFailure,
    SendResult,
    SendSuccess,
)
from bale.transport import Encoding, InputFile, Transport
from bale.updates import UpdatePoller
from core.destination import (
    ChatId,
    UnresolvedDestinationError,
    reply_message_id,
    resolve_chat_id,
    resolve_message_ref,
)
from core.logger import BaleLogger
from core.matching import CommandData, MatchResult, extract_command_data, run_if_matches

logger = BaleLogger.get_logger("client")

MediaSource = Union[str, os.PathLike, Mapping, NormalizedEvent]


def map_send_result(
    response: Dict[str, Any],
    chat_id: Optional[ChatId],
    echo_field: Optional[str] = None,
) -> SendResult:
    """Map a decoded API reply onto the uniform send result.

    Always yields one of the two result shapes; a reply whose fields do not
    fit them becomes a failure.
    """
    if response.get("ok") is True:
        result = response.get("result")
        if not isinstance(result, Mapping):
            result = {}
        echo: Dict[str, Any] = {echo_field: result.get(echo_field)} if echo_field else {}
        try:
            return SendSuccess(message_id=result.get("message_id"), chat_id=chat_id, **echo)
        except ValidationError:
            logger.warning("Malformed API response", extra={"chat_id": chat_id, "result": result})
            return SendFailure(error="Malformed API response")
    description = response.get("description")
    error_code = response.get("error_code")
    if description is not None and not isinstance(description, str):
        description = str(description)
    return SendFailure(
        error=description or "Unknown error",
        error_code=error_code if isinstance(error_code, int) and not isinstance(error_code, bool) else None,
    )


def _file_id_from_reference(reference: Any) -> Optional[str]:
    """Extract a file id from an API-native file reference.

    Accepts a photo event (``data[0].file_id``), a mapping whose ``data`` is
    a file object, or a file object itself.
    """
    if isinstance(reference, NormalizedEvent):
        reference = {"data": reference.data}
    if not isinstance(reference, Mapping):
        return None
    data = reference.get("data")
    if isinstance(data, list) and data and isinstance(data[0], Mapping):
        return data[0].get("file_id")
    if isinstance(data, Mapping):
        return data.get("file_id")
    return reference.get("file_id")


def _caption_text(caption: Any) -> Optional[str]:
    """Allow a caption to be copied from an event or mapping carrying one."""
    if isinstance(caption, Mapping):
        return caption.get("caption")
    if isinstance(caption, NormalizedEvent):
        return caption.caption
    return caption


class BaleClient:
    """High-level client for the Bale bot API.

    The polling cursor lives in :attr:`session`, a
    :class:`~bale.models.BotSession` that every poll replaces with the
    advanced value.  A new client always starts from cursor 0.

    Args:
        token: Bot token.
        base_url: API root URL.
        timeout: Default request timeout in seconds (``None`` blocks).
        poll_interval: Seconds to wait between empty polls.
        transport: Pre-built transport, mainly for tests.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        poll_interval: float = 0.0,
        transport: Optional[Transport] = None,
    ) -> None:
        self.session = BotSession(token=token, base_url=base_url)
        self.transport = transport or Transport(token, self.session.base_url, timeout=timeout)
        self.poller = UpdatePoller(self.transport, poll_interval=poll_interval)

    # ------------------------------------------------------------------
    #  Receiving
    # ------------------------------------------------------------------

    def handle(self, stop: Optional[threading.Event] = None) -> Optional[NormalizedEvent]:
        """Block until the next update arrives and return it normalized.

        Returns ``None`` only when *stop* is set.

        Raises:
            TransportError: If a ``getUpdates`` request fails.
        """
        event, self.session = self.poller.next_event(self.session, stop=stop)
        return event

    def live_stream(self, log: bool = False, stop: Optional[threading.Event] = None) -> Optional[NormalizedEvent]:
        """Like :meth:`handle`, optionally logging the sender's chat id."""
        event = self.handle(stop=stop)
        if log and event is not None:
            logger.info("New message", extra={"chat_id": event.chat_id, "event_type": event.type.value})
        return event

    def iter_events(self, log: bool = False, stop: Optional[threading.Event] = None) -> Iterator[NormalizedEvent]:
        """Yield events until *stop* is set (forever when it is ``None``)."""
        while True:
            event = self.live_stream(log=log, stop=stop)
            if event is None:
                return
            yield event

    # ------------------------------------------------------------------
    #  Sending
    # ------------------------------------------------------------------

    def send_media(
        self,
        kind: MediaKind,
        destination: Any,
        content: Any,
        caption: Any = None,
        reply_to: Any = None,
        reply_markup: Any = None,
    ) -> SendResult:
        """Send one message of *kind* to *destination*.

        For file kinds, *content* is either an API-native reference (a
        mapping or a photo event; sent as JSON by file id) or a local path
        (checked for existence, then uploaded as multipart).

        Raises:
            TransportError: If the HTTP request fails.
        """
        spec = MEDIA_SPECS[MediaKind(kind)]
        chat_id: Optional[ChatId] = None
        try:
            chat_id = resolve_chat_id(destination)
            value, encoding = self._media_value(spec, content)
        except (UnresolvedDestinationError, LocalValidationError) as exc:
            logger.warning("Send rejected locally", extra={"api_endpoint": spec.method, "chat_id": chat_id, "error": str(exc)})
            return SendFailure.local(str(exc))

        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            spec.field: value,
            "reply_to_message_id": reply_message_id(reply_to),
            "reply_markup": reply_markup,
        }
        if spec.supports_caption:
            payload["caption"] = _caption_text(caption)
        return self._call(spec.method, payload, encoding, chat_id, spec.echo_field)

    def send_message(self, destination: Any, text: str, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.TEXT, destination, text, reply_to=reply_to, reply_markup=reply_markup)

    def send_photo(self, destination: Any, photo: MediaSource, caption: Any = None, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.PHOTO, destination, photo, caption, reply_to, reply_markup)

    def send_audio(self, destination: Any, audio: MediaSource, caption: Any = None, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.AUDIO, destination, audio, caption, reply_to, reply_markup)

    def send_video(self, destination: Any, video: MediaSource, caption: Any = None, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.VIDEO, destination, video, caption, reply_to, reply_markup)

    def send_document(self, destination: Any, document: MediaSource, caption: Any = None, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.DOCUMENT, destination, document, caption, reply_to, reply_markup)

    def send_animation(self, destination: Any, animation: MediaSource, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.ANIMATION, destination, animation, reply_to=reply_to, reply_markup=reply_markup)

    def send_voice(self, destination: Any, voice: MediaSource, caption: Any = None, reply_to: Any = None, reply_markup: Any = None) -> SendResult:
        return self.send_media(MediaKind.VOICE, destination, voice, caption, reply_to, reply_markup)

    def relay(self, method: str, origin: Any, destination: Any, message_id: Optional[int] = None) -> SendResult:
        """Forward or copy one message (``forwardMessage``/``copyMessage``).

        *origin* is a chat id used with an explicit *message_id*, or a
        single mapping/event/result carrying both ``chat_id`` and
        ``message_id``.

        Raises:
            TransportError: If the HTTP request fails.
        """
        try:
            from_chat_id, message_id = resolve_message_ref(origin, message_id)
            chat_id = resolve_chat_id(destination)
        except UnresolvedDestinationError as exc:
            logger.warning("Relay rejected locally", extra={"api_endpoint": method, "error": str(exc)})
            return SendFailure.local(str(exc))
        if message_id is None:
            logger.warning("Relay rejected locally", extra={"api_endpoint": method, "chat_id": chat_id})
            return SendFailure.local("Message id is required")
        payload = {"from_chat_id": from_chat_id, "message_id": message_id, "chat_id": chat_id}
        return self._call(method, payload, Encoding.JSON, chat_id)

    def forward_message(self, origin: Any, destination: Any, message_id: Optional[int] = None) -> SendResult:
        return self.relay("forwardMessage", origin, destination, message_id)

    def copy_message(self, origin: Any, destination: Any, message_id: Optional[int] = None) -> SendResult:
        return self.relay("copyMessage", origin, destination, message_id)

    # ------------------------------------------------------------------
    #  Matching helpers
    # ------------------------------------------------------------------

    def on_message(self, event: Any, condition: Any, handler: Callable[[Any, "BaleClient"], Any]) -> MatchResult:
        """Call ``handler(event, self)`` when ``event.data == condition``."""
        return run_if_matches(event, condition, handler, self)

    @staticmethod
    def get_command_data(command: str, source: Any) -> CommandData:
        """Return the text following *command* in *source* (a string or an event)."""
        return extract_command_data(command, source)

    @staticmethod
    def reply_message(event: Any) -> Optional[int]:
        """Return the message id to pass as ``reply_to``."""
        return reply_message_id(event)

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _media_value(spec: MediaSpec, content: Any) -> Tuple[Any, Encoding]:
        """Choose the payload value and encoding for *content*.

        Raises:
            LocalValidationError: For a missing file or an unusable reference.
        """
        if not spec.uploads_file:
            return content, Encoding.JSON
        if isinstance(content, (Mapping, NormalizedEvent)):
            file_id = _file_id_from_reference(content)
            if not file_id:
                raise LocalValidationError("File reference has no file_id")
            return file_id, Encoding.JSON
        if not isinstance(content, (str, os.PathLike)):
            raise LocalValidationError(f"Unsupported media source: {type(content).__name__}")
        path = os.fspath(content)
        if not os.path.exists(path):
            raise LocalValidationError(f"File not found: {path}")
        return InputFile(path), Encoding.MULTIPART

    def _call(
        self,
        method: str,
        payload: Dict[str, Any],
        encoding: Encoding,
        chat_id: Optional[ChatId],
        echo_field: Optional[str] = None,
    ) -> SendResult:
        try:
            response = self.transport.invoke(method, payload, encoding)
        except LocalValidationError as exc:
            return SendFailure.local(str(exc))
        result = map_send_result(response, chat_id, echo_field)
        if result.ok:
            logger.info("Message sent", extra={"api_endpoint": method, "chat_id": chat_id, "message_id": result.message_id})
        else:
            logger.warning("Send failed", extra={"api_endpoint": method, "chat_id": chat_id, "error": result.error, "error_code": result.error_code})
        return result


# ── Module-level default client ──────────────────────────────────────────────
#
# A lazily-initialised client built from :mod:`config`, for application code
# that does not want to thread a client instance around.
# ─────────────────────────────────────────────────────────────────────────────

_default_client: BaleClient | None = None


def get_default_client() -> BaleClient:
    """Return (and lazily create) the module-level client singleton.

    Raises:
        EnvironmentError: If ``BOT_TOKEN`` is not configured.
    """
    global _default_client
    if _default_client is None:
        from config import BASE_URL, BOT_TOKEN, POLL_INTERVAL, REQUEST_TIMEOUT  # deferred to avoid import cycles

        if not BOT_TOKEN:
            raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")
        _default_client = BaleClient(
            BOT_TOKEN,
            base_url=BASE_URL,
            timeout=REQUEST_TIMEOUT,
            poll_interval=POLL_INTERVAL,
        )
    return _default_client
