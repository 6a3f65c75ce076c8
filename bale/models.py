"""Pydantic data models for the Bale bot SDK.

Covers the polling session, the normalized event shape produced from raw
updates, the uniform send result, the per-kind media descriptors and the
inline keyboard button.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from bale.exceptions import ApiError, LocalValidationError

DEFAULT_BASE_URL = "https://tapi.bale.ai"


# ── Session ──────────────────────────────────────────────────────────────────


class BotSession(BaseModel):
    """Bot credentials plus the polling cursor.

    The cursor starts at 0 for every new session and is never persisted.
    Sessions are immutable: :meth:`advance` returns a new value.
    """

    token: str = Field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    last_update_id: int = 0

    model_config = {"frozen": True}

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def offset(self) -> int:
        """The ``offset`` to pass to ``getUpdates``."""
        return self.last_update_id + 1

    def advance(self, update_id: int) -> "BotSession":
        """Return a session whose cursor is at least *update_id*."""
        if update_id <= self.last_update_id:
            return self
        return self.model_copy(update={"last_update_id": update_id})


# ── Normalized events ────────────────────────────────────────────────────────


class EventType(str, enum.Enum):
    """Kinds of normalized update."""

    TEXT = "simple_text_message"
    CALLBACK = "callback_message"
    PHOTO = "simple_photo_message"
    UNKNOWN = "unknown_message"


class NormalizedEvent(BaseModel):
    """Uniform view over a text message, a callback query or a photo message.

    ``data`` holds the text, the callback payload or the photo size array
    depending on ``type``; ``caption`` is only set for photos.  An event with
    ``status=False`` is always ``unknown_message`` and carries nothing else.
    """

    status: bool
    type: EventType
    id: Optional[int] = None
    message_id: Optional[int] = None
    chat_id: Optional[Union[int, str]] = None
    from_field: Optional[Dict[str, Any]] = Field(None, alias="from")
    request_time: Optional[int] = None
    data: Any = None
    caption: Optional[str] = None

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="after")
    def _unknown_events_are_empty(self) -> "NormalizedEvent":
        if self.status:
            if self.type is EventType.UNKNOWN:
                raise ValueError("unknown_message events must have status=False")
            return self
        if self.type is not EventType.UNKNOWN:
            raise ValueError("status=False requires type=unknown_message")
        extra_fields = self.model_fields_set - {"status", "type"}
        if extra_fields:
            raise ValueError(f"unknown_message events carry no fields, got {sorted(extra_fields)}")
        return self

    @classmethod
    def unknown(cls) -> "NormalizedEvent":
        """Return the event used for every unrecognised update."""
        return cls(status=False, type=EventType.UNKNOWN)

    def to_dict(self) -> Dict[str, Any]:
        """Render the event as a plain mapping using the wire field names."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


# ── Send results ─────────────────────────────────────────────────────────────


class SendSuccess(BaseModel):
    """Successful send/forward/copy.

    Kind-specific echo fields (``photo``, ``audio``, …) are stored as extra
    attributes, e.g. ``result.photo``.
    """

    ok: Literal[True] = True
    message_id: Optional[int] = None
    chat_id: Optional[Union[int, str]] = None

    model_config = {"extra": "allow"}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class SendFailure(BaseModel):
    """Failed send/forward/copy, either reported by the API or caught locally."""

    ok: Literal[False] = False
    error: str
    error_code: Optional[int] = None

    _local: bool = PrivateAttr(default=False)

    @classmethod
    def local(cls, error: str) -> "SendFailure":
        """Build a failure for a request that never left the process."""
        failure = cls(error=error)
        failure._local = True
        return failure

    @property
    def is_local(self) -> bool:
        return self._local

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def raise_for_error(self) -> None:
        """Raise the matching exception for this failure.

        Raises:
            LocalValidationError: For failures detected before any request.
            ApiError: For failures reported by the API.
        """
        if self._local:
            raise LocalValidationError(self.error)
        raise ApiError(self.error, self.error_code)


SendResult = Union[SendSuccess, SendFailure]


# ── Media descriptors ────────────────────────────────────────────────────────


class MediaKind(str, enum.Enum):
    """Message kinds handled by :meth:`bale.client.BaleClient.send_media`."""

    TEXT = "text"
    PHOTO = "photo"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    ANIMATION = "animation"
    VOICE = "voice"


@dataclasses.dataclass(frozen=True, slots=True)
class MediaSpec:
    """Per-kind request descriptor."""

    method: str                    # API method, e.g. "sendPhoto"
    field: str                     # payload field carrying the content
    echo_field: Optional[str]      # result field copied into SendSuccess
    supports_caption: bool = True
    uploads_file: bool = True


MEDIA_SPECS: Dict[MediaKind, MediaSpec] = {
    MediaKind.TEXT: MediaSpec("sendMessage", "text", None, supports_caption=False, uploads_file=False),
    MediaKind.PHOTO: MediaSpec("sendPhoto", "photo", "photo"),
    MediaKind.AUDIO: MediaSpec("sendAudio", "audio", "audio"),
    MediaKind.VIDEO: MediaSpec("sendVideo", "video", "video"),
    MediaKind.DOCUMENT: MediaSpec("sendDocument", "document", "document"),
    MediaKind.ANIMATION: MediaSpec("sendAnimation", "animation", "animation", supports_caption=False),
    MediaKind.VOICE: MediaSpec("sendVoice", "voice", "voice"),
}


# ── Keyboards ────────────────────────────────────────────────────────────────


class InlineKeyboardButton(BaseModel):
    """One button of an inline keyboard."""

    text: str
    callback_data: Optional[str] = None
    url: Optional[str] = None

    model_config = {"populate_by_name": True, "extra": "allow"}
