"""Tests for update normalization and the polling loop."""

import sys
import os
import threading
from unittest.mock import patch, MagicMock

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bale.exceptions import TransportError
from bale.models import BotSession, EventType, NormalizedEvent
from bale.transport import Transport
from bale.updates import UpdatePoller, normalize_update


def _text_update(update_id: int = 5, text: str = "hi") -> dict:
    return {
        "update_id": update_id,
        "message": {"text": text, "chat": {"id": 9}, "from": {"id": 1}, "date": 100, "message_id": 7},
    }


def _callback_update(update_id: int = 6) -> dict:
    return {
        "update_id": update_id,
        "callback_query": {
            "id": "cb1",
            "from": {"id": 2},
            "date": 200,
            "data": "help",
            "message": {"message_id": 10, "chat": {"id": 11}},
        },
    }


def _photo_update(update_id: int = 8, caption: str | None = "a cat") -> dict:
    message = {
        "message_id": 12,
        "chat": {"id": 13},
        "from": {"id": 3},
        "date": 300,
        "photo": [{"file_id": "small"}, {"file_id": "big"}],
    }
    if caption is not None:
        message["caption"] = caption
    return {"update_id": update_id, "message": message}


def _batch(*updates) -> dict:
    return {"ok": True, "result": list(updates)}


@pytest.fixture()
def transport() -> MagicMock:
    return MagicMock(spec=Transport)


@pytest.fixture()
def session() -> BotSession:
    return BotSession(token="123:ABC")


# ── Normalizer ───────────────────────────────────────────────────────────────


class TestNormalizeUpdate:
    """Validate classification and field mapping."""

    def test_text_message(self) -> None:
        event = normalize_update(_text_update())
        assert event.to_dict() == {
            "status": True,
            "type": "simple_text_message",
            "id": 5,
            "message_id": 7,
            "chat_id": 9,
            "from": {"id": 1},
            "request_time": 100,
            "data": "hi",
        }

    def test_callback_message(self) -> None:
        event = normalize_update(_callback_update())
        assert event.type is EventType.CALLBACK
        assert event.message_id == 10
        assert event.chat_id == 11
        assert event.from_field == {"id": 2}
        assert event.request_time == 200
        assert event.data == "help"

    def test_photo_message(self) -> None:
        event = normalize_update(_photo_update())
        assert event.type is EventType.PHOTO
        assert event.data == [{"file_id": "small"}, {"file_id": "big"}]
        assert event.caption == "a cat"
        assert event.chat_id == 13

    def test_photo_without_caption_keeps_null_caption(self) -> None:
        event = normalize_update(_photo_update(caption=None))
        assert event.to_dict()["caption"] is None

    def test_text_wins_over_callback(self) -> None:
        raw = _text_update()
        raw["callback_query"] = _callback_update()["callback_query"]
        assert normalize_update(raw).type is EventType.TEXT

    def test_callback_wins_over_photo(self) -> None:
        raw = _photo_update()
        raw["callback_query"] = _callback_update()["callback_query"]
        assert normalize_update(raw).type is EventType.CALLBACK

    def test_unknown_shape(self) -> None:
        event = normalize_update({"update_id": 1, "edited_message": {"text": "x"}})
        assert event.status is False
        assert event.type is EventType.UNKNOWN
        assert event.to_dict() == {"status": False, "type": "unknown_message"}

    def test_non_mapping_is_unknown(self) -> None:
        assert normalize_update(None).type is EventType.UNKNOWN
        assert normalize_update("garbage").type is EventType.UNKNOWN

    def test_invalid_field_types_degrade_to_unknown(self) -> None:
        raw = _text_update()
        raw["message"]["from"] = "not-a-user"
        assert normalize_update(raw) == NormalizedEvent.unknown()


# ── Session cursor ───────────────────────────────────────────────────────────


class TestBotSession:
    def test_starts_at_zero(self, session: BotSession) -> None:
        assert session.last_update_id == 0
        assert session.offset == 1

    def test_advance_returns_new_session(self, session: BotSession) -> None:
        advanced = session.advance(5)
        assert advanced.last_update_id == 5
        assert session.last_update_id == 0

    def test_advance_never_moves_backwards(self, session: BotSession) -> None:
        assert session.advance(9).advance(4).last_update_id == 9

    def test_frozen(self, session: BotSession) -> None:
        with pytest.raises(ValidationError):
            session.last_update_id = 3

    def test_token_hidden_from_repr(self, session: BotSession) -> None:
        assert "123:ABC" not in repr(session)

    def test_base_url_default_and_strip(self) -> None:
        assert BotSession(token="t").base_url == "https://tapi.bale.ai"
        assert BotSession(token="t", base_url="https://x.test/").base_url == "https://x.test"


# ── Poller ───────────────────────────────────────────────────────────────────


class TestPollOnce:
    """One getUpdates round."""

    def test_scenario_single_text_update(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.return_value = _batch(_text_update())
        poller = UpdatePoller(transport)

        event, session = poller.poll_once(session)

        transport.invoke.assert_called_once_with("getUpdates", {"offset": 1})
        assert session.last_update_id == 5
        assert event.data == "hi"

    def test_returns_first_update_and_leaves_the_rest(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.side_effect = [
            _batch(_text_update(5), _callback_update(6)),
            _batch(_callback_update(6)),
        ]
        poller = UpdatePoller(transport)

        first, session = poller.poll_once(session)
        assert first.id == 5
        assert session.last_update_id == 5

        second, session = poller.poll_once(session)
        assert transport.invoke.call_args.args == ("getUpdates", {"offset": 6})
        assert second.type is EventType.CALLBACK
        assert session.last_update_id == 6

    def test_unknown_updates_still_advance_cursor(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.return_value = _batch({"update_id": 17, "poll": {}})

        event, session = UpdatePoller(transport).poll_once(session)

        assert event.status is False
        assert session.last_update_id == 17

    def test_items_without_update_id_are_skipped(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.return_value = _batch({"message": {"text": "orphan"}}, _text_update(21))

        event, session = UpdatePoller(transport).poll_once(session)

        assert event.id == 21
        assert session.last_update_id == 21

    def test_empty_batch(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.return_value = _batch()

        event, new_session = UpdatePoller(transport).poll_once(session)

        assert event is None
        assert new_session is session

    def test_api_error_is_treated_as_empty(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.return_value = {"ok": False, "description": "Unauthorized", "error_code": 401}

        event, new_session = UpdatePoller(transport).poll_once(session)

        assert event is None
        assert new_session.last_update_id == 0

    def test_transport_error_propagates(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.side_effect = TransportError("getUpdates", "offline")

        with pytest.raises(TransportError):
            UpdatePoller(transport).poll_once(session)


class TestNextEvent:
    """The blocking wait-for-next-update primitive."""

    def test_repeats_until_an_update_arrives(self, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.side_effect = [_batch(), _batch(), _batch(_text_update(3))]

        event, session = UpdatePoller(transport).next_event(session)

        assert transport.invoke.call_count == 3
        assert event.id == 3
        assert session.last_update_id == 3

    @patch("bale.updates.time.sleep")
    def test_poll_interval_between_empty_polls(self, mock_sleep: MagicMock, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.side_effect = [_batch(), _batch(_text_update(3))]

        UpdatePoller(transport, poll_interval=0.5).next_event(session)

        mock_sleep.assert_called_once_with(0.5)

    @patch("bale.updates.time.sleep")
    def test_no_sleep_by_default(self, mock_sleep: MagicMock, transport: MagicMock, session: BotSession) -> None:
        transport.invoke.side_effect = [_batch(), _batch(_text_update(3))]

        UpdatePoller(transport).next_event(session)

        mock_sleep.assert_not_called()

    def test_stop_event_ends_the_wait(self, transport: MagicMock, session: BotSession) -> None:
        stop = threading.Event()
        stop.set()

        event, new_session = UpdatePoller(transport).next_event(session, stop=stop)

        assert event is None
        assert new_session is session
        transport.invoke.assert_not_called()

    def test_stop_set_while_polling(self, transport: MagicMock, session: BotSession) -> None:
        stop = threading.Event()

        def empty_then_stop(method, payload):
            stop.set()
            return _batch()

        transport.invoke.side_effect = empty_then_stop

        event, _ = UpdatePoller(transport, poll_interval=0.01).next_event(session, stop=stop)

        assert event is None
        assert transport.invoke.call_count == 1

    def test_negative_interval_rejected(self, transport: MagicMock) -> None:
        with pytest.raises(ValueError):
            UpdatePoller(transport, poll_interval=-1)
