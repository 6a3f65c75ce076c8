"""Tests for Transport and InputFile."""

import json
import sys
import os
from unittest.mock import patch, MagicMock

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bale.exceptions import LocalValidationError, TransportError
from bale.transport import Encoding, InputFile, Transport


def _response(body=None, status_code: int = 200, json_error: Exception | None = None) -> MagicMock:
    """Build a fake :class:`requests.Response`."""
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    if json_error is not None:
        mock_resp.json.side_effect = json_error
    else:
        mock_resp.json.return_value = body
    return mock_resp


@pytest.fixture()
def transport() -> Transport:
    return Transport("123:ABC", "https://tapi.example.com/")


@pytest.fixture()
def photo_file(tmp_path):
    path = tmp_path / "cat.png"
    path.write_bytes(b"\x89PNG fake")
    return path


# ── InputFile ────────────────────────────────────────────────────────────────


class TestInputFile:
    """Validate MIME detection and base-name handling."""

    def test_detects_mime_and_basename(self, photo_file) -> None:
        f = InputFile(photo_file)
        assert f.file_name == "cat.png"
        assert f.mime_type == "image/png"
        assert f.path == str(photo_file)

    def test_unknown_extension_falls_back(self, tmp_path) -> None:
        f = InputFile(tmp_path / "blob.unknownext")
        assert f.mime_type == "application/octet-stream"

    def test_explicit_mime_wins(self, photo_file) -> None:
        assert InputFile(photo_file, mime_type="image/x-custom").mime_type == "image/x-custom"


# ── URL construction ─────────────────────────────────────────────────────────


class TestUrl:
    def test_endpoint_layout(self, transport: Transport) -> None:
        assert transport.url_for("getUpdates") == "https://tapi.example.com/bot123:ABC/getUpdates"

    def test_default_timeout_is_blocking(self, transport: Transport) -> None:
        assert transport.timeout is None


# ── JSON encoding ────────────────────────────────────────────────────────────


class TestJsonInvoke:
    """Validate JSON-encoded requests and response decoding."""

    @patch("bale.transport.requests.post")
    def test_success(self, mock_post: MagicMock, transport: Transport) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"message_id": 1}})

        result = transport.invoke("sendMessage", {"chat_id": 42, "text": "hi", "reply_markup": None})

        assert result == {"ok": True, "result": {"message_id": 1}}
        args, kwargs = mock_post.call_args
        assert args[0] == "https://tapi.example.com/bot123:ABC/sendMessage"
        assert kwargs["json"] == {"chat_id": 42, "text": "hi"}
        assert "files" not in kwargs

    @patch("bale.transport.requests.post")
    def test_api_error_body_is_returned(self, mock_post: MagicMock, transport: Transport) -> None:
        body = {"ok": False, "description": "chat not found", "error_code": 400}
        mock_post.return_value = _response(body, status_code=400)

        assert transport.invoke("sendMessage", {"chat_id": 1, "text": "x"}) == body

    @patch("bale.transport.requests.post")
    def test_timeout_default_and_override(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": []})
        t = Transport("t", "https://tapi.example.com", timeout=5)

        t.invoke("getUpdates", {"offset": 1})
        assert mock_post.call_args.kwargs["timeout"] == 5

        t.invoke("getUpdates", {"offset": 1}, timeout=60)
        assert mock_post.call_args.kwargs["timeout"] == 60

        t.invoke("getUpdates", {"offset": 1}, timeout=None)
        assert mock_post.call_args.kwargs["timeout"] is None


# ── Failures ─────────────────────────────────────────────────────────────────


class TestTransportFailures:
    """Transport-level failures must raise, never return a malformed mapping."""

    @patch("bale.transport.requests.post")
    def test_connection_error(self, mock_post: MagicMock, transport: Transport) -> None:
        mock_post.side_effect = requests.ConnectionError("offline")

        with pytest.raises(TransportError) as exc_info:
            transport.invoke("getUpdates", {"offset": 1})
        assert exc_info.value.method == "getUpdates"
        assert "offline" in str(exc_info.value)

    @patch("bale.transport.requests.post")
    def test_timeout(self, mock_post: MagicMock, transport: Transport) -> None:
        mock_post.side_effect = requests.Timeout("slow")

        with pytest.raises(TransportError):
            transport.invoke("sendMessage", {"chat_id": 1, "text": "x"})

    @patch("bale.transport.requests.post")
    def test_non_json_body(self, mock_post: MagicMock, transport: Transport) -> None:
        mock_post.return_value = _response(status_code=502, json_error=ValueError("No JSON"))

        with pytest.raises(TransportError) as exc_info:
            transport.invoke("getUpdates", {"offset": 1})
        assert exc_info.value.status_code == 502

    @patch("bale.transport.requests.post")
    def test_json_that_is_not_an_object(self, mock_post: MagicMock, transport: Transport) -> None:
        mock_post.return_value = _response([1, 2, 3])

        with pytest.raises(TransportError):
            transport.invoke("getUpdates", {"offset": 1})


# ── Multipart encoding ───────────────────────────────────────────────────────


class TestMultipartInvoke:
    """Validate file streaming and handle release."""

    @patch("bale.transport.requests.post")
    def test_streams_file_content(self, mock_post: MagicMock, transport: Transport, photo_file) -> None:
        seen = {}

        def fake_post(url, data=None, files=None, timeout=None):
            name, handle, mime = files["photo"]
            seen.update(name=name, mime=mime, content=handle.read(), data=data, handle=handle)
            return _response({"ok": True, "result": {"message_id": 3}})

        mock_post.side_effect = fake_post
        markup = {"inline_keyboard": [[{"text": "a", "callback_data": "b"}]]}

        result = transport.invoke(
            "sendPhoto",
            {"chat_id": 9, "photo": InputFile(photo_file), "caption": None, "reply_markup": markup},
            Encoding.MULTIPART,
        )

        assert result["ok"] is True
        assert seen["name"] == "cat.png"
        assert seen["mime"] == "image/png"
        assert seen["content"] == b"\x89PNG fake"
        assert seen["data"] == {"chat_id": 9, "reply_markup": json.dumps(markup)}
        assert seen["handle"].closed

    @patch("bale.transport.requests.post")
    def test_handle_closed_on_transport_error(self, mock_post: MagicMock, transport: Transport, photo_file) -> None:
        handles = []

        def failing_post(url, data=None, files=None, timeout=None):
            handles.append(files["photo"][1])
            raise requests.ConnectionError("reset")

        mock_post.side_effect = failing_post

        with pytest.raises(TransportError):
            transport.invoke("sendPhoto", {"chat_id": 9, "photo": InputFile(photo_file)}, Encoding.MULTIPART)
        assert handles and handles[0].closed

    @patch("bale.transport.requests.post")
    def test_unreadable_file(self, mock_post: MagicMock, transport: Transport, tmp_path) -> None:
        with pytest.raises(LocalValidationError):
            transport.invoke(
                "sendDocument",
                {"chat_id": 9, "document": InputFile(tmp_path / "gone.txt")},
                Encoding.MULTIPART,
            )
        mock_post.assert_not_called()
