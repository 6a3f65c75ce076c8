"""Transport — one blocking POST against ``{base_url}/bot{token}/{method}``.

The body is either JSON or ``multipart/form-data``.  In multipart mode every
:class:`InputFile` value is streamed from disk with its base name and a MIME
type guessed from the file name.  The response body is always decoded as
JSON, whatever the HTTP status, so ``ok: false`` replies reach the caller as
data; anything that prevents getting a JSON object back raises
:class:`~bale.exceptions.TransportError`.
"""

from __future__ import annotations

import contextlib
import enum
import json
import mimetypes
import os
from typing import Any, Dict, Optional, Union

import requests

from bale.exceptions import LocalValidationError, TransportError
from core.logger import BaleLogger

logger = BaleLogger.get_logger("transport")

_DEFAULT_MIME_TYPE = "application/octet-stream"

# Sentinel: "use the transport's default timeout".
_DEFAULT = object()


class Encoding(str, enum.Enum):
    """Request body encodings supported by :meth:`Transport.invoke`."""

    JSON = "json"
    MULTIPART = "multipart"


class InputFile:
    """A local file to be uploaded as a multipart file part."""

    def __init__(self, path: Union[str, os.PathLike], mime_type: Optional[str] = None) -> None:
        self.path = os.fspath(path)
        self.file_name = os.path.basename(self.path)
        self.mime_type = mime_type or mimetypes.guess_type(self.file_name)[0] or _DEFAULT_MIME_TYPE

    def __repr__(self) -> str:
        return f"InputFile({self.path!r}, mime_type={self.mime_type!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InputFile):
            return NotImplemented
        return (self.path, self.mime_type) == (other.path, other.mime_type)


def _form_value(value: Any) -> Any:
    """Encode a non-file multipart field."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class Transport:
    """Executes API methods for one bot token.

    Args:
        token: Bot token.
        base_url: API root, e.g. ``https://tapi.bale.ai``.
        timeout: Default per-request timeout in seconds; ``None`` blocks
            until the server answers.
    """

    def __init__(self, token: str, base_url: str, timeout: Optional[float] = None) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def url_for(self, method: str) -> str:
        """Return the endpoint URL for *method*."""
        return f"{self._base_url}/bot{self._token}/{method}"

    # ------------------------------------------------------------------
    #  Public API
    # ------------------------------------------------------------------

    def invoke(
        self,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        encoding: Encoding = Encoding.JSON,
        timeout: Any = _DEFAULT,
    ) -> Dict[str, Any]:
        """POST *payload* to *method* and return the decoded JSON object.

        ``None`` values are dropped from *payload* before encoding.

        Raises:
            TransportError: On connection failure, timeout, or a response
                body that is not a JSON object.
        """
        body = {key: value for key, value in (payload or {}).items() if value is not None}
        request_timeout = self._timeout if timeout is _DEFAULT else timeout
        url = self.url_for(method)

        logger.debug("Invoking API method", extra={"api_endpoint": method, "encoding": encoding.value})
        try:
            if encoding is Encoding.MULTIPART:
                response = self._post_multipart(url, body, request_timeout)
            else:
                response = requests.post(url, json=body, timeout=request_timeout)
        except requests.RequestException as exc:
            logger.error("Request failed", extra={"api_endpoint": method, "error": str(exc)})
            raise TransportError(method, f"request failed: {exc}") from exc

        try:
            decoded = response.json()
        except ValueError as exc:
            logger.error(
                "Non-JSON response",
                extra={"api_endpoint": method, "status_code": response.status_code},
            )
            raise TransportError(method, "response body is not JSON", response.status_code) from exc

        if not isinstance(decoded, dict):
            raise TransportError(method, "response body is not a JSON object", response.status_code)

        if not decoded.get("ok"):
            logger.warning(
                "API returned an error",
                extra={
                    "api_endpoint": method,
                    "status_code": response.status_code,
                    "error_code": decoded.get("error_code"),
                    "description": decoded.get("description"),
                },
            )
        return decoded

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _post_multipart(url: str, body: Dict[str, Any], timeout: Optional[float]) -> requests.Response:
        """Send *body* as multipart form data, streaming every :class:`InputFile`.

        File handles are closed on every exit path.

        Raises:
            LocalValidationError: If a file cannot be opened.
        """
        with contextlib.ExitStack() as stack:
            files: Dict[str, Any] = {}
            data: Dict[str, Any] = {}
            for key, value in body.items():
                if isinstance(value, InputFile):
                    try:
                        handle = stack.enter_context(open(value.path, "rb"))
                    except OSError as exc:
                        raise LocalValidationError(f"Cannot open file: {value.path}") from exc
                    files[key] = (value.file_name, handle, value.mime_type)
                else:
                    data[key] = _form_value(value)
            return requests.post(url, data=data, files=files, timeout=timeout)
