"""Exception hierarchy for the Bale bot SDK."""

from typing import Any, Dict, Optional


class BaleError(Exception):
    """Base class for every error raised by the SDK."""


class TransportError(BaleError):
    """The HTTP round trip failed or returned something that is not a JSON object.

    Attributes:
        method: API method that was being invoked.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(self, method: str, message: str, status_code: Optional[int] = None) -> None:
        """Initialise with the API method, a description and the optional status."""
        self.method = method
        self.status_code = status_code
        super().__init__(f"{method}: {message}")


class ApiError(BaleError):
    """The API answered with ``ok: false``.

    Send operations return this as a :class:`~bale.models.SendFailure`; it is
    only raised when a caller asks for it via ``raise_for_error()``.

    Attributes:
        error_code: Error code reported by the API, if any.
        description: Human-readable reason reported by the API.
        response_body: Raw response body as a dict, when available.
    """

    def __init__(
        self,
        description: str,
        error_code: Optional[int] = None,
        response_body: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialise with the API description and optional code/body."""
        self.description = description
        self.error_code = error_code
        self.response_body = response_body or {}
        prefix = f"API error {error_code}" if error_code is not None else "API error"
        super().__init__(f"{prefix}: {description}")


class LocalValidationError(BaleError):
    """A request was rejected before reaching the network (e.g. missing file)."""
