"""BaleLogger — Singleton JSON logger with console and rotating file output.

Provides a single, project-wide ``balebot`` logger that writes structured JSON
to stdout and, unless disabled, to ``logs/balebot.log`` (with automatic
rotation).  SDK modules log through child loggers such as
``balebot.transport`` so they inherit the same handlers.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

LOGGER_NAME = "balebot"


class _JsonFormatter(logging.Formatter):
    """Format every log record as a single-line JSON object.

    Standard fields (timestamp, level, logger, message, module, func_name)
    are always present.  Any *extra* key-value pairs passed via the ``extra``
    parameter of a logging call are merged into the JSON object, so callers
    can attach request context such as ``api_endpoint``, ``chat_id`` or
    ``update_id``.

    Example::

        logger.info("Message sent", extra={"api_endpoint": "sendMessage", "chat_id": 42})

    Produces::

        {"timestamp": "…", "level": "INFO", …, "api_endpoint": "sendMessage", "chat_id": 42}
    """

    # Keys that belong to the standard LogRecord — everything else is extra.
    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    )))

    def format(self, record: logging.LogRecord) -> str:
        """Serialize *record* to a JSON string."""
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class BaleLogger:
    """Singleton logger with a console handler and an optional rotating file.

    The file location comes from ``BALEBOT_LOG_DIR`` (default ``logs``); set
    it to an empty string to log to the console only.

    Usage::

        from core.logger import BaleLogger

        logger = BaleLogger.get_logger()
        logger.info("Bot started")
    """

    _instance: Optional["BaleLogger"] = None
    _logger: Optional[logging.Logger] = None

    # Rotation settings
    _DEFAULT_LOG_DIR: str = "logs"
    _LOG_FILE: str = "balebot.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "BaleLogger":
        """Ensure only one instance is ever created (Singleton)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level)
        return cls._instance

    # ------------------------------------------------------------------
    # Initialisation helpers
    # ------------------------------------------------------------------

    def _init_logger(self, level: int) -> None:
        """Create the underlying :class:`logging.Logger` and attach handlers."""
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(level)

        # Avoid duplicate handlers if the module is reloaded.
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        log_dir = os.environ.get("BALEBOT_LOG_DIR", self._DEFAULT_LOG_DIR)
        if not log_dir:
            return

        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, self._LOG_FILE),
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def get_logger(name: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
        """Return the shared logger, or one of its children when *name* is given.

        Creates the singleton on first call; subsequent calls reuse the same
        handlers regardless of the *level* argument.
        """
        instance = BaleLogger(level)
        assert instance._logger is not None  # guaranteed by __new__
        if name:
            return instance._logger.getChild(name)
        return instance._logger
