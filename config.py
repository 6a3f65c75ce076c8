"""Application configuration — environment variables and derived constants.

Loads ``BOT_TOKEN``, ``BALE_BASE_URL``, ``POLL_INTERVAL`` and
``REQUEST_TIMEOUT`` from the environment via ``python-dotenv``.  All values
are resolved at import time so other modules can ``from config import …``
without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import BaleLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = BaleLogger.get_logger()

DEFAULT_BASE_URL = "https://tapi.bale.ai"


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_seconds(name: str, raw: str | None, default: float | None) -> float | None:
    """Parse a non-negative number of seconds, falling back to *default*.

    An empty or missing value yields *default*; so does anything that is
    not a non-negative number, with a warning.
    """
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid number in environment, using default", extra={"variable": name, "value": raw})
        return default
    if value < 0:
        logger.warning("Negative duration in environment, using default", extra={"variable": name, "value": raw})
        return default
    return value


def _resolve_base_url(raw: str | None) -> str:
    """Return the API base URL without a trailing slash."""
    return (raw or DEFAULT_BASE_URL).strip().rstrip("/")


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN") or None
BASE_URL: str = _resolve_base_url(os.environ.get("BALE_BASE_URL"))
POLL_INTERVAL: float = _parse_seconds("POLL_INTERVAL", os.environ.get("POLL_INTERVAL"), 0.0) or 0.0
REQUEST_TIMEOUT: float | None = _parse_seconds("REQUEST_TIMEOUT", os.environ.get("REQUEST_TIMEOUT"), None)


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set", extra={"base_url": BASE_URL})
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set", extra={"base_url": BASE_URL})

logger.info(
    "Polling settings resolved",
    extra={"poll_interval": POLL_INTERVAL, "request_timeout": REQUEST_TIMEOUT},
)
