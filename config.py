"""Application configuration — environment variables and derived constants.

Loads the bot token, HTTP settings, webhook settings and ``INVITE_CHAT_ID``
from the environment via ``python-dotenv``.  All values are resolved at
import time so other modules can ``from config import …`` without repeated
lookups.  The ``sdk`` package never reads this module; the entrypoint passes
the values to :class:`sdk.CourierClient` explicitly.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import logging
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import CourierLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

# ── Logger (used for startup diagnostics at the bottom of this module) ───────
logger = CourierLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_float(name: str, default: float) -> float:
    """Read a positive float from *name*, falling back to *default* on bad input."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float in environment, using default", extra={"variable": name, "default": default})
        return default
    if value <= 0:
        logger.warning("Non-positive value in environment, using default", extra={"variable": name, "default": default})
        return default
    return value


def _parse_port(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid port in environment, using default", extra={"variable": name, "default": default})
        return default
    if not 0 < value < 65536:
        logger.warning("Port out of range, using default", extra={"variable": name, "default": default})
        return default
    return value


def _parse_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_chat_id(raw: str | None) -> int | str | None:
    """Parse a chat id: a signed integer or an ``@channelusername``.

    Anything else is ignored with a warning.
    """
    if not raw:
        return None
    raw = raw.strip()
    if raw.startswith("@") and len(raw) > 1:
        return raw
    try:
        return int(raw)
    except ValueError:
        logger.warning("INVITE_CHAT_ID is neither numeric nor @username; ignoring it")
        return None


def _parse_log_level(raw: str | None) -> int:
    if not raw:
        return logging.INFO
    level = logging.getLevelName(raw.strip().upper())
    if isinstance(level, int):
        return level
    logger.warning("Unknown LOG_LEVEL, using INFO", extra={"log_level": raw})
    return logging.INFO


def _normalise_path(raw: str | None, default: str) -> str:
    path = (raw or default).strip() or default
    return path if path.startswith("/") else f"/{path}"


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
TELEGRAM_API_BASE: str = os.environ.get("TELEGRAM_API_BASE") or "https://api.telegram.org"
REQUEST_TIMEOUT: float = _parse_float("REQUEST_TIMEOUT", 10.0)
TLS_SKIP_VERIFY: bool = _parse_bool("TLS_SKIP_VERIFY")

WEBHOOK_HOST: str = os.environ.get("WEBHOOK_HOST") or "0.0.0.0"
WEBHOOK_PORT: int = _parse_port("WEBHOOK_PORT", 8080)
WEBHOOK_PATH: str = _normalise_path(os.environ.get("WEBHOOK_PATH"), "/webhook")
WEBHOOK_PUBLIC_URL: str | None = os.environ.get("WEBHOOK_PUBLIC_URL") or None
WEBHOOK_SECRET: str | None = os.environ.get("WEBHOOK_SECRET") or None

INVITE_CHAT_ID: int | str | None = _parse_chat_id(os.environ.get("INVITE_CHAT_ID"))
LOG_LEVEL: int = _parse_log_level(os.environ.get("LOG_LEVEL"))


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set")
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set")

if TLS_SKIP_VERIFY:
    logger.warning("TLS_SKIP_VERIFY is enabled; certificate checks are off (development only)")

if INVITE_CHAT_ID is None:
    logger.warning("No INVITE_CHAT_ID configured; the Join command will not issue links")

logger.info(
    "Webhook settings resolved",
    extra={
        "webhook_host": WEBHOOK_HOST,
        "webhook_port": WEBHOOK_PORT,
        "webhook_path": WEBHOOK_PATH,
        "webhook_public_url": WEBHOOK_PUBLIC_URL,
        "webhook_secret_set": WEBHOOK_SECRET is not None,
    },
)
