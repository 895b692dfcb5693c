"""CourierLogger -- process-wide structured logging for the bot service.

One shared ``courier`` logger emits single-line JSON records to stdout and to
a size-rotated file under ``LOG_DIR`` (``logs/`` by default).  Library
namespaces such as ``sdk`` and ``uvicorn`` are attached to the same sinks
with :meth:`CourierLogger.capture`.

Every sink carries a :class:`TokenScrubber`, so a Bot API URL that slips into
a message or an ``extra`` value is written with its token masked.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, List, Optional

# ``bot<id>:<secret>`` as it appears in Bot API and file URLs.
_TOKEN_RE = re.compile(r"bot\d{3,}(?::|%3A)[A-Za-z0-9_-]{6,}")


def scrub(text: str) -> str:
    """Mask every bot token embedded in *text*."""
    return _TOKEN_RE.sub("bot<redacted>", text)


class TokenScrubber(logging.Filter):
    """Rewrite a record in place so no bot token reaches a sink."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        for key, value in list(record.__dict__.items()):
            if key not in _JsonFormatter.RESERVED and isinstance(value, str):
                setattr(record, key, scrub(value))
        return True


class _JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    ``timestamp``, ``level``, ``logger``, ``message``, ``module`` and
    ``func_name`` are always present; ``extra`` keys follow them::

        logger.info("Update received", extra={"update_id": 7, "kind": "message"})
        # {"timestamp": "...", "level": "INFO", ..., "update_id": 7, "kind": "message"}
    """

    RESERVED: frozenset = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    ))) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }
        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in self.RESERVED and key not in entry
        )
        if record.exc_info:
            entry["traceback"] = scrub(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False, default=str)


class CourierLogger:
    """Owner of the shared ``courier`` logger and its sinks.

    Usage::

        from core.logger import CourierLogger

        logger = CourierLogger.get_logger()
        logger.info("Webhook server starting", extra={"port": 8080})
    """

    _instance: Optional["CourierLogger"] = None
    _logger: Optional[logging.Logger] = None

    NAME: str = "courier"
    FILE_NAME: str = "courier.log"
    MAX_BYTES: int = 5 * 1024 * 1024
    BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "CourierLogger":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._logger = instance._configure(level)
            cls._instance = instance
        return cls._instance

    def _configure(self, level: int) -> logging.Logger:
        logger = logging.getLogger(self.NAME)
        logger.setLevel(level)
        # A reloaded module must not stack a second set of sinks.
        if not logger.handlers:
            for sink in self._sinks(level):
                logger.addHandler(sink)
        return logger

    def _sinks(self, level: int) -> List[logging.Handler]:
        log_dir = os.environ.get("LOG_DIR") or "logs"
        os.makedirs(log_dir, exist_ok=True)
        sinks: List[logging.Handler] = [
            logging.StreamHandler(),
            RotatingFileHandler(
                os.path.join(log_dir, self.FILE_NAME),
                maxBytes=self.MAX_BYTES,
                backupCount=self.BACKUP_COUNT,
                encoding="utf-8",
            ),
        ]
        formatter = _JsonFormatter()
        for sink in sinks:
            sink.setLevel(level)
            sink.setFormatter(formatter)
            sink.addFilter(TokenScrubber())
        return sinks

    @staticmethod
    def get_logger(level: int = logging.INFO) -> logging.Logger:
        """Return the shared logger.  *level* only applies on the first call."""
        logger = CourierLogger(level)._logger
        assert logger is not None
        return logger

    @staticmethod
    def capture(name: str) -> logging.Logger:
        """Send records of the *name* namespace to the shared sinks only."""
        shared = CourierLogger.get_logger()
        target = logging.getLogger(name)
        target.setLevel(shared.level)
        for sink in shared.handlers:
            if sink not in target.handlers:
                target.addHandler(sink)
        target.propagate = False
        return target

    def cleanup(self) -> None:
        """Flush, close and detach every sink."""
        if self._logger is None:
            return
        for sink in list(self._logger.handlers):
            sink.flush()
            sink.close()
            self._logger.removeHandler(sink)

    def __del__(self) -> None:
        self.cleanup()
