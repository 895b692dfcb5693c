"""Tests for the JSON log formatter and token scrubbing."""

import json
import logging
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import TOKEN
from core.logger import CourierLogger, TokenScrubber, _JsonFormatter, scrub


def _record(msg, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("courier", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestScrub:
    def test_plain_url(self) -> None:
        text = f"GET https://api.telegram.org/bot{TOKEN}/getMe failed"
        assert scrub(text) == "GET https://api.telegram.org/bot<redacted>/getMe failed"

    def test_quoted_colon(self) -> None:
        assert TOKEN.split(":")[1] not in scrub(f"/bot{TOKEN.replace(':', '%3A')}/x")

    def test_ordinary_text_untouched(self) -> None:
        assert scrub("chatbot 42: hello") == "chatbot 42: hello"


class TestTokenScrubber:
    def test_message_args_and_extra(self) -> None:
        record = _record("request to %s", f"/bot{TOKEN}/sendMessage", error=f"reset by /file/bot{TOKEN}/a.jpg", status=500)
        assert TokenScrubber().filter(record) is True
        rendered = _JsonFormatter().format(record)
        assert TOKEN not in rendered
        entry = json.loads(rendered)
        assert entry["message"] == "request to /bot<redacted>/sendMessage"
        assert entry["status"] == 500


class TestJsonFormatter:
    def test_standard_and_extra_fields(self) -> None:
        entry = json.loads(_JsonFormatter().format(_record("Update received", update_id=7, kind="message")))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "courier"
        assert entry["message"] == "Update received"
        assert entry["update_id"] == 7
        assert entry["kind"] == "message"
        assert "args" not in entry

    def test_traceback_included(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("courier", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        entry = json.loads(_JsonFormatter().format(record))
        assert "RuntimeError: boom" in entry["traceback"]


class TestCourierLogger:
    def test_singleton(self) -> None:
        assert CourierLogger.get_logger() is CourierLogger.get_logger()

    def test_capture_shares_sinks(self) -> None:
        captured = CourierLogger.capture("tgcourier.test")
        shared = CourierLogger.get_logger()
        assert set(shared.handlers) <= set(captured.handlers)
        assert captured.propagate is False
