"""Shared fixtures: an in-memory ``requests`` session and a client bound to it."""

import io
import json
import os
import sys
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sdk.client import CourierClient

TOKEN = "123456:AAH-test-token-secret"
TOKEN_HINT = "*secret"
CLOCK = 1700000000.0


def envelope(result: Any) -> bytes:
    return json.dumps({"ok": True, "result": result}).encode()


def api_error(error_code: int, description: str, **extra: Any) -> bytes:
    return json.dumps({"ok": False, "error_code": error_code, "description": description, **extra}).encode()


def message_dict(text: str = "_Test message_", chat_id: int = 75504797, message_id: int = 42) -> dict:
    return {
        "message_id": message_id,
        "chat": {"id": chat_id, "type": "private"},
        "date": 1700000000,
        "text": text,
    }


@dataclass
class RecordedCall:
    method: str
    url: str
    params: Optional[dict]
    data: Optional[bytes]
    headers: Optional[dict]
    timeout: Any
    verify: Any
    stream: bool


@dataclass
class CannedResponse:
    body: bytes = b""
    status: int = 200
    delay: float = 0.0
    error: Optional[BaseException] = None
    raw: Any = None


@dataclass
class FakeSession:
    """Stands in for :class:`requests.Session`; records calls and replays canned responses.

    ``delay`` waits on :attr:`release` so a test teardown can wake any worker
    thread still sleeping in an abandoned request.
    """

    calls: list = field(default_factory=list)
    responses: deque = field(default_factory=deque)
    release: threading.Event = field(default_factory=threading.Event)
    on_request: Optional[Callable[[RecordedCall], None]] = None
    closed: bool = False

    def queue(self, body: bytes = b"", status: int = 200, *, delay: float = 0.0,
              error: Optional[BaseException] = None, raw: Any = None) -> None:
        self.responses.append(CannedResponse(body, status, delay, error, raw))

    def request(self, method, url, params=None, data=None, headers=None, timeout=None,
                verify=True, stream=False, **kwargs) -> requests.Response:
        call = RecordedCall(method, url, params, data, headers, timeout, verify, stream)
        self.calls.append(call)
        if self.on_request is not None:
            self.on_request(call)
        canned = self.responses.popleft() if self.responses else CannedResponse(envelope(True))
        if canned.delay:
            self.release.wait(canned.delay)
        if canned.error is not None:
            raise canned.error
        response = requests.Response()
        response.status_code = canned.status
        response.raw = canned.raw if canned.raw is not None else io.BytesIO(canned.body)
        response.url = "https://api.invalid/redacted"
        return response

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def session():
    fake = FakeSession()
    yield fake
    fake.release.set()


@pytest.fixture()
def temp_dir(tmp_path):
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture()
def client(session, temp_dir):
    return CourierClient(TOKEN, session=session, temp_dir=str(temp_dir), clock=lambda: CLOCK)
