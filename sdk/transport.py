"""HTTP invoker: one Bot API round-trip under a deadline and a cancellation scope.

The blocking ``requests`` call runs in a worker thread (the same
:func:`asyncio.to_thread` offloading the bot layer has always used).  The
awaiting coroutine races that worker against the call deadline and the
client-wide scope; whichever loses is told to stop through a per-call
:class:`threading.Event` that the worker checks before sending and between
body chunks.

A non-2xx status is *not* an error here.  The raw status and bytes go back
to the caller, which decodes the envelope and tells API failures apart
from transport failures.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote

import requests

from sdk.exceptions import MediaIOError, ProtocolError, RequestCancelled, RequestTimeout, TransportError

DEFAULT_TIMEOUT = 10.0
MAX_RESPONSE_BYTES = 16 * 1024 * 1024
CHUNK_SIZE = 64 * 1024

_logger = logging.getLogger("sdk.transport")


def token_hint(token: str) -> str:
    """Return a log-safe stand-in for *token*: ``*`` plus its last six characters."""
    return f"*{token[-6:]}" if token else "*"


@dataclass(frozen=True)
class RawResponse:
    """Status code and body of a completed round-trip."""

    status_code: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpInvoker:
    """Performs single HTTP exchanges for one bot over a shared session.

    Aborting a call (scope, deadline or task cancellation) returns control to
    the caller at once, but the worker thread can only stop at a chunk
    boundary.  A worker still blocked inside ``session.request`` keeps its
    socket and its executor thread until the server answers or the per-socket
    timeout (equal to *timeout*) expires.

    Args:
        session: Connection pool shared by every call; owned by the caller.
        secret: The bot token.  Scrubbed from every error message.
        timeout: Overall per-call deadline in seconds.
        scope: Optional client-wide cancellation scope.  Once set, in-flight
            calls abort and new calls fail before any I/O.
        verify: Validate TLS certificates.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        secret: str,
        timeout: float = DEFAULT_TIMEOUT,
        scope: Optional[asyncio.Event] = None,
        verify: bool = True,
    ) -> None:
        self._session = session
        self._secret = secret
        self._timeout = timeout
        self._scope = scope
        self._verify = verify

    @property
    def timeout(self) -> float:
        return self._timeout

    def redact(self, text: str) -> str:
        """Replace every occurrence of the bot token in *text* with its hint."""
        if not self._secret:
            return text
        hint = token_hint(self._secret)
        return text.replace(self._secret, hint).replace(quote(self._secret, safe=""), hint)

    # ------------------------------------------------------------------
    #  Async surface
    # ------------------------------------------------------------------

    async def invoke(
        self,
        method: str,
        url: str,
        *,
        label: str,
        params: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
        body: Optional[bytes] = None,
        sink_path: Optional[str] = None,
        limit: Optional[int] = MAX_RESPONSE_BYTES,
    ) -> RawResponse:
        """Run one request and return its raw outcome.

        *label* names the call in logs and error messages; the URL, which
        embeds the token, never appears in either.  When *sink_path* is set a
        2xx body is streamed to that file instead of being returned.

        Raises:
            RequestCancelled: The client scope fired.
            asyncio.CancelledError: The awaiting task was cancelled; the worker is
                abandoned and the cancellation propagates unchanged.
            RequestTimeout: The deadline elapsed first.
            TransportError: The exchange failed at the network level.
            ProtocolError: The body exceeded *limit*.
            MediaIOError: *sink_path* could not be written.
        """
        if self._scope is not None and self._scope.is_set():
            raise RequestCancelled(f"{label}: cancelled before sending")

        abort = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(
                self._round_trip, abort, method, url, label, params, content_type, body, sink_path, limit
            )
        )
        scope_waiter = asyncio.ensure_future(self._scope.wait()) if self._scope is not None else None
        waiters = {worker} if scope_waiter is None else {worker, scope_waiter}

        _logger.debug("Sending request", extra={"api_endpoint": label, "http_method": method})
        try:
            done, _ = await asyncio.wait(waiters, timeout=self._timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            self._abandon(worker, abort, label)
            raise
        finally:
            if scope_waiter is not None:
                scope_waiter.cancel()

        if self._scope is not None and self._scope.is_set():
            self._abandon(worker, abort, label)
            raise RequestCancelled(f"{label}: request cancelled")
        if worker not in done:
            self._abandon(worker, abort, label)
            _logger.warning("Request timed out", extra={"api_endpoint": label, "timeout": self._timeout})
            raise RequestTimeout(f"{label}: no response within {self._timeout:g}s")
        return worker.result()

    @staticmethod
    def _abandon(worker: asyncio.Future, abort: threading.Event, label: str) -> None:
        abort.set()
        if worker.done():
            if not worker.cancelled():
                worker.exception()
            return

        def _reap(fut: asyncio.Future) -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                _logger.debug("Abandoned request finished with error", extra={"api_endpoint": label, "error": str(exc)})

        worker.add_done_callback(_reap)

    # ------------------------------------------------------------------
    #  Worker thread
    # ------------------------------------------------------------------

    def _translate(self, exc: requests.RequestException, label: str) -> TransportError:
        # Callers raise the result outside their ``except`` block: the original
        # exception carries the URL and must not become ``__context__``.
        message = self.redact(f"{label}: {exc}")
        if isinstance(exc, requests.Timeout):
            return RequestTimeout(message)
        return TransportError(message)

    def _round_trip(
        self,
        abort: threading.Event,
        method: str,
        url: str,
        label: str,
        params: Optional[Dict[str, str]],
        content_type: Optional[str],
        body: Optional[bytes],
        sink_path: Optional[str],
        limit: Optional[int],
    ) -> RawResponse:
        if abort.is_set():
            raise RequestCancelled(f"{label}: request cancelled")
        headers = {"Content-Type": content_type} if content_type else None
        failure: Optional[TransportError] = None
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                data=body,
                headers=headers,
                timeout=self._timeout,
                verify=self._verify,
                stream=True,
            )
        except requests.RequestException as exc:
            failure = self._translate(exc, label)
        if failure is not None:
            _logger.warning("Transport failure", extra={"api_endpoint": label, "error": str(failure)})
            raise failure

        try:
            status = response.status_code
            if sink_path is not None and 200 <= status < 300:
                self._stream_to(response, abort, label, sink_path)
                return RawResponse(status, b"")
            cap = MAX_RESPONSE_BYTES if limit is None and not 200 <= status < 300 else limit
            return RawResponse(status, self._read_body(response, abort, label, cap))
        finally:
            response.close()

    def _read_body(
        self, response: requests.Response, abort: threading.Event, label: str, limit: Optional[int]
    ) -> bytes:
        chunks = []
        size = 0
        failure: Optional[TransportError] = None
        try:
            for chunk in response.iter_content(CHUNK_SIZE):
                if abort.is_set():
                    raise RequestCancelled(f"{label}: request cancelled")
                size += len(chunk)
                if limit is not None and size > limit:
                    raise ProtocolError(f"{label}: response body exceeds {limit} bytes")
                chunks.append(chunk)
        except requests.RequestException as exc:
            failure = self._translate(exc, label)
        if failure is not None:
            raise failure
        return b"".join(chunks)

    def _stream_to(self, response: requests.Response, abort: threading.Event, label: str, path: str) -> None:
        if abort.is_set():
            raise RequestCancelled(f"{label}: request cancelled")
        try:
            handle = open(path, "wb")
        except OSError as exc:
            raise MediaIOError(f"cannot open destination file: {exc.strerror}") from exc
        completed = False
        failure: Optional[TransportError] = None
        try:
            with handle:
                for chunk in response.iter_content(CHUNK_SIZE):
                    if abort.is_set():
                        raise RequestCancelled(f"{label}: request cancelled")
                    handle.write(chunk)
            completed = True
        except requests.RequestException as exc:
            failure = self._translate(exc, label)
        except OSError as exc:
            raise MediaIOError(f"cannot write destination file: {exc.strerror}") from exc
        finally:
            if not completed:
                try:
                    os.unlink(path)
                except FileNotFoundError:
                    pass
        if failure is not None:
            raise failure
