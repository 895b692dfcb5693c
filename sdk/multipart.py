"""Multipart form assembly for the file-carrying methods.

Media arrives base64-encoded.  Each payload is decoded once, staged in a
temp file owned by a :class:`MediaStage` and placed in the form under its
field name.  The stage removes its files when the ``with`` (or
``async with``) block exits, whether the call succeeded or not.

Everything here does blocking file I/O; async callers run :func:`build_form`
and the stage cleanup through ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from urllib3 import encode_multipart_formdata

from sdk.exceptions import EncodeError, MediaIOError
from sdk.methods import MultipartMethod

TEMP_PREFIX = "tgcourier_"

_logger = logging.getLogger("sdk.multipart")


@dataclass(frozen=True)
class MultipartBody:
    """A finished ``multipart/form-data`` body and the query string that goes with it."""

    content_type: str
    body: bytes
    params: Dict[str, str] = field(default_factory=dict)


def decode_media(data: str, *, field_name: str) -> bytes:
    """Decode one base64 media payload, rejecting empty or malformed input."""
    compact = "".join(data.split())
    if not compact:
        raise EncodeError(f"{field_name}: media payload is empty")
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        raise EncodeError(f"{field_name}: media payload is not valid base64") from None
    if not raw:
        raise EncodeError(f"{field_name}: media payload is empty")
    return raw


class MediaStage:
    """Scoped owner of the temp files created for one media call.

    File names carry the creation time in milliseconds and the file's index
    within the call, e.g. ``tgcourier_1700000000000_0_xxxx.jpeg``.  Staging and
    cleanup may run on different threads; once closed, the stage refuses new
    files so a late writer cannot leave one behind.
    """

    def __init__(self, *, temp_dir: Optional[str] = None, clock: Callable[[], float] = time.time) -> None:
        self._temp_dir = temp_dir
        self._clock = clock
        self._paths: List[str] = []
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> MediaStage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> MediaStage:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def paths(self) -> List[str]:
        return list(self._paths)

    def stage(self, raw: bytes, *, suffix: str = "") -> str:
        """Write *raw* to a new temp file and return its path."""
        with self._lock:
            if self._closed:
                raise MediaIOError("media stage is already closed")
            stamp = int(self._clock() * 1000)
            prefix = f"{TEMP_PREFIX}{stamp}_{len(self._paths)}_"
            try:
                fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=self._temp_dir)
            except OSError as exc:
                raise MediaIOError(f"could not create temp file: {exc.strerror}") from exc
            self._paths.append(path)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(raw)
            except OSError as exc:
                raise MediaIOError(f"could not write temp file: {exc.strerror}") from exc
            return path

    def read(self, path: str) -> bytes:
        try:
            with open(path, "rb") as handle:
                return handle.read()
        except OSError as exc:
            raise MediaIOError(f"could not read temp file: {exc.strerror}") from exc

    def close(self) -> None:
        """Remove every staged file and refuse new ones.  Safe to call more than once."""
        with self._lock:
            self._closed = True
            while self._paths:
                path = self._paths.pop()
                try:
                    os.unlink(path)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    _logger.warning("Temp file cleanup failed", extra={"path": path, "error": exc.strerror})

    async def aclose(self) -> None:
        """Run :meth:`close` in a worker thread; it completes even if the caller is cancelled."""
        cleanup = asyncio.ensure_future(asyncio.to_thread(self.close))
        try:
            await asyncio.shield(cleanup)
        except asyncio.CancelledError:
            await cleanup
            raise


def build_form(request: MultipartMethod, stage: MediaStage) -> MultipartBody:
    """Assemble the multipart body for *request*, staging its media in *stage*.

    Raises:
        InvalidArgument: The request fails a local argument check (e.g. album size).
        EncodeError: A media payload is empty or not base64.
        MediaIOError: A temp file could not be written or read back.
    """
    parts = request.media_parts()
    decoded = [(part, decode_media(part.data, field_name=part.field)) for part in parts]

    fields: list = list(request.text_fields())
    for part, raw in decoded:
        suffix = os.path.splitext(part.filename)[1]
        path = stage.stage(raw, suffix=suffix)
        fields.append((part.field, (part.filename, stage.read(path))))

    body, content_type = encode_multipart_formdata(fields)
    _logger.debug(
        "Multipart form built",
        extra={"api_endpoint": request.api_method, "files": len(decoded), "body_size": len(body)},
    )
    return MultipartBody(content_type=content_type, body=body, params=request.form_params())
