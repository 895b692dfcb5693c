"""Envelope codec: request encoding and response / update decoding.

Responses are checked in two steps.  The raw bytes are first parsed just
far enough to read ``ok``; a missing or unparsable envelope is a
:class:`ProtocolError`, and ``ok`` other than ``true`` becomes an
:class:`APIException`.  Only then is the whole envelope validated against
the declared result shape in strict JSON mode.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from sdk.exceptions import APIException, DecodeError, EncodeError, ProtocolError
from sdk.methods import TelegramMethod
from sdk.models import Envelope, Update

JSON_CONTENT_TYPE = "application/json"

_logger = logging.getLogger("sdk.codec")


def encode_request(request: TelegramMethod) -> bytes:
    """Serialise *request* as compact JSON, omitting every unset optional field."""
    try:
        return request.model_dump_json(exclude_none=True, by_alias=True).encode("utf-8")
    except PydanticSerializationError as exc:
        raise EncodeError(f"{request.api_method}: request is not serialisable: {exc}") from exc


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{exc.error_count()} error(s), first at {location}: {first['msg']}"


def _api_error(payload: dict, status_code: Optional[int]) -> APIException:
    error_code = payload.get("error_code")
    if not isinstance(error_code, int) or isinstance(error_code, bool):
        error_code = status_code if status_code is not None else 0
    description = payload.get("description")
    if not isinstance(description, str) or not description:
        description = "Unknown error"
    parameters = payload.get("parameters")
    if not isinstance(parameters, dict):
        parameters = {}
    retry_after = parameters.get("retry_after")
    migrate_to = parameters.get("migrate_to_chat_id")
    return APIException(
        error_code,
        description,
        status_code=status_code,
        retry_after=retry_after if isinstance(retry_after, int) else None,
        migrate_to_chat_id=migrate_to if isinstance(migrate_to, int) else None,
    )


def _parse_envelope(body: bytes) -> dict:
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"response is not valid JSON: {exc}") from None
    if not isinstance(payload, dict):
        raise ProtocolError("response is not a JSON object")
    if "ok" not in payload:
        raise ProtocolError("response envelope has no 'ok' field")
    return payload


def decode_response(body: bytes, shape: Any, *, status_code: Optional[int] = None) -> Any:
    """Decode a Bot API response envelope and return its ``result``.

    Args:
        body: Raw response bytes.
        shape: The declared result type (a model, ``bool`` or ``List[Model]``).
        status_code: HTTP status of the response, used when the envelope
            carries no ``error_code``.

    Raises:
        ProtocolError: The bytes are not a JSON envelope with an ``ok`` field.
        APIException: The envelope says ``ok`` is not ``true``.
        DecodeError: ``result`` does not match *shape*.
    """
    payload = _parse_envelope(body)
    if payload["ok"] is not True:
        raise _api_error(payload, status_code)
    try:
        envelope = Envelope[shape].model_validate_json(body, strict=True)
    except ValidationError as exc:
        name = getattr(shape, "__name__", repr(shape))
        _logger.debug("Result decode failed", extra={"shape": name, "error": _describe(exc)})
        raise DecodeError(f"result does not match {name}: {_describe(exc)}") from exc
    return envelope.result


def raise_for_status(body: bytes, status_code: int) -> None:
    """Raise the error carried by a non-2xx response that is expected to have no envelope result."""
    payload = _parse_envelope(body)
    if payload["ok"] is not True:
        raise _api_error(payload, status_code)
    raise ProtocolError(f"unexpected HTTP status {status_code} with an ok envelope")


def decode_update(body: bytes) -> Update:
    """Parse a webhook request body into an :class:`Update`."""
    try:
        return Update.model_validate_json(body, strict=True)
    except ValidationError as exc:
        raise DecodeError(f"update body is not a valid Update: {_describe(exc)}") from exc
