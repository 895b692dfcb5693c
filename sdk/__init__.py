"""Telegram Bot API SDK -- Pydantic models, request types, async client and exceptions.

The :class:`CourierClient` class exposes one coroutine per supported Bot API
method.  Requests are validated pydantic models (:mod:`sdk.methods`) and
results are decoded strictly into the models in :mod:`sdk.models`.

Usage::

    from sdk import CourierClient, APIException
    from sdk.models import InlineKeyboardMarkup, InlineKeyboardButton

    client = CourierClient(token)
    message = await client.send_message(75504797, "_hi_", parse_mode="MarkdownV2")
"""

from sdk.client import CourierClient
from sdk.exceptions import (
    APIException,
    DecodeError,
    EncodeError,
    InvalidArgument,
    MediaIOError,
    ProtocolError,
    RequestCancelled,
    RequestTimeout,
    TelegramError,
    TransportError,
)

__all__ = [
    "CourierClient",
    "TelegramError",
    "InvalidArgument",
    "EncodeError",
    "TransportError",
    "RequestTimeout",
    "RequestCancelled",
    "DecodeError",
    "ProtocolError",
    "MediaIOError",
    "APIException",
]
