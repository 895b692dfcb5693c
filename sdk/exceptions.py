"""Exception hierarchy for the tgcourier Telegram SDK.

Every error raised from the public client surface derives from
:class:`TelegramError`.  Messages never contain the bot token, so any of
these exceptions is safe to log as-is.
"""

from typing import Optional


class TelegramError(Exception):
    """Base class for all SDK errors."""


class InvalidArgument(TelegramError, ValueError):
    """A call was rejected locally before anything was sent (e.g. media group size)."""


class EncodeError(TelegramError):
    """A request could not be serialised.  Always a programmer error."""


class TransportError(TelegramError):
    """DNS, TCP, TLS or I/O failure: the exchange with the API did not complete."""


class RequestTimeout(TransportError):
    """The per-call deadline elapsed before the response was fully received."""


class RequestCancelled(TransportError):
    """The client's cancellation scope fired before or during the request."""


class DecodeError(TelegramError):
    """The envelope said ``ok`` but ``result`` did not match the declared shape."""


class ProtocolError(DecodeError):
    """The response bytes were not a Bot API envelope at all (or were too large)."""


class MediaIOError(TelegramError):
    """A temp-file or destination-file operation failed during a media call."""


class APIException(TelegramError):
    """The Bot API answered with ``{"ok": false, ...}``.

    Attributes:
        error_code: ``error_code`` from the envelope (falls back to the HTTP status).
        description: Human-readable ``description`` from the envelope.
        status_code: HTTP status code of the response, when known.
        retry_after: Seconds to wait before retrying, for flood-control errors.
        migrate_to_chat_id: New chat id when a group was upgraded to a supergroup.
    """

    def __init__(
        self,
        error_code: int,
        description: str = "Unknown error",
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
        migrate_to_chat_id: Optional[int] = None,
    ) -> None:
        """Initialise with the envelope's error code and description."""
        self.error_code = error_code
        self.description = description
        self.status_code = status_code
        self.retry_after = retry_after
        self.migrate_to_chat_id = migrate_to_chat_id
        super().__init__(f"API error {error_code}: {description}")
