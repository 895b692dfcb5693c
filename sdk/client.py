"""CourierClient -- typed async surface over the Telegram Bot API.

Every operation is a coroutine that performs exactly one HTTP round-trip
(no retries) and returns a pydantic model, or raises one of the errors in
:mod:`sdk.exceptions`.  The client holds no mutable state after
construction and may be shared by any number of concurrent callers.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import time
from typing import Any, Callable, List, Optional, Type, TypeVar
from urllib.parse import quote

import requests
from pydantic import ValidationError

from sdk.codec import JSON_CONTENT_TYPE, decode_response, encode_request, raise_for_status
from sdk.exceptions import APIException, DecodeError, EncodeError, InvalidArgument, MediaIOError
from sdk.methods import (
    CreateChatInviteLink,
    DeleteMessage,
    DeleteWebhook,
    EditMessageCaption,
    EditMessageText,
    ForwardMessage,
    GetChat,
    GetFile,
    GetMe,
    MultipartMethod,
    SendMediaGroup,
    SendMessage,
    SendPhoto,
    SendPoll,
    SendSticker,
    SetWebhook,
    TelegramMethod,
)
from sdk.models import (
    ChatFullInfo,
    ChatId,
    ChatInviteLink,
    File,
    InlineKeyboardMarkup,
    Message,
    ParseMode,
    PollResult,
    ReplyMarkup,
    User,
)
from sdk.multipart import MediaStage, build_form
from sdk.transport import DEFAULT_TIMEOUT, HttpInvoker, token_hint

DEFAULT_API_BASE = "https://api.telegram.org"

M = TypeVar("M", bound=TelegramMethod)

_logger = logging.getLogger("sdk.client")


class CourierClient:
    """Client-side service layer for the Telegram Bot API.

    Args:
        bot_token: The bot's API token.  Never logged and never part of an
            error message.
        session: Shared :class:`requests.Session`.  When omitted the client
            creates one and :meth:`close` releases it; an injected session
            stays the caller's to close.
        scope: Optional cancellation scope.  Setting the event aborts all
            in-flight calls with :class:`~sdk.exceptions.RequestCancelled`.
        timeout: Overall deadline for each call, in seconds.
        skip_tls_verify: Disable TLS certificate checks.  Unsafe; local
            development only.
        api_base: Scheme and host of the Bot API server.
        temp_dir: Directory for staged media files (OS default when ``None``).
        clock: Returns the current Unix time; used to name temp files.
    """

    def __init__(
        self,
        bot_token: str,
        *,
        session: Optional[requests.Session] = None,
        scope: Optional[asyncio.Event] = None,
        timeout: float = DEFAULT_TIMEOUT,
        skip_tls_verify: bool = False,
        api_base: str = DEFAULT_API_BASE,
        temp_dir: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not bot_token:
            raise InvalidArgument("bot token is required")
        if timeout <= 0:
            raise InvalidArgument("timeout must be positive")
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        base = api_base.rstrip("/")
        self._method_base = f"{base}/bot{bot_token}"
        self._file_base = f"{base}/file/bot{bot_token}"
        self._token_hint = token_hint(bot_token)
        self._temp_dir = temp_dir
        self._clock = clock
        self._invoker = HttpInvoker(
            self._session,
            secret=bot_token,
            timeout=timeout,
            scope=scope,
            verify=not skip_tls_verify,
        )
        if skip_tls_verify:
            _logger.warning("TLS certificate verification is disabled", extra={"bot": self._token_hint})

    def __repr__(self) -> str:
        return f"<CourierClient bot={self._token_hint} timeout={self._invoker.timeout:g}s>"

    def close(self) -> None:
        """Release the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build(method_cls: Type[M], **fields: Any) -> M:
        """Construct a request from keyword arguments, dropping unset (``None``) ones."""
        try:
            return method_cls(**{key: value for key, value in fields.items() if value is not None})
        except ValidationError as exc:
            raise EncodeError(f"{method_cls.api_method}: invalid arguments: {exc}") from exc

    def _file_url(self, file_path: str) -> str:
        if not file_path:
            raise InvalidArgument("file_path is required")
        return f"{self._file_base}/{quote(file_path.lstrip('/'), safe='/')}"

    async def execute(self, request: TelegramMethod) -> Any:
        """Send any request object and return its decoded ``result``.

        Raises:
            InvalidArgument, EncodeError: The request was rejected locally.
            TransportError: The exchange did not complete (incl. timeout and client scope).
            ProtocolError: The response was not a Bot API envelope.
            APIException: The API answered ``ok: false``.
            DecodeError: ``result`` did not match the declared shape.
            MediaIOError: Temp-file staging failed.
        """
        name = request.api_method
        url = f"{self._method_base}/{name}"
        if isinstance(request, MultipartMethod):
            async with MediaStage(temp_dir=self._temp_dir, clock=self._clock) as stage:
                form = await asyncio.to_thread(build_form, request, stage)
                raw = await self._invoker.invoke(
                    "POST",
                    url,
                    label=name,
                    params=form.params or None,
                    content_type=form.content_type,
                    body=form.body,
                )
        elif request.http_method == "GET":
            raw = await self._invoker.invoke("GET", url, label=name, params=request.query_params() or None)
        else:
            raw = await self._invoker.invoke(
                "POST", url, label=name, content_type=JSON_CONTENT_TYPE, body=encode_request(request)
            )

        try:
            result = decode_response(raw.body, request.returning, status_code=raw.status_code)
        except APIException as exc:
            _logger.warning(
                "Telegram API error",
                extra={"api_endpoint": name, "status_code": raw.status_code, "error_code": exc.error_code, "error": exc.description},
            )
            raise
        _logger.debug("Request succeeded", extra={"api_endpoint": name, "status_code": raw.status_code})
        return result

    # ------------------------------------------------------------------
    #  Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        *,
        parse_mode: Optional[ParseMode] = None,
        disable_web_page_preview: Optional[bool] = None,
        disable_notification: Optional[bool] = None,
        reply_to_message_id: Optional[int] = None,
        reply_markup: Optional[ReplyMarkup] = None,
    ) -> Message:
        """Send a text message.  On success, the sent :class:`Message` is returned."""
        return await self.execute(
            self._build(
                SendMessage,
                chat_id=chat_id,
                text=text,
                parse_mode=parse_mode,
                disable_web_page_preview=disable_web_page_preview,
                disable_notification=disable_notification,
                reply_to_message_id=reply_to_message_id,
                reply_markup=reply_markup,
            )
        )

    async def edit_message_text(
        self,
        text: str,
        *,
        chat_id: Optional[ChatId] = None,
        message_id: Optional[int] = None,
        inline_message_id: Optional[str] = None,
        parse_mode: Optional[ParseMode] = None,
        disable_web_page_preview: Optional[bool] = None,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> Message:
        """Edit the text of a message sent by the bot."""
        return await self.execute(
            self._build(
                EditMessageText,
                chat_id=chat_id,
                message_id=message_id,
                inline_message_id=inline_message_id,
                text=text,
                parse_mode=parse_mode,
                disable_web_page_preview=disable_web_page_preview,
                reply_markup=reply_markup,
            )
        )

    async def edit_message_caption(
        self,
        *,
        chat_id: Optional[ChatId] = None,
        message_id: Optional[int] = None,
        inline_message_id: Optional[str] = None,
        caption: Optional[str] = None,
        parse_mode: Optional[ParseMode] = None,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> Message:
        """Edit the caption of a message sent by the bot."""
        return await self.execute(
            self._build(
                EditMessageCaption,
                chat_id=chat_id,
                message_id=message_id,
                inline_message_id=inline_message_id,
                caption=caption,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
            )
        )

    async def send_poll(
        self,
        chat_id: ChatId,
        question: str,
        options: List[str],
        *,
        is_anonymous: Optional[bool] = None,
        type: Optional[str] = None,
        allows_multiple_answers: Optional[bool] = None,
        correct_option_id: Optional[int] = None,
        explanation: Optional[str] = None,
        open_period: Optional[int] = None,
        close_date: Optional[int] = None,
        reply_markup: Optional[ReplyMarkup] = None,
    ) -> PollResult:
        """Send a native poll.  The returned message has ``poll`` populated."""
        return await self.execute(
            self._build(
                SendPoll,
                chat_id=chat_id,
                question=question,
                options=options,
                is_anonymous=is_anonymous,
                type=type,
                allows_multiple_answers=allows_multiple_answers,
                correct_option_id=correct_option_id,
                explanation=explanation,
                open_period=open_period,
                close_date=close_date,
                reply_markup=reply_markup,
            )
        )

    async def forward_message(
        self,
        chat_id: ChatId,
        from_chat_id: ChatId,
        message_id: int,
        *,
        disable_notification: Optional[bool] = None,
    ) -> Message:
        """Forward a message of any kind."""
        return await self.execute(
            self._build(
                ForwardMessage,
                chat_id=chat_id,
                from_chat_id=from_chat_id,
                message_id=message_id,
                disable_notification=disable_notification,
            )
        )

    async def delete_message(self, chat_id: ChatId, message_id: int) -> bool:
        """Delete a message.  Returns ``True`` on success."""
        return await self.execute(self._build(DeleteMessage, chat_id=chat_id, message_id=message_id))

    # ------------------------------------------------------------------
    #  Media uploads
    # ------------------------------------------------------------------

    async def send_photo(
        self,
        chat_id: ChatId,
        photo: str,
        *,
        caption: Optional[str] = None,
        parse_mode: Optional[ParseMode] = None,
    ) -> Message:
        """Upload a base64-encoded photo.  ``parse_mode`` defaults to ``MarkdownV2``."""
        return await self.execute(
            self._build(SendPhoto, chat_id=chat_id, photo=photo, caption=caption, parse_mode=parse_mode)
        )

    async def send_media_group(
        self,
        chat_id: ChatId,
        photos: List[str],
        *,
        caption: Optional[str] = None,
        parse_mode: Optional[ParseMode] = None,
    ) -> List[Message]:
        """Upload 2-10 base64-encoded photos as one album.

        *caption* and *parse_mode* are attached to the first photo only.

        Raises:
            InvalidArgument: Fewer than 2 or more than 10 photos were given.
        """
        return await self.execute(
            self._build(SendMediaGroup, chat_id=chat_id, photos=photos, caption=caption, parse_mode=parse_mode)
        )

    async def send_sticker(self, chat_id: ChatId, sticker: str, *, filename: Optional[str] = None) -> Message:
        """Upload a base64-encoded ``.webp`` sticker."""
        return await self.execute(self._build(SendSticker, chat_id=chat_id, sticker=sticker, filename=filename))

    # ------------------------------------------------------------------
    #  Chats
    # ------------------------------------------------------------------

    async def create_chat_invite_link(
        self,
        chat_id: ChatId,
        *,
        name: Optional[str] = None,
        expire_date: Optional[int] = None,
        member_limit: Optional[int] = None,
        creates_join_request: Optional[bool] = None,
    ) -> ChatInviteLink:
        """Create an additional invite link for a chat the bot administers."""
        return await self.execute(
            self._build(
                CreateChatInviteLink,
                chat_id=chat_id,
                name=name,
                expire_date=expire_date,
                member_limit=member_limit,
                creates_join_request=creates_join_request,
            )
        )

    async def get_chat(self, chat_id: ChatId) -> ChatFullInfo:
        return await self.execute(self._build(GetChat, chat_id=chat_id))

    # ------------------------------------------------------------------
    #  Files
    # ------------------------------------------------------------------

    async def get_file(self, file_id: str) -> File:
        """Resolve *file_id* to a :class:`File` whose ``file_path`` can be downloaded."""
        return await self.execute(self._build(GetFile, file_id=file_id))

    async def get_file_path(self, file_id: str) -> str:
        """Return the storage path of *file_id*, ready for :meth:`download_bytes`."""
        info = await self.get_file(file_id)
        if not info.file_path:
            raise DecodeError("getFile result has no file_path")
        return info.file_path

    async def download_bytes(self, file_path: str) -> bytes:
        """Download a stored file into memory."""
        raw = await self._invoker.invoke("GET", self._file_url(file_path), label="downloadFile", limit=None)
        if not raw.ok:
            raise_for_status(raw.body, raw.status_code)
        _logger.debug("File downloaded", extra={"api_endpoint": "downloadFile", "size": len(raw.body)})
        return raw.body

    async def download_to(self, file_path: str, destination: str) -> int:
        """Stream a stored file to *destination* and return the number of bytes written.

        The file is written chunk by chunk and never held in memory.  On any
        failure a partially written *destination* is removed.
        """
        raw = await self._invoker.invoke(
            "GET", self._file_url(file_path), label="downloadFile", sink_path=destination
        )
        if not raw.ok:
            raise_for_status(raw.body, raw.status_code)
        try:
            size = os.path.getsize(destination)
        except OSError as exc:
            raise MediaIOError(f"downloaded file is missing: {exc.strerror}") from exc
        _logger.debug("File downloaded to disk", extra={"api_endpoint": "downloadFile", "size": size})
        return size

    async def download_base64(self, file_path: str) -> str:
        """Download a stored file and return it base64-encoded."""
        return base64.b64encode(await self.download_bytes(file_path)).decode("ascii")

    # ------------------------------------------------------------------
    #  Bot and webhook management
    # ------------------------------------------------------------------

    async def get_me(self) -> User:
        """Return the bot's own :class:`User`.  Useful to check the token."""
        return await self.execute(GetMe())

    async def set_webhook(
        self,
        url: str,
        *,
        secret_token: Optional[str] = None,
        allowed_updates: Optional[List[str]] = None,
        drop_pending_updates: Optional[bool] = None,
    ) -> bool:
        """Ask Telegram to deliver updates to *url*."""
        return await self.execute(
            self._build(
                SetWebhook,
                url=url,
                secret_token=secret_token,
                allowed_updates=allowed_updates,
                drop_pending_updates=drop_pending_updates,
            )
        )

    async def delete_webhook(self, *, drop_pending_updates: Optional[bool] = None) -> bool:
        return await self.execute(self._build(DeleteWebhook, drop_pending_updates=drop_pending_updates))
