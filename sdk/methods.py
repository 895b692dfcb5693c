"""Request models for the Bot API methods supported by :class:`sdk.client.CourierClient`.

Every request is a pydantic model carrying three pieces of class-level
metadata:

* ``api_method``  -- the wire name appended to ``/bot<token>/``.
* ``http_method`` -- ``"POST"`` (JSON or multipart body) or ``"GET"`` (query string).
* ``returning``   -- the shape ``result`` is validated against.

JSON methods are serialised by :func:`sdk.codec.encode_request`.  Methods
that upload files derive from :class:`MultipartMethod` and describe their
form instead; :mod:`sdk.multipart` turns that description into a body.
"""

# No ``from __future__ import annotations`` here: pydantic must see the real
# ``ClassVar`` objects to keep the method metadata out of the model fields.

import os
from abc import abstractmethod
from typing import Any, ClassVar, Dict, List, Literal, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from sdk.exceptions import InvalidArgument
from sdk.models import (
    ChatFullInfo,
    ChatId,
    ChatInviteLink,
    File,
    InlineKeyboardMarkup,
    Int64,
    Message,
    ParseMode,
    PollResult,
    ReplyMarkup,
    User,
)

DEFAULT_PARSE_MODE = "MarkdownV2"

MEDIA_GROUP_MIN = 2
MEDIA_GROUP_MAX = 10


class TelegramMethod(BaseModel):
    """Base class for every Bot API request."""

    api_method: ClassVar[str]
    http_method: ClassVar[str] = "POST"
    returning: ClassVar[Any]

    model_config = {"populate_by_name": True, "extra": "forbid"}

    def query_params(self) -> Dict[str, str]:
        """Return the request fields as query-string parameters (``GET`` methods)."""
        data = self.model_dump(mode="json", exclude_none=True, by_alias=True)
        return {key: value if isinstance(value, str) else str(value) for key, value in data.items()}


# ── JSON methods ─────────────────────────────────────────────────────────────


class SendMessage(TelegramMethod):
    """Use this method to send text messages."""

    api_method: ClassVar[str] = "sendMessage"
    returning: ClassVar[Any] = Message

    chat_id: ChatId
    text: str
    parse_mode: Optional[ParseMode] = None
    disable_web_page_preview: Optional[bool] = None
    disable_notification: Optional[bool] = None
    reply_to_message_id: Optional[Int64] = None
    reply_markup: Optional[ReplyMarkup] = None


class EditMessageText(TelegramMethod):
    """Use this method to edit text messages."""

    api_method: ClassVar[str] = "editMessageText"
    returning: ClassVar[Any] = Message

    chat_id: Optional[ChatId] = None
    message_id: Optional[Int64] = None
    inline_message_id: Optional[str] = None
    text: str
    parse_mode: Optional[ParseMode] = None
    disable_web_page_preview: Optional[bool] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class EditMessageCaption(TelegramMethod):
    """Use this method to edit captions of messages."""

    api_method: ClassVar[str] = "editMessageCaption"
    returning: ClassVar[Any] = Message

    chat_id: Optional[ChatId] = None
    message_id: Optional[Int64] = None
    inline_message_id: Optional[str] = None
    caption: Optional[str] = None
    parse_mode: Optional[ParseMode] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class SendPoll(TelegramMethod):
    """Use this method to send a native poll."""

    api_method: ClassVar[str] = "sendPoll"
    returning: ClassVar[Any] = PollResult

    chat_id: ChatId
    question: str
    options: List[str] = Field(..., min_length=2, max_length=10)
    is_anonymous: Optional[bool] = None
    type: Optional[Literal["regular", "quiz"]] = None
    allows_multiple_answers: Optional[bool] = None
    correct_option_id: Optional[int] = None
    explanation: Optional[str] = None
    explanation_parse_mode: Optional[ParseMode] = None
    open_period: Optional[int] = None
    close_date: Optional[Int64] = None
    is_closed: Optional[bool] = None
    disable_notification: Optional[bool] = None
    reply_to_message_id: Optional[Int64] = None
    reply_markup: Optional[ReplyMarkup] = None


class CreateChatInviteLink(TelegramMethod):
    """Use this method to create an additional invite link for a chat."""

    api_method: ClassVar[str] = "createChatInviteLink"
    returning: ClassVar[Any] = ChatInviteLink

    chat_id: ChatId
    name: Optional[str] = Field(None, max_length=32)
    expire_date: Optional[Int64] = None
    member_limit: Optional[int] = Field(None, ge=1, le=99999)
    creates_join_request: Optional[bool] = None


class ForwardMessage(TelegramMethod):
    """Use this method to forward messages of any kind."""

    api_method: ClassVar[str] = "forwardMessage"
    returning: ClassVar[Any] = Message

    chat_id: ChatId
    from_chat_id: ChatId
    message_id: Int64
    disable_notification: Optional[bool] = None


class DeleteMessage(TelegramMethod):
    """Use this method to delete a message.  Returns *True* on success."""

    api_method: ClassVar[str] = "deleteMessage"
    returning: ClassVar[Any] = bool

    chat_id: ChatId
    message_id: Int64


class SetWebhook(TelegramMethod):
    """Use this method to specify a URL and receive incoming updates via a webhook."""

    api_method: ClassVar[str] = "setWebhook"
    returning: ClassVar[Any] = bool

    url: str
    secret_token: Optional[str] = Field(None, pattern=r"^[A-Za-z0-9_-]{1,256}$")
    max_connections: Optional[int] = Field(None, ge=1, le=100)
    allowed_updates: Optional[List[str]] = None
    drop_pending_updates: Optional[bool] = None


class DeleteWebhook(TelegramMethod):
    """Use this method to remove webhook integration."""

    api_method: ClassVar[str] = "deleteWebhook"
    returning: ClassVar[Any] = bool

    drop_pending_updates: Optional[bool] = None


# ── Query-string methods ─────────────────────────────────────────────────────


class GetChat(TelegramMethod):
    """Use this method to get up-to-date information about the chat."""

    api_method: ClassVar[str] = "getChat"
    http_method: ClassVar[str] = "GET"
    returning: ClassVar[Any] = ChatFullInfo

    chat_id: ChatId


class GetFile(TelegramMethod):
    """Use this method to get basic information about a file and prepare it for downloading."""

    api_method: ClassVar[str] = "getFile"
    http_method: ClassVar[str] = "GET"
    returning: ClassVar[Any] = File

    file_id: str = Field(..., min_length=1)


class GetMe(TelegramMethod):
    """A simple method for testing your bot's auth token."""

    api_method: ClassVar[str] = "getMe"
    http_method: ClassVar[str] = "GET"
    returning: ClassVar[Any] = User


# ── Multipart methods ────────────────────────────────────────────────────────


class MediaPart(NamedTuple):
    """One file part of a multipart form, still base64-encoded."""

    field: str
    filename: str
    data: str


class InputMediaPhoto(BaseModel):
    """A photo descriptor inside the ``media`` part of ``sendMediaGroup``."""

    type: Literal["photo"] = "photo"
    media: str
    caption: Optional[str] = None
    parse_mode: Optional[ParseMode] = None

    model_config = {"populate_by_name": True}


class MultipartMethod(TelegramMethod):
    """A method whose body is ``multipart/form-data`` with base64-supplied files.

    Subclasses implement :meth:`text_fields` and :meth:`media_parts`; the
    class itself cannot be instantiated.
    """

    @abstractmethod
    def text_fields(self) -> List[Tuple[str, str]]:
        """Plain form fields, in wire order."""

    @abstractmethod
    def media_parts(self) -> List[MediaPart]:
        """File parts, still base64-encoded.  Checked before anything is staged."""

    def form_params(self) -> Dict[str, str]:
        return {}


class SendPhoto(MultipartMethod):
    """Use this method to send a photo supplied as a base64 string."""

    api_method: ClassVar[str] = "sendPhoto"
    returning: ClassVar[Any] = Message

    chat_id: ChatId
    photo: str
    caption: Optional[str] = None
    parse_mode: ParseMode = DEFAULT_PARSE_MODE

    def text_fields(self) -> List[Tuple[str, str]]:
        fields = [("chat_id", str(self.chat_id))]
        if self.caption is not None:
            fields.append(("caption", self.caption))
        fields.append(("parse_mode", self.parse_mode))
        return fields

    def media_parts(self) -> List[MediaPart]:
        return [MediaPart("photo", "image.jpeg", self.photo)]

    def form_params(self) -> Dict[str, str]:
        return {"chat_id": str(self.chat_id)}


class SendMediaGroup(MultipartMethod):
    """Use this method to send 2-10 photos as an album.

    Only the first photo carries ``caption`` and ``parse_mode``; clients
    show it as the caption of the whole album.
    """

    api_method: ClassVar[str] = "sendMediaGroup"
    returning: ClassVar[Any] = List[Message]

    chat_id: ChatId
    photos: List[str]
    caption: Optional[str] = None
    parse_mode: ParseMode = DEFAULT_PARSE_MODE

    def descriptors(self) -> List[InputMediaPhoto]:
        items = []
        for index in range(len(self.photos)):
            if index == 0:
                item = InputMediaPhoto(media=f"attach://photo{index}", caption=self.caption, parse_mode=self.parse_mode)
            else:
                item = InputMediaPhoto(media=f"attach://photo{index}")
            items.append(item)
        return items

    def text_fields(self) -> List[Tuple[str, str]]:
        media = "[" + ",".join(item.model_dump_json(exclude_none=True) for item in self.descriptors()) + "]"
        return [
            ("chat_id", str(self.chat_id)),
            ("media", media),
            ("parse_mode", self.parse_mode),
        ]

    def media_parts(self) -> List[MediaPart]:
        count = len(self.photos)
        if not MEDIA_GROUP_MIN <= count <= MEDIA_GROUP_MAX:
            raise InvalidArgument(
                f"sendMediaGroup needs {MEDIA_GROUP_MIN}-{MEDIA_GROUP_MAX} photos, got {count}"
            )
        return [MediaPart(f"photo{index}", f"photo{index}.jpeg", data) for index, data in enumerate(self.photos)]

    def form_params(self) -> Dict[str, str]:
        return {"chat_id": str(self.chat_id)}


class SendSticker(MultipartMethod):
    """Use this method to send a static ``.webp`` sticker supplied as a base64 string."""

    api_method: ClassVar[str] = "sendSticker"
    returning: ClassVar[Any] = Message

    chat_id: ChatId
    sticker: str
    filename: str = "sticker.webp"

    def text_fields(self) -> List[Tuple[str, str]]:
        return [("chat_id", str(self.chat_id))]

    def media_parts(self) -> List[MediaPart]:
        name = os.path.basename(self.filename) or "sticker.webp"
        return [MediaPart("sticker", name, self.sticker)]
