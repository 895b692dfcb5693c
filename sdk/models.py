"""Pydantic data models for the subset of the Telegram Bot API used by tgcourier.

Response types are decoded from JSON in strict mode (see :mod:`sdk.codec`),
so field types are enforced exactly while unknown fields are ignored.
Reply-markup types are also used on the request side and serialise with
``exclude_none`` so absent options never reach the wire.
"""

from __future__ import annotations

from typing import Annotated, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import (
    BaseModel,
    Field,
    StringConstraints,
    ValidationInfo,
    model_validator,
)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Chat ids, user ids and message ids are signed 64-bit on the wire.
Int64 = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]

ChannelUsername = Annotated[str, StringConstraints(pattern=r"^@[A-Za-z0-9_]{1,64}$")]

# Numeric chat id or ``@channelusername``.
ChatId = Union[Int64, ChannelUsername]

ParseMode = Literal["HTML", "Markdown", "MarkdownV2"]

T = TypeVar("T")


class TelegramObject(BaseModel):
    """Base for every Bot API object; fields also accept their Python names."""

    model_config = {"populate_by_name": True}


class Envelope(TelegramObject, Generic[T]):
    """Uniform response wrapper returned by every Bot API method."""

    ok: bool
    result: T
    description: Optional[str] = None
    error_code: Optional[int] = None


class ResponseParameters(TelegramObject):
    """Describes why a request was unsuccessful."""

    migrate_to_chat_id: Optional[Int64] = None
    retry_after: Optional[int] = None


class User(TelegramObject):
    """This object represents a Telegram user or bot."""

    id: Int64
    is_bot: bool
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None


class Chat(TelegramObject):
    """This object represents a chat."""

    id: Int64
    type: str
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ChatPhoto(TelegramObject):
    """This object represents a chat photo."""

    small_file_id: str
    small_file_unique_id: str
    big_file_id: str
    big_file_unique_id: str


class ChatFullInfo(Chat):
    """Full information about a chat, as returned by ``getChat``."""

    active_usernames: Optional[List[str]] = None
    bio: Optional[str] = None
    description: Optional[str] = None
    invite_link: Optional[str] = None
    has_visible_history: Optional[bool] = None
    photo: Optional[ChatPhoto] = None
    max_reaction_count: Optional[int] = None
    accent_color_id: Optional[int] = None


class MessageEntity(TelegramObject):
    """One special entity in a text message (hashtag, URL, bold span, ...)."""

    type: str
    offset: int
    length: int
    url: Optional[str] = None
    user: Optional[User] = None
    language: Optional[str] = None


class PhotoSize(TelegramObject):
    """One size of a photo or a file / sticker thumbnail."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[Int64] = None


class Sticker(TelegramObject):
    """This object represents a sticker."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    is_animated: bool
    is_video: bool
    type: Optional[str] = None
    thumbnail: Optional[PhotoSize] = None
    emoji: Optional[str] = None
    set_name: Optional[str] = None
    file_size: Optional[Int64] = None


class PollOption(TelegramObject):
    """This object contains information about one answer option in a poll."""

    text: str
    voter_count: int


class Poll(TelegramObject):
    """This object contains information about a poll."""

    id: str
    question: str
    options: List[PollOption]
    total_voter_count: int
    is_closed: bool
    is_anonymous: bool
    type: str
    allows_multiple_answers: bool
    correct_option_id: Optional[int] = None
    explanation: Optional[str] = None
    explanation_entities: Optional[List[MessageEntity]] = None
    open_period: Optional[int] = None
    close_date: Optional[Int64] = None


class File(TelegramObject):
    """A file ready to be downloaded from ``/file/bot<token>/<file_path>``."""

    file_id: str
    file_unique_id: str
    file_size: Optional[Int64] = None
    file_path: Optional[str] = None


# ── Reply markup ─────────────────────────────────────────────────────────────


class WebAppInfo(TelegramObject):
    """Describes a Web App launched from an inline keyboard button."""

    url: str


class InlineKeyboardButton(TelegramObject):
    """One button of an inline keyboard.

    Exactly one of ``url``, ``callback_data`` or ``web_app`` must be set on
    buttons built locally.  Decoded buttons are left alone: incoming keyboards
    may carry button kinds this client never sends.
    """

    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None
    web_app: Optional[WebAppInfo] = None

    @model_validator(mode="after")
    def _exactly_one_action(self, info: ValidationInfo) -> InlineKeyboardButton:
        if info.mode == "json":
            return self
        actions = [a for a in (self.url, self.callback_data, self.web_app) if a is not None]
        if len(actions) != 1:
            raise ValueError("inline button needs exactly one of url, callback_data, web_app")
        return self


class InlineKeyboardMarkup(TelegramObject):
    """An inline keyboard that appears right next to the message it belongs to."""

    inline_keyboard: List[List[InlineKeyboardButton]]


class KeyboardButton(TelegramObject):
    """One button of the reply keyboard."""

    text: str
    request_contact: Optional[bool] = None
    request_location: Optional[bool] = None


class ReplyKeyboardMarkup(TelegramObject):
    """A custom keyboard with reply options."""

    keyboard: List[List[KeyboardButton]]
    resize_keyboard: Optional[bool] = None
    one_time_keyboard: Optional[bool] = None
    input_field_placeholder: Optional[str] = None
    selective: Optional[bool] = None

    model_config = {"extra": "forbid"}


class ReplyKeyboardRemove(TelegramObject):
    """Asks clients to remove the current custom keyboard."""

    remove_keyboard: Literal[True] = True
    selective: Optional[bool] = None

    model_config = {"extra": "forbid"}


class ForceReply(TelegramObject):
    """Asks clients to display a reply interface to the user."""

    force_reply: Literal[True] = True
    input_field_placeholder: Optional[str] = None
    selective: Optional[bool] = None

    model_config = {"extra": "forbid"}


# Variants are told apart by their own keys; the request-only ones forbid
# extra fields so a dict can never fall through to a defaulted variant.
ReplyMarkup = Union[InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove, ForceReply]


# ── Messages and updates ─────────────────────────────────────────────────────


class Message(TelegramObject):
    """This object represents a message."""

    message_id: Int64
    date: Int64
    chat: Chat
    from_field: Optional[User] = Field(None, alias="from")
    sender_chat: Optional[Chat] = None
    reply_to_message: Optional[Message] = None
    edit_date: Optional[Int64] = None
    media_group_id: Optional[str] = None
    text: Optional[str] = None
    entities: Optional[List[MessageEntity]] = None
    caption: Optional[str] = None
    caption_entities: Optional[List[MessageEntity]] = None
    photo: Optional[List[PhotoSize]] = None
    sticker: Optional[Sticker] = None
    poll: Optional[Poll] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


# ``sendPoll`` answers with the sent message; its ``poll`` field is populated.
PollResult = Message


class ChatInviteLink(TelegramObject):
    """Represents an invite link for a chat."""

    invite_link: str
    creator: User
    creates_join_request: bool
    is_primary: bool
    is_revoked: bool
    name: Optional[str] = None
    expire_date: Optional[Int64] = None
    member_limit: Optional[int] = None
    pending_join_request_count: Optional[int] = None


class ChatMember(TelegramObject):
    """Information about one member of a chat."""

    user: User
    status: str


class ChatMemberUpdated(TelegramObject):
    """Represents changes in the status of a chat member."""

    chat: Chat
    from_field: User = Field(..., alias="from")
    date: Int64
    old_chat_member: ChatMember
    new_chat_member: ChatMember
    invite_link: Optional[ChatInviteLink] = None


class Update(TelegramObject):
    """An incoming update.  At most **one** of the optional fields is present."""

    update_id: Int64
    message: Optional[Message] = None
    edited_message: Optional[Message] = None
    channel_post: Optional[Message] = None
    chat_member: Optional[ChatMemberUpdated] = None
    my_chat_member: Optional[ChatMemberUpdated] = None
