from __future__ import annotations

from typing import Optional, Tuple

from core.logger import CourierLogger
from sdk.models import Message, Update

logger = CourierLogger.get_logger()

# Order in which update variants are inspected; Telegram populates exactly one.
UPDATE_KINDS: Tuple[str, ...] = (
    "message",
    "edited_message",
    "channel_post",
    "chat_member",
    "my_chat_member",
)


def update_kind(update: Update) -> Optional[str]:
    """Return the name of the populated variant of *update*, or ``None``."""
    for kind in UPDATE_KINDS:
        if getattr(update, kind) is not None:
            return kind
    return None


def get_identity(update: Update) -> Optional[int]:
    """Extract the acting entity ID from a Telegram update.

    Returns the sender_chat ID (a negative group ID) for anonymous admins and
    channels, the ``from`` user ID for regular messages and for chat-member
    changes, and ``None`` when no actor is present.
    """
    member_change = update.chat_member or update.my_chat_member
    if member_change is not None:
        return member_change.from_field.id

    message: Optional[Message] = update.message or update.edited_message or update.channel_post
    if message is None:
        logger.debug("No actor found in update", extra={"update_id": update.update_id})
        return None

    # Anonymous admins post as the group itself; sender_chat.id is negative.
    if message.sender_chat is not None:
        return message.sender_chat.id
    if message.from_field is not None:
        return message.from_field.id
    return None
