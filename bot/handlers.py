"""Default canned replies for the webhook bot.

Each text handler is bound to an exact message text in :data:`commands`.
``/start`` offers a **Join** button; **Join** issues a personal invite link
to ``INVITE_CHAT_ID`` and offers **Statistics**; **Statistics** answers with
a canned summary.  Chat-member changes are logged.
"""

from config import INVITE_CHAT_ID
from bot.dispatcher import UpdateDispatcher
from bot.registry import CommandTable
from core.logger import CourierLogger
from sdk.client import CourierClient
from sdk.exceptions import TelegramError
from sdk.models import ChatMemberUpdated, KeyboardButton, Message, ReplyKeyboardMarkup

logger = CourierLogger.get_logger()

JOIN = "Join"
STATISTICS = "Statistics"

# Telegram limits invite link names to 32 characters.
_LINK_NAME_MAX = 32

commands = CommandTable()


def _keyboard(label: str) -> ReplyKeyboardMarkup:
    """One-button reply keyboard that hides itself after use."""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=label)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def _link_name(message: Message) -> str:
    """Name an invite link after the sender: username, then first name, then id."""
    sender = message.from_field
    if sender is None:
        return str(message.chat.id)[:_LINK_NAME_MAX]
    name = sender.username or sender.first_name or str(sender.id)
    return name[:_LINK_NAME_MAX]


@commands.register("/start", description="Greet the user and offer the Join button")
async def handle_start(client: CourierClient, message: Message) -> None:
    """Handle /start — reply with a one-time **Join** keyboard."""
    chat_id = message.chat.id
    logger.info("User invoked /start", extra={"chat_id": chat_id, "command": "/start"})
    await client.send_message(
        chat_id,
        "👋 Welcome! Tap Join to receive your personal invitation link.",
        reply_markup=_keyboard(JOIN),
    )


@commands.register(JOIN, description="Create a personal invite link")
async def handle_join(client: CourierClient, message: Message) -> None:
    """Handle **Join** — create an invite link named after the sender."""
    chat_id = message.chat.id
    logger.info("User asked to join", extra={"chat_id": chat_id, "command": JOIN})

    if INVITE_CHAT_ID is None:
        await client.send_message(chat_id, "⛔ Invitations are not available right now.")
        return

    try:
        link = await client.create_chat_invite_link(INVITE_CHAT_ID, name=_link_name(message))
    except TelegramError as exc:
        logger.warning("Invite link creation failed", extra={"chat_id": chat_id, "error": str(exc)})
        await client.send_message(chat_id, "⚠️ Could not create an invitation link. Please try again later.")
        return

    logger.info("Invite link issued", extra={"chat_id": chat_id, "link_name": link.name})
    await client.send_message(
        chat_id,
        f"🔗 Your invitation link: {link.invite_link}",
        reply_markup=_keyboard(STATISTICS),
    )


@commands.register(STATISTICS, description="Show channel statistics")
async def handle_statistics(client: CourierClient, message: Message) -> None:
    chat_id = message.chat.id
    logger.info("User asked for statistics", extra={"chat_id": chat_id, "command": STATISTICS})
    await client.send_message(
        chat_id,
        "📊 Statistics are being collected. Check back soon!",
        reply_markup=_keyboard(STATISTICS),
    )


async def handle_chat_member(client: CourierClient, change: ChatMemberUpdated) -> None:
    """Log a chat-member status transition and the invite link that caused it."""
    logger.info(
        "Chat member updated",
        extra={
            "chat_id": change.chat.id,
            "user_id": change.new_chat_member.user.id,
            "old_status": change.old_chat_member.status,
            "new_status": change.new_chat_member.status,
            "invite_link_name": change.invite_link.name if change.invite_link else None,
        },
    )


def create_dispatcher(client: CourierClient) -> UpdateDispatcher:
    """Return a dispatcher wired with the default command table and chat-member log."""
    dispatcher = UpdateDispatcher(client, commands)
    dispatcher.on_chat_member(handle_chat_member)
    return dispatcher
