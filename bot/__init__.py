"""Telegram bot application layer — webhook receiver, dispatcher and canned replies.

This package may import from ``core/``, ``sdk/`` and ``config`` only.
"""

from bot.dispatcher import UpdateDispatcher
from bot.handlers import (
    commands,
    create_dispatcher,
    handle_chat_member,
    handle_join,
    handle_start,
    handle_statistics,
)
from bot.registry import CommandEntry, CommandTable
from bot.webhook import create_app, verify_secret_token

__all__ = [
    # Dispatcher
    "UpdateDispatcher",
    "create_dispatcher",
    # Command table
    "CommandTable",
    "CommandEntry",
    "commands",
    # Handlers
    "handle_start",
    "handle_join",
    "handle_statistics",
    "handle_chat_member",
    # Webhook
    "create_app",
    "verify_secret_token",
]
