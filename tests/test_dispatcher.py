"""Tests for the command table, the update dispatcher and identity resolution."""

import asyncio
import sys
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import envelope, message_dict
from bot.dispatcher import UpdateDispatcher
from bot.registry import CommandEntry, CommandTable
from core.identity import get_identity, update_kind
from sdk.models import Update


def _message_update(text=None, *, update_id=1, sender_chat=None, from_id=7) -> Update:
    message = {"message_id": 1, "date": 0, "chat": {"id": 10, "type": "private"}}
    if text is not None:
        message["text"] = text
    if from_id is not None:
        message["from"] = {"id": from_id, "is_bot": False, "first_name": "Ada"}
    if sender_chat is not None:
        message["sender_chat"] = {"id": sender_chat, "type": "supergroup"}
    return Update.model_validate({"update_id": update_id, "message": message})


def _member_update(kind="chat_member") -> Update:
    user = {"id": 7, "is_bot": False, "first_name": "Ada"}
    return Update.model_validate({
        "update_id": 5,
        kind: {
            "chat": {"id": -100, "type": "supergroup"},
            "from": {"id": 99, "is_bot": False, "first_name": "Admin"},
            "date": 0,
            "old_chat_member": {"user": user, "status": "left"},
            "new_chat_member": {"user": user, "status": "member"},
        },
    })


# ── CommandTable ─────────────────────────────────────────────────────────────


class TestCommandTable:
    """Exact-text registration and lookup."""

    def test_register_and_get(self) -> None:
        table = CommandTable()

        @table.register("/start", description="Greet")
        async def handle(client, message):
            return None

        entry = table.get("/start")
        assert isinstance(entry, CommandEntry)
        assert entry.handler is handle
        assert entry.description == "Greet"
        assert "/start" in table
        assert len(table) == 1
        assert list(table.entries()) == ["/start"]

    def test_duplicate_rejected(self) -> None:
        table = CommandTable()
        table.register("Join")(AsyncMock())
        with pytest.raises(ValueError):
            table.register("Join")

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError):
            CommandTable().register("")

    def test_entries_is_a_copy(self) -> None:
        table = CommandTable()
        table.register("Join")(AsyncMock())
        table.entries().clear()
        assert "Join" in table

    @pytest.mark.asyncio
    async def test_dispatch(self) -> None:
        table = CommandTable()
        handler = AsyncMock()
        table.register("Join")(handler)
        client, message = MagicMock(), MagicMock()
        assert await table.dispatch("Join", client, message) is True
        handler.assert_awaited_once_with(client, message)
        assert await table.dispatch("join", client, message) is False


# ── UpdateDispatcher ─────────────────────────────────────────────────────────


class TestUpdateDispatcher:
    """Routing of decoded updates."""

    @pytest.mark.asyncio
    async def test_command_routed(self) -> None:
        client = MagicMock()
        table = CommandTable()
        start = AsyncMock()
        table.register("/start")(start)
        fallback = AsyncMock()
        dispatcher = UpdateDispatcher(client, table)
        dispatcher.on_message(fallback)

        update = _message_update("/start")
        await dispatcher.process_update(update)

        start.assert_awaited_once_with(client, update.message)
        fallback.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["/start now", "/START", " /start", "/start@my_bot"])
    async def test_only_exact_text_matches(self, text: str) -> None:
        table = CommandTable()
        start = AsyncMock()
        table.register("/start")(start)
        fallback = AsyncMock()
        dispatcher = UpdateDispatcher(MagicMock(), table)
        dispatcher.on_message(fallback)

        await dispatcher.process_update(_message_update(text))

        start.assert_not_awaited()
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_message_without_text(self) -> None:
        fallback = AsyncMock()
        dispatcher = UpdateDispatcher(MagicMock())
        dispatcher.on_message(fallback)
        await dispatcher.process_update(_message_update())
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_chat_member_routed(self) -> None:
        client = MagicMock()
        on_member = AsyncMock()
        on_message = AsyncMock()
        dispatcher = UpdateDispatcher(client)
        dispatcher.on_chat_member(on_member)
        dispatcher.on_message(on_message)

        update = _member_update()
        await dispatcher.process_update(update)

        on_member.assert_awaited_once_with(client, update.chat_member)
        on_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_kinds_via_on(self) -> None:
        handler = AsyncMock()
        dispatcher = UpdateDispatcher(MagicMock())
        dispatcher.on("my_chat_member")(handler)
        await dispatcher.process_update(_member_update("my_chat_member"))
        handler.assert_awaited_once()

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            UpdateDispatcher(MagicMock()).on("callback_query")

    @pytest.mark.asyncio
    async def test_empty_update_dropped(self) -> None:
        handler = AsyncMock()
        dispatcher = UpdateDispatcher(MagicMock())
        dispatcher.on_message(handler)
        await dispatcher.process_update(Update(update_id=9))
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_failure_is_logged_not_raised(self) -> None:
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        second = AsyncMock()
        dispatcher = UpdateDispatcher(MagicMock())
        dispatcher.on_message(failing)
        dispatcher.on_message(second)

        with patch("bot.dispatcher.logger") as mock_logger:
            await dispatcher.process_update(_message_update("hello"))

        second.assert_awaited_once()
        mock_logger.exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_command_failure_is_logged_not_raised(self) -> None:
        table = CommandTable()
        table.register("/start")(AsyncMock(side_effect=RuntimeError("boom")))
        dispatcher = UpdateDispatcher(MagicMock(), table)
        with patch("bot.dispatcher.logger") as mock_logger:
            await dispatcher.process_update(_message_update("/start"))
        mock_logger.exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancellation_stops_remaining_handlers(self, client, session) -> None:
        async def first(c, message):
            await c.send_message(message.chat.id, "hi")

        second = AsyncMock()
        dispatcher = UpdateDispatcher(client)
        dispatcher.on_message(first)
        dispatcher.on_message(second)
        session.queue(envelope(message_dict()), delay=2.0)

        task = asyncio.ensure_future(dispatcher.process_update(_message_update("hello")))
        await asyncio.sleep(0.05)
        task.cancel()
        with patch("bot.dispatcher.logger") as mock_logger:
            with pytest.raises(asyncio.CancelledError):
                await task

        assert task.cancelled()
        second.assert_not_awaited()
        mock_logger.exception.assert_not_called()

    def test_properties(self) -> None:
        client = MagicMock()
        table = CommandTable()
        dispatcher = UpdateDispatcher(client, table)
        assert dispatcher.client is client
        assert dispatcher.commands is table


# ── Identity ─────────────────────────────────────────────────────────────────


class TestIdentity:
    """Acting entity and variant name of an update."""

    def test_from_user(self) -> None:
        assert get_identity(_message_update("hi", from_id=7)) == 7

    def test_sender_chat_wins(self) -> None:
        assert get_identity(_message_update("hi", sender_chat=-100555)) == -100555

    def test_no_actor(self) -> None:
        assert get_identity(_message_update("hi", from_id=None)) is None

    def test_member_change(self) -> None:
        assert get_identity(_member_update()) == 99

    def test_empty_update(self) -> None:
        assert get_identity(Update(update_id=1)) is None

    def test_update_kind(self) -> None:
        assert update_kind(_message_update("hi")) == "message"
        assert update_kind(_member_update("my_chat_member")) == "my_chat_member"
        assert update_kind(Update(update_id=1)) is None
