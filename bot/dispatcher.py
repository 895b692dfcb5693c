"""Update dispatcher.

Routes each parsed Telegram :class:`~sdk.models.Update` to the handlers
registered for its populated variant.  Text messages are first matched
against the exact-text :class:`~bot.registry.CommandTable`; only unmatched
messages reach the generic ``message`` handlers.

A failing handler is logged and never propagates: the webhook has already
acknowledged the update, and a crash must not make Telegram redeliver it.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

from bot.registry import CommandTable
from core.identity import UPDATE_KINDS, get_identity, update_kind
from core.logger import CourierLogger
from sdk.client import CourierClient
from sdk.models import Update

logger = CourierLogger.get_logger()

UpdateHandler = Callable[[CourierClient, Any], Awaitable[None]]


class UpdateDispatcher:
    """Routes updates to command-table entries and per-variant handlers.

    Registrations happen at construction time; :meth:`process_update` only
    reads them.

    Usage::

        dispatcher = UpdateDispatcher(client, commands)

        @dispatcher.on_chat_member
        async def log_member(client, change): ...

        await dispatcher.process_update(update)
    """

    def __init__(self, client: CourierClient, commands: Optional[CommandTable] = None) -> None:
        self._client = client
        self._commands = commands if commands is not None else CommandTable()
        self._handlers: Dict[str, List[UpdateHandler]] = {kind: [] for kind in UPDATE_KINDS}

    @property
    def client(self) -> CourierClient:
        return self._client

    @property
    def commands(self) -> CommandTable:
        return self._commands

    # ── registration ─────────────────────────────────────────────────────

    def on(self, kind: str) -> Callable[[UpdateHandler], UpdateHandler]:
        """Decorator registering a handler for the *kind* update variant."""
        if kind not in self._handlers:
            raise ValueError(f"unknown update kind {kind!r}")

        def decorator(func: UpdateHandler) -> UpdateHandler:
            self._handlers[kind].append(func)
            return func
        return decorator

    def on_message(self, func: UpdateHandler) -> UpdateHandler:
        """Register a handler for messages that matched no command."""
        return self.on("message")(func)

    def on_chat_member(self, func: UpdateHandler) -> UpdateHandler:
        return self.on("chat_member")(func)

    # ── dispatch ─────────────────────────────────────────────────────────

    async def _guard(self, call: Awaitable[Any], *, update_id: int, kind: str, name: str) -> None:
        try:
            await call
        except Exception:
            logger.exception("Update handler failed", extra={"update_id": update_id, "kind": kind, "handler": name})

    async def process_update(self, update: Update) -> None:
        """Dispatch a single update.  Updates with no known variant are dropped."""
        update_id = update.update_id
        kind = update_kind(update)
        if kind is None:
            logger.debug("Update has no known variant, dropping", extra={"update_id": update_id})
            return

        user_id = get_identity(update)
        logger.info("Update received", extra={"update_id": update_id, "user_id": user_id, "kind": kind})
        payload = getattr(update, kind)

        if kind == "message" and payload.text is not None and payload.text in self._commands:
            logger.debug("Command matched", extra={"update_id": update_id, "command": payload.text})
            await self._guard(
                self._commands.dispatch(payload.text, self._client, payload),
                update_id=update_id,
                kind=kind,
                name=payload.text,
            )
            return

        handlers = self._handlers[kind]
        if not handlers:
            logger.debug("No handler for update", extra={"update_id": update_id, "kind": kind})
            return
        for handler in handlers:
            await self._guard(
                handler(self._client, payload),
                update_id=update_id,
                kind=kind,
                name=getattr(handler, "__name__", repr(handler)),
            )
