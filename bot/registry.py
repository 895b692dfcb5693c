"""Command table: exact message text mapped to a canned response handler.

The table is not a command parser: a handler runs only when
the incoming text equals its key byte for byte.  There is no prefix
matching, no ``/cmd@botname`` stripping and no case or locale folding, so
plain-text button labels (``"Join"``) work the same way slash commands do.

Design:
- ``CommandHandler`` is a :class:`Protocol` describing the handler signature.
- ``CommandEntry`` stores the handler plus a human-readable description.
- ``CommandTable.register`` is a decorator that binds a function to its text
  in **one** place; the dispatcher only ever calls ``dispatch()``.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from sdk.models import Message

if TYPE_CHECKING:
    from sdk.client import CourierClient


# ── Handler protocol ─────────────────────────────────────────────────────────

@runtime_checkable
class CommandHandler(Protocol):
    """Handler invoked with the shared client and the triggering message."""
    async def __call__(self, client: CourierClient, message: Message) -> None: ...  # noqa: E704


# ── Table entry ──────────────────────────────────────────────────────────────

@dataclasses.dataclass(frozen=True, slots=True)
class CommandEntry:
    """Metadata for a single registered text trigger."""
    text: str                  # exact message text, e.g. "/start" or "Join"
    description: str
    handler: CommandHandler    # the async callable


# ── Table ────────────────────────────────────────────────────────────────────

class CommandTable:
    """Mapping from exact message text to a response handler.

    Usage::

        commands = CommandTable()

        @commands.register("/ping", description="Ping")
        async def handle_ping(client, message): ...

        # In the dispatcher:
        await commands.dispatch(message.text, client, message)
    """

    def __init__(self) -> None:
        self._entries: dict[str, CommandEntry] = {}

    # ── decorator ────────────────────────────────────────────────────────

    def register(self, text: str, *, description: str = "") -> Callable[[CommandHandler], CommandHandler]:
        """Decorator that registers *handler* for messages equal to *text*.

        Raises:
            ValueError: *text* is empty or already registered.
        """
        if not text:
            raise ValueError("command text must not be empty")
        if text in self._entries:
            raise ValueError(f"command {text!r} is already registered")

        def decorator(func: CommandHandler) -> CommandHandler:
            self._entries[text] = CommandEntry(text=text, description=description, handler=func)
            return func
        return decorator

    # ── lookup helpers ───────────────────────────────────────────────────

    def get(self, text: str) -> CommandEntry | None:
        """Return the entry for *text*, or ``None``."""
        return self._entries.get(text)

    def entries(self) -> dict[str, CommandEntry]:
        """Return a *read-only* view of all registered commands."""
        return dict(self._entries)

    def __contains__(self, text: object) -> bool:
        return text in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def dispatch(self, text: str, client: CourierClient, message: Message) -> bool:
        """Look up *text* and invoke its handler.

        Returns ``True`` if a handler was found and called, ``False`` otherwise.
        """
        entry = self._entries.get(text)
        if entry is None:
            return False
        await entry.handler(client, message)
        return True
