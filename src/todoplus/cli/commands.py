# src/todoplus/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.state import AppState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandContext:
    user_id: str | None = None
    room_id: str | None = None
    display_name: str | None = None


CommandHandler = Callable[[AppState, list[str], CommandContext], str]


class CommandRegistry:
    """Simple slash-command registry used by the chat connector (/start, /todo, /help)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, ctx: CommandContext | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        # "/start@botname" style suffixes are dropped.
        name = parts[0].split("@", 1)[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, parts[1:], ctx or CommandContext())

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def webapp_url(state: AppState) -> str:
    settings = state.settings
    url = (getattr(settings, "webapp_url", "") or "").strip()
    if url:
        return url
    host = getattr(settings, "host", "localhost")
    if host in ("0.0.0.0", "::", ""):
        host = "localhost"
    return f"http://{host}:{getattr(settings, 'port', 3000)}/"


def cmd_help(state: AppState, args: list[str], ctx: CommandContext) -> str:
    return registry.build_help()


def cmd_start(state: AppState, args: list[str], ctx: CommandContext) -> str:
    name = (ctx.display_name or "").strip()
    greeting = f"Hi, {name}!" if name else "Hi!"
    return f"{greeting} This is ToDo+. Open the app: {webapp_url(state)}"


def cmd_todo(state: AppState, args: list[str], ctx: CommandContext) -> str:
    logger.debug("ToDo+ link requested user_id=%s room_id=%s", ctx.user_id, ctx.room_id)
    return f"Open ToDo+: {webapp_url(state)}"


registry.register("help", cmd_help, "show this help", aliases=["h", "?"])
registry.register("start", cmd_start, "greeting and a link to the ToDo+ app")
registry.register("todo", cmd_todo, "link to the ToDo+ app")
