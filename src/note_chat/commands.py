"""Pure parsing helpers for slash commands typed into the panel."""

from __future__ import annotations

from dataclasses import dataclass

KNOWN_COMMANDS: dict[str, str] = {
    "help": "Show this help.",
    "reset": "Clear the conversation and the active context.",
    "models": "List available models, best-ranked first.",
    "model": "Switch to another model: /model <id>.",
    "open": "Use another document as context: /open <path>.",
    "context": "Show the current context.",
    "export": "Print the conversation as JSON.",
    "quit": "Leave the chat.",
}


@dataclass(frozen=True)
class SlashCommand:
    """A parsed ``/name argument`` line."""

    name: str
    argument: str = ""

    @property
    def known(self) -> bool:
        return self.name in KNOWN_COMMANDS


def parse_slash_command(text: str) -> SlashCommand | None:
    """Return the command in ``text`` or None for a regular chat message."""
    stripped = text.strip()
    if not stripped.startswith("/") or stripped == "/":
        return None
    name, _, argument = stripped[1:].partition(" ")
    return SlashCommand(name=name.strip().lower(), argument=argument.strip())


def help_text() -> str:
    width = max(len(name) for name in KNOWN_COMMANDS)
    return "\n".join(
        f"/{name.ljust(width)}  {description}"
        for name, description in KNOWN_COMMANDS.items()
    )
