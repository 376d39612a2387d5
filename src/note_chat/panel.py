"""Terminal stand-in for the host application's chat side panel."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import InMemoryHistory
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from .commands import KNOWN_COMMANDS, SlashCommand, help_text, parse_slash_command
from .documents import FileDocumentProvider
from .exceptions import BusyError
from .models import ChatTurn, TurnRole
from .observers import SessionObserver
from .session import ChatSession

LOGGER = logging.getLogger(__name__)

PROMPT_PREFIX = HTML("<seagreen>&gt; </seagreen>")
COMMAND_COMPLETER = WordCompleter(
    [f"/{name}" for name in KNOWN_COMMANDS], sentence=True
)


def build_prompt_session() -> PromptSession:
    """Interactive prompt with in-memory history and slash command completion."""
    return PromptSession(
        history=InMemoryHistory(),
        completer=COMMAND_COMPLETER,
        complete_while_typing=True,
    )


class TerminalPanel(SessionObserver):
    """Render session events to a rich console and feed prompt input back to the session."""

    def __init__(
        self,
        config: Mapping[str, Any],
        document: str | None = None,
        model: str | None = None,
        console: Console | None = None,
        prompt_session: Any = None,
        **client_overrides: Any,
    ) -> None:
        self.console = console or Console()
        self._prompt_session = prompt_session
        self.documents = FileDocumentProvider(document)
        self.session = ChatSession.from_config(
            config,
            documents=self.documents,
            notifier=self,
            **client_overrides,
        )
        if model:
            self.session.select_model(model)
        self.session.observers.subscribe(self)
        self._running = False

    @property
    def prompt_session(self) -> Any:
        if self._prompt_session is None:
            self._prompt_session = build_prompt_session()
        return self._prompt_session

    def write(self, text: str = "", style: str | None = None) -> None:
        self.console.print(Text(text, style=style or ""), soft_wrap=True)

    # Notifier
    def notify(self, message: str) -> None:
        self.write(f"! {message}", style="bold red")

    # SessionObserver
    def on_turn_appended(self, turn: ChatTurn) -> None:
        if turn.role == TurnRole.ASSISTANT:
            self.console.print(self.assistant_panel(turn.content))

    def on_turn_removed(self, turn: ChatTurn) -> None:
        self.write(f"(message not sent: {turn.content})", style="dim")

    def on_conversation_cleared(self) -> None:
        self.write("-- conversation cleared --", style="dim")

    def on_context_changed(self, path: str | None) -> None:
        self.console.print(self.context_panel())

    def on_busy_changed(self, busy: bool) -> None:
        if busy:
            self.write("Sending...", style="dim italic")

    def assistant_panel(self, content: str) -> Panel:
        return Panel(
            Markdown(content),
            title=Text("Assistant", style="bold green"),
            title_align="left",
            border_style="green",
            box=box.HORIZONTALS,
            padding=(0, 0),
        )

    def context_panel(self) -> Panel:
        return Panel(
            Text(self.session.current_context_label()),
            border_style="blue",
            box=box.HORIZONTALS,
            padding=(0, 0),
        )

    def model_label(self) -> str:
        return self.session.selector.current_label() or "endpoint default"

    def status_line(self) -> str:
        open_path = self.documents.active_document_path() or "none"
        return (
            f"Model: {self.model_label()} | "
            f"Open: {open_path} | {self.session.current_context_label()}"
        )

    async def handle_line(self, line: str) -> None:
        """Dispatch one line of input."""
        command = parse_slash_command(line)
        if command is None:
            await self.session.submit(line)
            return
        self.run_command(command)

    def run_command(self, command: SlashCommand) -> None:
        if not command.known:
            self.notify(f"Unknown command /{command.name}. Type /help for a list.")
            return
        try:
            self._dispatch(command)
        except BusyError as exc:
            self.notify(str(exc))

    def _dispatch(self, command: SlashCommand) -> None:
        if command.name == "help":
            self.write(help_text())
        elif command.name == "quit":
            self._running = False
        elif command.name == "reset":
            self.session.reset()
        elif command.name == "models":
            selected = self.session.selector.selected_model
            ranked = self.session.selector.ranked_catalog()
            if not ranked:
                self.write("No models configured; the endpoint default is used.")
            for entry in ranked:
                marker = "*" if entry.id == selected else " "
                self.write(f"{marker} {entry.label}")
        elif command.name == "model":
            if command.argument and not self.session.select_model(command.argument):
                self.write(f"{command.argument} is already selected.")
            else:
                self.write(f"Model: {self.model_label()}")
        elif command.name == "open":
            if not command.argument:
                self.notify("Usage: /open <path>")
                return
            self.write(f"Opened {self.documents.open(command.argument)}")
        elif command.name == "context":
            self.write(self.status_line())
        elif command.name == "export":
            self.write(self.session.export_json())

    async def run(self) -> None:
        """Prompt for lines until /quit or end of input."""
        self._running = True
        self.write(self.status_line(), style="bold")
        self.console.print(Markdown("Type `/help` for commands."))
        while self._running:
            try:
                line = await self.prompt_session.prompt_async(PROMPT_PREFIX)
            except (EOFError, KeyboardInterrupt):
                break
            await self.handle_line(line)
        LOGGER.info("panel.closed", extra={"event": "panel.closed"})
