"""Interactive REPL over a long-lived session."""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

from rich.console import Console
from rich.panel import Panel

from evotor_ai.cli.render import format_human_report, format_json_report
from evotor_ai.models.llm import ChatMessage
from evotor_ai.models.session import Session
from evotor_ai.services.query import QueryService
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)

BANNER = "Evotor AI CLI (type 'exit' to quit)"
PREVIEW_LENGTH = 120

Runner = Callable[[Coroutine[Any, Any, Any]], Any]


def message_preview(message: ChatMessage, max_length: int = PREVIEW_LENGTH) -> str:
    """First non-empty text part, cut to ``max_length`` characters."""
    text = next((part.strip() for part in message.text_parts() if part.strip()), "")
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def format_history(session: Session) -> str:
    messages = session.history.snapshot()
    if not messages:
        return "История пуста."

    lines = [f"История ({len(messages)} сообщений, ~{session.history.estimate_tokens()} токенов):"]
    for i, message in enumerate(messages, start=1):
        lines.append(f"{i}) {message.role}: {message_preview(message) or '(empty)'}")
    return "\n".join(lines)


class ChatREPL:
    """Interactive question loop.

    Each turn runs on the caller's event loop runner; Ctrl-C while a turn is running
    cancels that turn only.
    """

    def __init__(
        self,
        service: QueryService,
        session: Session,
        json_output: bool = False,
        date_from: str = "",
        date_to: str = "",
        console: Console | None = None,
    ):
        self.service = service
        self.session = session
        self.json_output = json_output
        self.date_from = date_from
        self.date_to = date_to
        self.console = console or Console()

    def start(self, run: Runner) -> None:
        """Read queries until ``exit``/``quit`` or end of input."""
        self.console.print(BANNER, markup=False, highlight=False)

        while True:
            try:
                line = self.console.input("> ").strip()
            except (KeyboardInterrupt, EOFError):
                self.console.print()
                break

            command = line.lower()
            if not command:
                continue
            if command in ("exit", "quit"):
                break
            if command == "/clear":
                self.session.reset()
                self.console.print("История очищена.")
                continue
            if command == "/history":
                self.console.print(format_history(self.session), markup=False, highlight=False, soft_wrap=True)
                continue
            if command == "/help":
                self._show_help()
                continue

            try:
                response = run(
                    self.service.handle_query(line, self.session, date_from=self.date_from, date_to=self.date_to)
                )
            except (KeyboardInterrupt, asyncio.CancelledError):
                logger.info(f"Turn cancelled by user: {line!r}")
                self.console.print("[yellow]Запрос отменён.[/yellow]")
                continue

            report = format_json_report(response) if self.json_output else format_human_report(response)
            self.console.print(report, markup=False, highlight=False, soft_wrap=True)

    def _show_help(self) -> None:
        help_text = (
            "[bold]Команды:[/bold]\n"
            "• /history - показать историю диалога\n"
            "• /clear - очистить историю\n"
            "• /help - эта справка\n"
            "• exit или quit - выход\n\n"
            "[bold]Примеры:[/bold]\n"
            "• продажи за вчера\n"
            "• сколько чеков в марте 2025\n"
            "• чеки с позицией «кофе» за неделю"
        )
        self.console.print(Panel(help_text, title="[cyan]Справка[/cyan]", border_style="cyan"))
