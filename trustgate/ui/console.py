"""Console presenter for folder trust prompts and workflow messages"""

import asyncio
import logging
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from trustgate.confirmation import PendingConfirmation, TrustChoice
from trustgate.coordinator import MessageKind

logger = logging.getLogger(__name__)

TRUST_OPTIONS = [
    ("1", "Yes", TrustChoice.ADD_ONCE),
    ("2", "Yes, and remember the directories as trusted", TrustChoice.ADD_AND_REMEMBER),
    ("3", "No", TrustChoice.REJECT),
]

TRUST_EXPLANATION = (
    "Trusting a folder allows the assistant to read and perform auto-edits when in "
    "auto-approval mode. This is a security feature to prevent accidental execution "
    "in untrusted directories."
)


class ConsoleMessageSink:
    """Prints workflow messages to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def add_item(self, kind: MessageKind, text: str):
        if kind == MessageKind.ERROR:
            self.console.print(f"[red]{text}[/red]", highlight=False)
        else:
            self.console.print(text, highlight=False)


class ConsolePresenter:
    """Asks on the terminal whether to trust the folders of a confirmation.

    Ctrl-C or end of input cancels.
    """

    def __init__(self, console: Optional[Console] = None, ask: Optional[Callable[[], str]] = None):
        self.console = console or Console()
        self._ask = ask or self._prompt

    def _prompt(self) -> str:
        return Prompt.ask(
            "Choose an option",
            choices=[key for key, _, _ in TRUST_OPTIONS],
            console=self.console,
        )

    def render(self, confirmation: PendingConfirmation):
        folders = "\n".join(f"- {f}" for f in confirmation.unknown_paths)
        options = "\n".join(f"  [bold]{key}[/bold]. {label}" for key, label, _ in TRUST_OPTIONS)
        self.console.print(Panel(
            f"[bold]Do you trust the following folders being added to this workspace?[/bold]\n"
            f"{folders}\n\n{TRUST_EXPLANATION}\n\n{options}",
            border_style="yellow",
        ))

    async def present(self, confirmation: PendingConfirmation):
        self.render(confirmation)
        confirmation.on_state_change(self._on_state_change)

        try:
            answer = await asyncio.to_thread(self._ask)
            choice = next((c for key, _, c in TRUST_OPTIONS if key == answer.strip()), None)
        except (KeyboardInterrupt, EOFError):
            choice = None

        if choice is None:
            logger.debug("Trust prompt cancelled")
            choice = TrustChoice.CANCEL

        if confirmation.is_open:
            await confirmation.choose(choice)

    def _on_state_change(self, confirmation: PendingConfirmation):
        if confirmation.is_applying and confirmation.choice != TrustChoice.CANCEL:
            self.console.print("[dim]Applying trust settings...[/dim]")
