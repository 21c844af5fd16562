"""
CLI-specific implementation of the prompt interface.
"""

from __future__ import annotations

from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from .diff_ui import print_diff, print_diffstat
from .models import AmendmentDiff, CommitChoice, CommitInfo, InteractionCancelledError, RetargetedBranch
from .prompt_interface import UserPrompt


class CliPrompt(UserPrompt):
    """CLI implementation of the prompt interface using click and rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def confirm(self, message: str, require_newline: bool = False) -> bool:
        """Ask a yes/no question, defaulting to no."""
        try:
            if require_newline:
                return click.confirm(message, default=False)
            while True:
                click.echo(f"{message} [y/N] ", nl=False)
                key = click.getchar()
                if key.lower() in ("y", "n", "\r", "\n"):
                    click.echo(key.strip())
                    return key.lower() == "y"
                click.echo()
        except (click.Abort, KeyboardInterrupt, EOFError) as e:
            raise InteractionCancelledError("confirmation cancelled") from e

    def select_commit(self, choices: List[CommitChoice], header: str) -> int:
        """Show a numbered list of commits and return the chosen index."""
        self.console.print(header)
        for i, choice in enumerate(choices, 1):
            row = Text(f"{i:>3}. ")
            row.append(choice.commit.short_hash, style="blue")
            row.append(" ")
            if choice.branches:
                row.append(f"({', '.join(choice.branches)}) ", style="green")
            row.append(choice.commit.summary or "no commit summary")
            self.console.print(row)

        try:
            selected = click.prompt(
                "Select a commit",
                type=click.IntRange(1, len(choices)),
                default=1,
                show_default=True,
            )
        except (click.Abort, KeyboardInterrupt, EOFError) as e:
            raise InteractionCancelledError("commit selection cancelled") from e
        return selected - 1

    def show_diffstat(self, diff: AmendmentDiff) -> None:
        print_diffstat(self.console, diff)

    def show_diff(self, diff: AmendmentDiff, theme: str) -> None:
        print_diff(self.console, diff, theme)

    def show_selected(self, commit: CommitInfo) -> None:
        self.console.print(f"Selected [blue]{commit.short_hash}[/blue] {escape(commit.summary)}")

    def show_retargeted(self, retargeted: List[RetargetedBranch]) -> None:
        for branch in retargeted:
            self.console.print(escape(str(branch)), highlight=False)

    def show_recovery(self, message: str, command: str) -> None:
        self.console.print(message, style="bold yellow")
        self.console.print("You can apply it manually via:")
        self.console.print(f"    {command}", style="cyan", highlight=False)
