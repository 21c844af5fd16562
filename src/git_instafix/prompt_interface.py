"""
UI-agnostic prompt interface for user interactions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from .models import AmendmentDiff, CommitChoice, CommitInfo, RetargetedBranch


class UserPrompt(ABC):
    """Abstract interface for prompting users for decisions and reporting progress."""

    @abstractmethod
    def confirm(self, message: str, require_newline: bool = False) -> bool:
        """
        Ask a yes/no question.

        Args:
            message: The question to show
            require_newline: Wait for Enter instead of acting on a single key

        Returns:
            True if the user answered yes

        Raises:
            InteractionCancelledError: if the user interrupted the prompt
        """
        pass

    @abstractmethod
    def select_commit(self, choices: List[CommitChoice], header: str) -> int:
        """
        Let the user pick one commit, newest first. The default is index 0.

        Returns:
            Index into `choices` of the selected commit

        Raises:
            InteractionCancelledError: if the user interrupted the prompt
        """
        pass

    @abstractmethod
    def show_diffstat(self, diff: AmendmentDiff) -> None:
        """Show a summary of the files touched by a diff."""
        pass

    @abstractmethod
    def show_diff(self, diff: AmendmentDiff, theme: str) -> None:
        """Show a diff for review, highlighted if it fits on screen."""
        pass

    @abstractmethod
    def show_selected(self, commit: CommitInfo) -> None:
        pass

    @abstractmethod
    def show_retargeted(self, retargeted: List[RetargetedBranch]) -> None:
        pass

    @abstractmethod
    def show_recovery(self, message: str, command: str) -> None:
        """Tell the user how to finish by hand after an aborted rewrite."""
        pass


class NoOpPrompt(UserPrompt):
    """No-operation prompt that always returns safe defaults."""

    def confirm(self, message: str, require_newline: bool = False) -> bool:
        return False

    def select_commit(self, choices: List[CommitChoice], header: str) -> int:
        return 0

    def show_diffstat(self, diff: AmendmentDiff) -> None:
        pass

    def show_diff(self, diff: AmendmentDiff, theme: str) -> None:
        pass

    def show_selected(self, commit: CommitInfo) -> None:
        pass

    def show_retargeted(self, retargeted: List[RetargetedBranch]) -> None:
        pass

    def show_recovery(self, message: str, command: str) -> None:
        pass
