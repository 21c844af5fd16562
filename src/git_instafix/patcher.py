"""
Builds the change to fold into the selected commit and records it as a fixup commit.
"""

from __future__ import annotations

import logging

from .git_manager import GitManager
from .models import (
    AmendmentDiff,
    ChangeSource,
    CommitInfo,
    NothingToAmendError,
    UserDeclinedError,
)
from .prompt_interface import UserPrompt


logger = logging.getLogger(__name__)


def amendment_message(commit_to_amend: CommitInfo, squash: bool = False) -> str:
    """The sentinel message that marks the synthetic amendment commit."""
    prefix = "squash!" if squash else "fixup!"
    return f"{prefix} {commit_to_amend.hash}"


class AmendmentDiffBuilder:
    """Decides whether the staged or the working-tree changes are the amendment."""

    def __init__(self, git_manager: GitManager, prompt: UserPrompt) -> None:
        self.gm = git_manager
        self.prompt = prompt

    def build_diff(self, require_newline: bool = False, theme: str = "") -> AmendmentDiff:
        """
        Return the amendment as a diff of HEAD against the index.

        Staged changes win. Otherwise the working-tree changes are shown and,
        once confirmed, staged wholesale.

        Raises:
            UserDeclinedError: the user did not want to stage everything
            NothingToAmendError: neither staged nor working-tree changes exist
        """
        staged = self.gm.staged_diff()
        if staged.files_changed > 0:
            self.prompt.show_diffstat(staged)
            return staged

        unstaged = self.gm.unstaged_diff()
        if unstaged.files_changed == 0:
            raise NothingToAmendError("Nothing staged and no tracked files have any changes")

        self.prompt.show_diff(unstaged, theme)
        if not self.prompt.confirm(
            "Nothing staged, stage and commit everything?", require_newline=require_newline
        ):
            raise UserDeclinedError()

        self.gm.apply_diff(unstaged, index_only=True)
        # The earlier diff describes index -> worktree; the amendment is HEAD -> index
        restaged = self.gm.staged_diff()
        restaged.source = ChangeSource.UNSTAGED
        return restaged


def create_amendment_commit(
    git_manager: GitManager, commit_to_amend: CommitInfo, squash: bool = False
) -> CommitInfo:
    """Commit the current index on the branch tip with the sentinel message."""
    return git_manager.commit_index_on_head(amendment_message(commit_to_amend, squash))
