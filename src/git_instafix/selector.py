"""
Selection of the commit to amend.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .git_manager import GitManager
from .models import (
    CommitChoice,
    CommitInfo,
    EmptyRangeError,
    PatternNotFoundError,
    commit_id_and_summary,
)
from .prompt_interface import UserPrompt


logger = logging.getLogger(__name__)


class CommitSelector:
    """Walks history from HEAD back to a boundary and picks one commit."""

    def __init__(self, git_manager: GitManager, prompt: UserPrompt) -> None:
        self.gm = git_manager
        self.prompt = prompt

    def commit_range(self, boundary: Optional[CommitInfo], max_count: int) -> List[CommitInfo]:
        """Commits newest first, stopping before the boundary or after max_count."""
        head = self.gm.head_commit()
        commits = self.gm.iter_commit_range(
            head.hash, boundary.hash if boundary else None, max_count
        )
        if not commits:
            head_display = f"{self.gm.get_current_branch()} ({head.hash[:10]})"
            raise EmptyRangeError(
                f"No commits between {head_display} and "
                f"{boundary.hash if boundary else '<no upstream>'}"
            )
        return commits

    def select(
        self,
        boundary: Optional[CommitInfo],
        max_count: int,
        pattern: Optional[str] = None,
    ) -> CommitInfo:
        commits = self.commit_range(boundary, max_count)
        if pattern is not None:
            return self._match_pattern(commits, pattern)

        labels = self.gm.branch_labels()
        # The tip's own branches are implied
        choices = [
            CommitChoice(commit=c, branches=labels.get(c.hash, []) if i > 0 else [])
            for i, c in enumerate(commits)
        ]
        if boundary is None:
            header = "Select a commit to amend (no upstream for HEAD):"
        else:
            header = "Select a commit to amend:"
        return commits[self.prompt.select_commit(choices, header)]

    def _match_pattern(self, commits: List[CommitInfo], pattern: str) -> CommitInfo:
        """First commit, newest first, whose summary contains pattern."""
        for commit in commits:
            if pattern in commit.summary:
                logger.info(f"Pattern '{pattern}' matched {commit.display()}")
                return commit
        first = commit_id_and_summary(commits, len(commits) - 1)
        last = commit_id_and_summary(commits, 0)
        raise PatternNotFoundError(
            f"No commit contains the pattern '{pattern}' in its summary between {first}..{last}"
        )
