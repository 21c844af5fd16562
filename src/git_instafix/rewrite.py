"""
A linear history rewrite driven one step at a time.

HEAD is detached while the rewrite runs; the branch being rewritten only moves
when the operation finishes.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, List, Optional

from .git_manager import GitManager
from .models import (
    GitRepositoryError,
    RetargetedBranch,
    RewriteStep,
    RewriteStepKind,
)


logger = logging.getLogger(__name__)


class RewriteState(Enum):
    IN_PROGRESS = "in progress"
    FINISHED = "finished"
    ABORTED = "aborted"


class RewriteOperation:
    """Replays `upstream..branch` onto a new base, step by step.

    Used as a context manager: leaving the block normally finishes the
    operation, leaving it with an exception aborts it.
    """

    def __init__(
        self,
        git_manager: GitManager,
        branch: str,
        orig_head: str,
        onto: str,
        steps: List[RewriteStep],
    ) -> None:
        self.gm = git_manager
        self.branch = branch
        self.orig_head = orig_head
        self.onto = onto
        self.steps = steps
        self.state = RewriteState.IN_PROGRESS
        self._cursor: Optional[int] = None
        self._retargeted: List[RetargetedBranch] = []

    @classmethod
    def start(
        cls,
        git_manager: GitManager,
        branch: str,
        upstream: str,
        onto: Optional[str] = None,
    ) -> "RewriteOperation":
        """Plan the steps and detach HEAD at `onto` (defaults to `upstream`)."""
        if git_manager.is_rebase_in_progress():
            raise GitRepositoryError("a rebase is already in progress; finish or abort it first")
        tip = git_manager.local_branch_commit(branch)
        if tip is None:
            raise GitRepositoryError(f"branch {branch} does not exist")

        onto = onto or upstream
        steps = [
            RewriteStep(index=i, kind=RewriteStepKind.PICK, commit=commit)
            for i, commit in enumerate(git_manager.get_commits_between(upstream, tip.hash))
        ]
        git_manager.record_orig_head(tip.hash)
        git_manager.checkout_detached(onto)
        logger.info(
            f"Started rewrite of {branch} ({len(steps)} steps) onto {onto[:10]}"
        )
        return cls(git_manager, branch, tip.hash, onto, steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def current(self) -> Optional[int]:
        """Index of the step last returned by next(), or None before the first."""
        return self._cursor

    def _check_in_progress(self) -> None:
        if self.state is not RewriteState.IN_PROGRESS:
            raise GitRepositoryError(f"rewrite of {self.branch} is already {self.state.value}")

    def next(self) -> Optional[RewriteStep]:
        self._check_in_progress()
        following = 0 if self._cursor is None else self._cursor + 1
        if following >= len(self.steps):
            return None
        self._cursor = following
        step = self.steps[following]
        logger.debug(f"Step {following + 1}/{len(self.steps)}: {step.kind.value} {step.commit.display()}")
        return step

    def __iter__(self) -> Iterator[RewriteStep]:
        while True:
            step = self.next()
            if step is None:
                return
            yield step

    def pick(self, step: RewriteStep) -> None:
        """Apply the step's change to the index and working tree."""
        self._check_in_progress()
        self.gm.pick_onto_head(step.commit)

    def commit(self, step: RewriteStep) -> str:
        """Record the index as the replayed step and move HEAD to it."""
        self._check_in_progress()
        parent = self.gm.head_commit().hash
        new_sha = self.gm.replay_commit(step.commit.hash, parent)
        self.gm.reset(new_sha, "--soft")
        logger.debug(f"Replayed {step.commit.hash[:10]} as {new_sha[:10]}")
        return new_sha

    def remember_retargeted(self, retargeted: List[RetargetedBranch]) -> None:
        """Branches moved mid-rewrite; abort puts them back."""
        self._retargeted.extend(retargeted)

    def finish(self) -> None:
        """Move the branch to the rewritten history and check it out again."""
        self._check_in_progress()
        new_head = self.gm.head_commit().hash
        self.gm.set_branch_target(
            self.branch, new_head, self.orig_head, f"git-instafix: finished rewrite of {self.branch}"
        )
        self.gm.attach_head(self.branch)
        self.state = RewriteState.FINISHED
        logger.info(f"Finished rewrite of {self.branch}: {self.orig_head[:10]} -> {new_head[:10]}")

    def abort(self) -> None:
        """Return to the state from before start()."""
        self._check_in_progress()
        self.state = RewriteState.ABORTED
        self.gm.reset(self.orig_head, "--hard")
        self.gm.set_branch_target(
            self.branch, self.orig_head, None, "git-instafix: aborted rewrite"
        )
        self.gm.attach_head(self.branch)
        for moved in reversed(self._retargeted):
            self.gm.set_branch_target(
                moved.name, moved.from_hash, moved.to_hash, "git-instafix: aborted rewrite"
            )
        logger.warning(f"Aborted rewrite of {self.branch}, restored {self.orig_head[:10]}")

    def __enter__(self) -> "RewriteOperation":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.state is not RewriteState.IN_PROGRESS:
            return False
        if exc_type is not None:
            self.abort()
            return False
        try:
            self.finish()
        except BaseException:
            if self.state is RewriteState.IN_PROGRESS:
                self.abort()
            raise
        return False
