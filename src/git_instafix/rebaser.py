"""
The fixup-and-propagate rebase: fold an amendment into an ancestor commit and
replay everything after it, dragging along branches that pointed at rewritten
commits.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .branch_index import BranchIndex
from .git_manager import GitManager
from .models import (
    AmendmentDiff,
    CommitInfo,
    EmptyRebaseError,
    GitRepositoryError,
    RetargetedBranch,
    RewriteStepKind,
    UnsupportedRewriteOperationError,
    stage,
)
from .prompt_interface import UserPrompt
from .rewrite import RewriteOperation


logger = logging.getLogger(__name__)


class FixupRebaser:
    """Runs rewrite operations and keeps branch refs in step with them."""

    def __init__(self, git_manager: GitManager, prompt: UserPrompt) -> None:
        self.gm = git_manager
        self.prompt = prompt
        # The most recently started rewrite, None until one has started
        self.operation: Optional[RewriteOperation] = None

    def fixup(
        self,
        branch: str,
        commit_to_amend: CommitInfo,
        diff: AmendmentDiff,
        amendment: CommitInfo,
    ) -> List[RetargetedBranch]:
        """
        Rewrite `branch` so that `diff` is part of `commit_to_amend`.

        `amendment` is the sentinel commit already sitting on the branch tip.
        On failure the rewrite is aborted and the branch is left at `amendment`.
        """
        branches, operation = self._start(branch, upstream=commit_to_amend.parents[0])

        retargeted: List[RetargetedBranch] = []
        with operation:
            with stage("applying amendment"):
                retargeted += self._apply_amendment(operation, commit_to_amend, diff, branches)
            with stage("replaying commits"):
                retargeted += self._replay(operation, branches, skip_message=amendment.message)
        return retargeted

    def rebase_onto(self, branch: str, upstream: str, onto: str) -> List[RetargetedBranch]:
        """Replay `upstream..branch` onto `onto`, retargeting intermediate branches."""
        branches, operation = self._start(branch, upstream=upstream, onto=onto)

        with operation, stage("replaying commits"):
            return self._replay(operation, branches)

    def _start(
        self, branch: str, upstream: str, onto: Optional[str] = None
    ) -> Tuple[BranchIndex, RewriteOperation]:
        self.operation = None
        with stage("indexing branches"):
            branches = BranchIndex.build(self.gm)
        with stage("starting rewrite"):
            self.operation = RewriteOperation.start(self.gm, branch, upstream=upstream, onto=onto)
        return branches, self.operation

    def _apply_amendment(
        self,
        operation: RewriteOperation,
        commit_to_amend: CommitInfo,
        diff: AmendmentDiff,
        branches: BranchIndex,
    ) -> List[RetargetedBranch]:
        """First step: rebuild the selected commit with the amendment folded in."""
        step = operation.next()
        if step is None:
            raise EmptyRebaseError("Unable to start rebase: no first step in rebase")
        if step.commit.hash != commit_to_amend.hash:
            raise GitRepositoryError(
                f"first rebase step is {step.commit.display()}, expected {commit_to_amend.display()}"
            )

        operation.pick(step)
        self.gm.apply_diff(diff)
        tree = self.gm.write_tree()
        rewritten = self.gm.amend_commit_tree(step.commit.hash, tree)

        moved = branches.retarget(self.gm, step.commit.hash, rewritten, step.index, len(operation))
        operation.remember_retargeted(moved)
        self.prompt.show_retargeted(moved)

        self.gm.reset(rewritten, "--soft")
        logger.info(f"Amended {step.commit.short_hash} as {rewritten[:10]}")
        return moved

    def _replay(
        self,
        operation: RewriteOperation,
        branches: BranchIndex,
        skip_message: Optional[str] = None,
    ) -> List[RetargetedBranch]:
        """Replay every remaining step verbatim; only plain picks are supported."""
        retargeted: List[RetargetedBranch] = []
        for step in operation:
            if step.kind is not RewriteStepKind.PICK:
                raise UnsupportedRewriteOperationError(
                    f"Unable to handle {step.kind.value} rebase operation"
                )
            if skip_message is not None and step.commit.message == skip_message:
                # The amendment itself, already folded into the first step
                logger.debug(f"Dropping amendment commit {step.commit.short_hash}")
                continue

            operation.pick(step)
            new_sha = operation.commit(step)
            moved = branches.retarget(self.gm, step.commit.hash, new_sha, step.index, len(operation))
            operation.remember_retargeted(moved)
            self.prompt.show_retargeted(moved)
            retargeted += moved
        return retargeted
