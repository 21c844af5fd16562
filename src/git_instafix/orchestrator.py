"""
Top-level workflows: fix up an ancestor commit, or rebase a stack of branches.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from .config import InstafixConfig, load_config
from .git_manager import GitManager
from .models import (
    ChangeSource,
    CommitInfo,
    GitRepositoryError,
    InstafixError,
    RetargetedBranch,
    UnsupportedRewriteOperationError,
    stage,
)
from .patcher import AmendmentDiffBuilder, create_amendment_commit
from .prompt_interface import NoOpPrompt, UserPrompt
from .rebaser import FixupRebaser
from .rewrite import RewriteState
from .selector import CommitSelector
from .upstream import BoundaryResolver


logger = logging.getLogger(__name__)

STASH_MESSAGE = "git-instafix stashing changes"


class InstafixOrchestrator:
    """Wires the repository, the prompt and the rewrite engine together."""

    def __init__(self, repo_path: Optional[Path] = None, prompt: Optional[UserPrompt] = None) -> None:
        self.repo_path = repo_path or Path.cwd()
        self.prompt = prompt or NoOpPrompt()
        self.git_manager = GitManager(self.repo_path)
        self.boundary_resolver = BoundaryResolver(self.git_manager)
        self.selector = CommitSelector(self.git_manager, self.prompt)
        self.diff_builder = AmendmentDiffBuilder(self.git_manager, self.prompt)
        self.rebaser = FixupRebaser(self.git_manager, self.prompt)

    def load_config(self, **options: Any) -> InstafixConfig:
        """Resolve settings, filling gaps from the repository's git config."""
        return load_config(self.git_manager, **options)

    def instafix(self, config: InstafixConfig) -> List[RetargetedBranch]:
        """
        Fold the staged (or, once confirmed, all) changes into an ancestor commit.

        Returns the intermediate branches that were moved along with their commits.

        Raises:
            InstafixError: for any failure; nothing is changed if it happens before
                the fixup commit exists, otherwise the branch ends at that commit
        """
        if config.squash:
            raise UnsupportedRewriteOperationError(
                "squash mode is not supported: combining commit messages is not implemented"
            )

        gm = self.git_manager
        head_branch = gm.get_current_branch()

        with stage("creating diff"):
            diff = self.diff_builder.build_diff(config.require_newline, config.theme)

        try:
            with stage("creating merge base"):
                boundary = self.boundary_resolver.resolve(head_branch, config.default_upstream_branch)
            with stage("selecting commit to amend"):
                commit_to_amend = self.selector.select(
                    boundary, config.max_commits, config.commit_message_pattern
                )
            self.prompt.show_selected(commit_to_amend)
            _require_parent(commit_to_amend)
        except BaseException:
            if diff.source is ChangeSource.UNSTAGED:
                logger.debug("Unstaging changes staged for the fixup commit")
                gm.unstage_all()
            raise

        with stage("doing fixup commit"):
            amendment = create_amendment_commit(gm, commit_to_amend, config.squash)

        with self._guarded_rewrite(
            "your changes are in the head commit.",
            f"git rebase --interactive --autosquash {commit_to_amend.parents[0]}",
        ), self._stashed():
            return self.rebaser.fixup(head_branch, commit_to_amend, diff, amendment)

    def rebase_onto(self, onto: str) -> Optional[List[RetargetedBranch]]:
        """
        Replay the current branch onto `onto`, moving intermediate branches with it.

        Returns None when the branch already sits on top of `onto`.
        """
        gm = self.git_manager
        head_branch = gm.get_current_branch()

        with stage("creating merge base"):
            target = gm.resolve_commit(onto)
            tip = gm.head_commit()
            upstream = gm.merge_base(tip.hash, target.hash)
            if upstream is None:
                raise GitRepositoryError(f"{head_branch} and {onto} share no history")

        if upstream == target.hash:
            logger.info(f"{head_branch} is already based on {onto}")
            return None

        with self._guarded_rewrite(
            f"{head_branch} is unchanged.",
            f"git rebase --onto {target.hash} {upstream} {head_branch}",
        ), self._stashed():
            return self.rebaser.rebase_onto(head_branch, upstream, target.hash)

    @contextmanager
    def _guarded_rewrite(self, outcome: str, command: str) -> Iterator[None]:
        """Tell the user how to finish by hand when a rewrite fails."""
        self.rebaser.operation = None
        try:
            yield
        except BaseException:
            operation = self.rebaser.operation
            if operation is None:
                self.prompt.show_recovery(f"Rebase was not started, {outcome}", command)
            elif operation.state is RewriteState.ABORTED:
                self.prompt.show_recovery(f"Aborting rebase, {outcome}", command)
            raise

    @contextmanager
    def _stashed(self) -> Iterator[None]:
        """Stash tracked changes for the duration of a rewrite, restoring them on every exit."""
        gm = self.git_manager
        if not gm.is_worktree_dirty():
            yield
            return
        with stage("stashing changes"):
            gm.stash_save(STASH_MESSAGE)
        try:
            yield
        except BaseException:
            try:
                self._pop_stash()
            except InstafixError as e:
                # Keep the rewrite failure as the raised error
                logger.error(f"{e}; the rewrite had already failed")
            raise
        self._pop_stash()

    def _pop_stash(self) -> None:
        try:
            with stage("restoring stashed changes"):
                self.git_manager.stash_pop()
        except InstafixError:
            self.prompt.show_recovery(
                "Unable to restore your uncommitted changes, they are still stashed.",
                "git stash pop",
            )
            raise


def _require_parent(commit: CommitInfo) -> None:
    if not commit.parents:
        raise GitRepositoryError(
            f"cannot amend {commit.display()}: it is a root commit"
        )
