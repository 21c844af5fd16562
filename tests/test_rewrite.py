"""
Tests for the step-by-step rewrite operation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from git_instafix.git_manager import GitManager
from git_instafix.models import GitRepositoryError, RetargetedBranch, RewriteStepKind
from git_instafix.rewrite import RewriteOperation, RewriteState

from repo_helpers import summaries


class TestRewriteOperation:
    """Test planning, stepping, finishing and aborting."""

    def _gm(self, repo) -> GitManager:
        return GitManager(Path(repo.working_tree_dir))

    def test_start_plans_picks_oldest_first(self, repo, stacked_repo):
        gm = self._gm(repo)

        operation = RewriteOperation.start(gm, "changes", upstream=stacked_repo["a"])

        assert len(operation) == 3
        assert [s.commit.hash for s in operation.steps] == [
            stacked_repo["c"], stacked_repo["d"], stacked_repo["e"]
        ]
        assert all(s.kind is RewriteStepKind.PICK for s in operation.steps)
        assert repo.head.is_detached
        assert repo.head.commit.hexsha == stacked_repo["a"]
        assert repo.commit("ORIG_HEAD").hexsha == stacked_repo["e"]
        assert operation.current is None

    def test_replaying_every_step_recreates_history(self, repo, stacked_repo):
        gm = self._gm(repo)

        with RewriteOperation.start(gm, "changes", upstream=stacked_repo["a"], onto=stacked_repo["b"]) as op:
            for step in op:
                op.pick(step)
                op.commit(step)

        assert op.state is RewriteState.FINISHED
        assert repo.active_branch.name == "changes"
        assert summaries(repo) == ["e", "d", "c", "b", "a"]
        assert not repo.is_dirty()

    def test_exception_aborts(self, repo, stacked_repo):
        gm = self._gm(repo)

        with pytest.raises(RuntimeError):
            with RewriteOperation.start(gm, "changes", upstream=stacked_repo["a"]) as op:
                step = op.next()
                op.pick(step)
                op.commit(step)
                raise RuntimeError("stop")

        assert op.state is RewriteState.ABORTED
        assert repo.active_branch.name == "changes"
        assert repo.head.commit.hexsha == stacked_repo["e"]
        assert not repo.is_dirty()

    def test_abort_restores_retargeted_branches(self, repo, stacked_repo):
        repo.git.branch("intermediate", stacked_repo["c"])
        gm = self._gm(repo)
        op = RewriteOperation.start(gm, "changes", upstream=stacked_repo["a"], onto=stacked_repo["b"])
        step = op.next()
        op.pick(step)
        new_sha = op.commit(step)
        gm.set_branch_target("intermediate", new_sha, stacked_repo["c"], "test")
        op.remember_retargeted([RetargetedBranch("intermediate", stacked_repo["c"], new_sha)])

        op.abort()

        assert repo.commit("intermediate").hexsha == stacked_repo["c"]
        assert repo.commit("changes").hexsha == stacked_repo["e"]

    def test_steps_rejected_after_finish(self, repo, stacked_repo):
        gm = self._gm(repo)
        op = RewriteOperation.start(gm, "changes", upstream=stacked_repo["e"])
        assert op.next() is None

        op.finish()

        with pytest.raises(GitRepositoryError, match="already finished"):
            op.next()
        with pytest.raises(GitRepositoryError):
            op.abort()

    def test_refuses_during_native_rebase(self, repo, stacked_repo):
        (Path(repo.git_dir) / "rebase-merge").mkdir()

        with pytest.raises(GitRepositoryError, match="rebase is already in progress"):
            RewriteOperation.start(self._gm(repo), "changes", upstream=stacked_repo["a"])

        assert not repo.head.is_detached

    def test_unknown_branch(self, repo, stacked_repo):
        with pytest.raises(GitRepositoryError, match="does not exist"):
            RewriteOperation.start(self._gm(repo), "nope", upstream=stacked_repo["a"])
