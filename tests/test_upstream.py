"""
Tests for boundary resolution.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from git_instafix.git_manager import GitManager
from git_instafix.models import NoDivergenceError, RefNotFoundError
from git_instafix.upstream import BoundaryResolver

from repo_helpers import file_commit


def _resolver(repo) -> BoundaryResolver:
    return BoundaryResolver(GitManager(Path(repo.working_tree_dir)))


class TestBoundaryResolver:
    """Test candidate priority and merge-base computation."""

    def test_trunk_branch_merge_base(self, repo, stacked_repo):
        boundary = _resolver(repo).resolve("changes")

        # The fork point, not main's tip
        assert boundary.hash == stacked_repo["a"]

    def test_explicit_upstream_wins(self, repo, stacked_repo):
        repo.git.branch("base", stacked_repo["c"])

        boundary = _resolver(repo).resolve("changes", "base")

        assert boundary.hash == stacked_repo["c"]

    def test_explicit_upstream_accepts_any_ref(self, repo, stacked_repo):
        repo.git.tag("v1", stacked_repo["d"])

        assert _resolver(repo).resolve("changes", "v1").hash == stacked_repo["d"]

    def test_missing_explicit_upstream(self, repo, stacked_repo):
        with pytest.raises(RefNotFoundError, match="nope"):
            _resolver(repo).resolve("changes", "nope")

    def test_conventional_names_in_order(self, repo, stacked_repo):
        repo.git.branch("develop", stacked_repo["c"])
        repo.git.branch("-m", "main", "trunk")

        # develop comes before trunk
        assert _resolver(repo).resolve("changes").hash == stacked_repo["c"]

    def test_tracking_branch(self, repo, stacked_repo):
        repo.git.branch("-m", "main", "base")
        repo.git.branch("--set-upstream-to=base", "changes")

        assert _resolver(repo).resolve("changes").hash == stacked_repo["a"]

    def test_no_upstream(self, repo, stacked_repo):
        repo.git.branch("-D", "main")

        assert _resolver(repo).resolve("changes") is None

    def test_head_is_the_trunk(self, repo):
        file_commit(repo, "a")

        with pytest.raises(NoDivergenceError):
            _resolver(repo).resolve("main")

    def test_unrelated_history(self, repo, stacked_repo):
        repo.git.checkout("-q", "--orphan", "other")
        repo.git.rm("-rq", "--cached", ".")
        file_commit(repo, "z")

        assert _resolver(repo).resolve("other") is None
