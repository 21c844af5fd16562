"""
Shared fixtures: throwaway git repositories.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest
from git import Repo

from repo_helpers import file_commit


@pytest.fixture
def repo(tmp_path: Path) -> Repo:
    """An empty repository whose first branch is main."""
    path = tmp_path / "repo"
    path.mkdir()
    repo = Repo.init(path)
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")
    repo.git.symbolic_ref("HEAD", "refs/heads/main")
    yield repo
    repo.close()


@pytest.fixture
def stacked_repo(repo: Repo) -> Dict[str, str]:
    """
    main: a -> b
    changes: a -> c -> d -> e (checked out)
    """
    shas = {"a": file_commit(repo, "a"), "b": file_commit(repo, "b")}
    repo.git.checkout("-q", "-b", "changes", shas["a"])
    for name in ("c", "d", "e"):
        shas[name] = file_commit(repo, name)
    return shas
