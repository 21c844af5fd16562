"""
Tracking of which local branches point at which commits during a rewrite.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .git_manager import GitManager
from .models import RetargetedBranch


logger = logging.getLogger(__name__)

RETARGET_REASON = "git-instafix retarget historical branch"


class BranchIndex:
    """Maps commit ids to the local branches pointing at them.

    Built once per rewrite, before any commit is rewritten. Entries are
    dropped as their commits get rewritten, so each branch moves at most once.
    """

    def __init__(self, branches: Optional[Dict[str, List[str]]] = None) -> None:
        self.branches: Dict[str, List[str]] = branches or {}

    @classmethod
    def build(cls, git_manager: GitManager) -> "BranchIndex":
        """Index every local branch of the repository by its target commit."""
        branches: Dict[str, List[str]] = {}
        for name, sha in git_manager.local_branch_targets():
            branches.setdefault(sha, []).append(name)
        logger.debug(f"Indexed {sum(len(v) for v in branches.values())} branches")
        return cls(branches)

    def branches_at(self, commit_sha: str) -> List[str]:
        return list(self.branches.get(commit_sha, []))

    def __contains__(self, commit_sha: str) -> bool:
        return commit_sha in self.branches

    def __len__(self) -> int:
        return len(self.branches)

    def retarget(
        self,
        git_manager: GitManager,
        original_sha: str,
        new_sha: str,
        current_step: int,
        total_steps: int,
    ) -> List[RetargetedBranch]:
        """Move branches whose commit has just been rewritten.

        Nothing moves on the last step: finishing the rewrite moves the
        rewritten branch itself.
        """
        names = self.branches.get(original_sha)
        if not names:
            return []
        if current_step == total_steps - 1:
            logger.debug(f"Not retargeting {names} on the last step")
            return []

        retargeted: List[RetargetedBranch] = []
        for name in names:
            git_manager.set_branch_target(name, new_sha, original_sha, RETARGET_REASON)
            retargeted.append(RetargetedBranch(name=name, from_hash=original_sha, to_hash=new_sha))
            logger.debug(f"Retargeted {name} {original_sha[:8]} -> {new_sha[:8]}")
        del self.branches[original_sha]
        return retargeted
