"""
Resolution of the boundary commit that history walks must not cross.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .config import DEFAULT_UPSTREAM_BRANCHES
from .git_manager import GitManager
from .models import CommitInfo, NoDivergenceError


logger = logging.getLogger(__name__)


class BoundaryResolver:
    """Finds where the current branch diverged from its upstream."""

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def _candidate(
        self, head_branch: str, explicit_upstream: Optional[str]
    ) -> Optional[Tuple[str, CommitInfo]]:
        """First match of: explicit name, conventional trunk branch, configured upstream."""
        if explicit_upstream:
            return explicit_upstream, self.gm.resolve_commit(explicit_upstream)

        for name in DEFAULT_UPSTREAM_BRANCHES:
            commit = self.gm.local_branch_commit(name)
            if commit is not None:
                return name, commit

        tracking = self.gm.get_upstream_ref(head_branch)
        if tracking:
            return tracking, self.gm.resolve_commit(tracking)
        return None

    def resolve(
        self, head_branch: str, explicit_upstream: Optional[str] = None
    ) -> Optional[CommitInfo]:
        """
        Return the merge-base of the head branch and its upstream candidate.

        Returns None when no candidate exists; callers then walk unbounded.

        Raises:
            RefNotFoundError: the explicit upstream does not exist
            NoDivergenceError: the head branch is the upstream branch itself
        """
        candidate = self._candidate(head_branch, explicit_upstream)
        if candidate is None:
            logger.info(f"No upstream found for {head_branch}")
            return None
        name, upstream = candidate

        head = self.gm.local_branch_commit(head_branch) or self.gm.head_commit()
        base_sha = self.gm.merge_base(head.hash, upstream.hash)
        if base_sha is None:
            logger.warning(f"{head_branch} and {name} share no history; not bounding the walk")
            return None

        if base_sha == head.hash and name == head_branch:
            raise NoDivergenceError(
                f"HEAD is {head_branch}, which is also the upstream branch; "
                "check out a feature branch or pass --default-upstream-branch"
            )
        logger.debug(f"Boundary for {head_branch} from {name}: {base_sha[:10]}")
        return self.gm.get_commit(base_sha)
