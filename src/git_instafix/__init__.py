"""
git-instafix - fold staged changes into any commit in your branch's history.

Amends an ancestor commit with the current changes, replays every commit after
it, and moves the local branches that pointed at rewritten commits along with
them.
"""

__version__ = "0.1.0"

from .orchestrator import InstafixOrchestrator
from .config import InstafixConfig
from .models import CommitInfo, InstafixError, RetargetedBranch
from .git_manager import GitManager
from .branch_index import BranchIndex
from .rewrite import RewriteOperation
from .rebaser import FixupRebaser

__all__ = [
    "InstafixOrchestrator",
    "InstafixConfig",
    "CommitInfo",
    "InstafixError",
    "RetargetedBranch",
    "GitManager",
    "BranchIndex",
    "RewriteOperation",
    "FixupRebaser",
]
