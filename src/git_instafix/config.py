"""
Configuration loading: command-line flags, environment variables, then git config.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .git_manager import GitManager


logger = logging.getLogger(__name__)

# Env vars that provide defaults for command-line options
MAX_COMMITS_VAR = "GIT_INSTAFIX_MAX_COMMITS"
UPSTREAM_VAR = "GIT_INSTAFIX_UPSTREAM"
REQUIRE_NEWLINE_VAR = "GIT_INSTAFIX_REQUIRE_NEWLINE"
THEME_VAR = "GIT_INSTAFIX_THEME"

CONFIG_SECTION = "instafix"

DEFAULT_UPSTREAM_BRANCHES = ("main", "master", "develop", "trunk")
DEFAULT_MAX_COMMITS = 15
DEFAULT_THEME = "monokai"


@dataclass
class InstafixConfig:
    """Fully resolved settings for one run."""

    # Change the commit message that you amend (squash!) instead of fixup!
    squash: bool = False
    # The maximum number of commits to show when looking for your merge point
    max_commits: int = DEFAULT_MAX_COMMITS
    commit_message_pattern: Optional[str] = None
    default_upstream_branch: Optional[str] = None
    # Require a newline when confirming y/n questions
    require_newline: bool = False
    theme: str = DEFAULT_THEME
    help_themes: bool = False


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_config(
    git_manager: GitManager,
    *,
    squash: bool = False,
    max_commits: Optional[int] = None,
    commit_message_pattern: Optional[str] = None,
    default_upstream_branch: Optional[str] = None,
    require_newline: Optional[bool] = None,
    theme: Optional[str] = None,
    help_themes: bool = False,
) -> InstafixConfig:
    """Fill in anything the command line (or its env vars) left unset from git config.

    `squash` can only be switched on from the command line, so False falls
    through to `instafix.squash`.
    """

    def from_git(option: str, default: Any) -> Any:
        return git_manager.get_config_value(CONFIG_SECTION, option, default)

    upstream = default_upstream_branch or from_git("default-upstream-branch", None)
    config = InstafixConfig(
        squash=squash or _as_bool(from_git("squash", False)),
        max_commits=(
            max_commits
            if max_commits is not None
            else int(from_git("max-commits", DEFAULT_MAX_COMMITS))
        ),
        commit_message_pattern=commit_message_pattern,
        default_upstream_branch=str(upstream) if upstream is not None else None,
        require_newline=(
            require_newline
            if require_newline is not None
            else _as_bool(from_git("require-newline", False))
        ),
        theme=theme or str(from_git("theme", DEFAULT_THEME)),
        help_themes=help_themes,
    )
    logger.debug(f"Loaded configuration: {config}")
    return config
