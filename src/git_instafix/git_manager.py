"""
Git repository management and operations.
"""

from __future__ import annotations

import logging
import os
import tempfile
from configparser import NoOptionError, NoSectionError
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from git import Actor, Repo, InvalidGitRepositoryError
from git.exc import GitCommandError
from git.objects.commit import Commit
from git.objects.util import altz_to_utctz_str

from .models import (
    AmendmentDiff,
    ChangeSource,
    CommitInfo,
    FileStat,
    GitRepositoryError,
    NameEncodingError,
    RefNotFoundError,
)


logger = logging.getLogger(__name__)


def _to_commit_info(commit: Commit) -> CommitInfo:
    return CommitInfo(
        hash=commit.hexsha,
        message=commit.message,
        author=commit.author.name,
        author_email=commit.author.email,
        date=commit.authored_datetime.isoformat(),
        parents=[parent.hexsha for parent in commit.parents],
    )


def _git_date(timestamp: int, tz_offset: int) -> str:
    """Format a GitPython timestamp/offset pair the way git stores it."""
    return f"{timestamp} {altz_to_utctz_str(tz_offset)}"


class GitManager:
    """Manages Git operations for a single repository."""

    def __init__(self, repo_path: Optional[Path] = None) -> None:
        """Initialize Git manager with optional repository path."""
        self.repo_path = (repo_path or Path.cwd()).resolve()
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the Git repository instance."""
        if self._repo is None:
            self._repo = self._discover_repository()
        return self._repo

    def _discover_repository(self) -> Repo:
        """Discover the Git repository from current or specified path."""
        search_path = self.repo_path

        logger.debug(f"Discovering repository in: {search_path}")
        # Walk up the directory tree to find a Git repository
        while search_path != search_path.parent:
            try:
                repo = Repo(search_path)
                logger.info(f"Found Git repository at: {search_path}")
                return repo
            except InvalidGitRepositoryError:
                search_path = search_path.parent

        try:
            return Repo(self.repo_path)
        except InvalidGitRepositoryError as e:
            raise GitRepositoryError(
                f"No Git repository found at {self.repo_path} or any parent directory"
            ) from e

    # --- Refs and history ---
    def get_current_branch(self) -> str:
        """Get the current branch name."""
        try:
            return self.repo.active_branch.name
        except TypeError as e:
            raise GitRepositoryError(f"head is not pointing at a valid branch: {e}") from e

    def head_commit(self) -> CommitInfo:
        try:
            return _to_commit_info(self.repo.head.commit)
        except ValueError as e:
            raise GitRepositoryError(f"HEAD does not point at a commit: {e}") from e

    def get_commit(self, commitish: str) -> CommitInfo:
        return _to_commit_info(self.repo.commit(commitish))

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists (supports full names with slashes)."""
        try:
            self.repo.git.show_ref("--verify", "--quiet", f"refs/heads/{branch_name}")
            return True
        except GitCommandError:
            return False

    def local_branch_commit(self, branch_name: str) -> Optional[CommitInfo]:
        """Return the commit a local branch points at, or None if there is no such branch."""
        if not self.branch_exists(branch_name):
            return None
        return self.get_commit(f"refs/heads/{branch_name}")

    def resolve_commit(self, name: str) -> CommitInfo:
        """Resolve a ref or short name to a commit, preferring local branches."""
        local = self.local_branch_commit(name)
        if local is not None:
            return local
        try:
            sha = self.repo.git.rev_parse("--verify", "--quiet", f"{name}^{{commit}}").strip()
        except GitCommandError as e:
            raise RefNotFoundError(f"cannot find a branch or ref named '{name}'") from e
        return self.get_commit(sha)

    def get_upstream_ref(self, branch_name: str) -> Optional[str]:
        """Return the configured upstream of a local branch (e.g. origin/main), if any."""
        try:
            upstream = self.repo.git.rev_parse(
                "--abbrev-ref", "--symbolic-full-name", f"refs/heads/{branch_name}@{{upstream}}"
            ).strip()
        except GitCommandError:
            return None
        return upstream or None

    def merge_base(self, first: str, second: str) -> Optional[str]:
        bases = self.repo.merge_base(first, second)
        if not bases:
            return None
        return bases[0].hexsha

    def iter_commit_range(
        self, tip: str, boundary: Optional[str], max_count: int
    ) -> List[CommitInfo]:
        """Commits from tip (newest first) down to, but excluding, boundary."""
        rev = f"{boundary}..{tip}" if boundary else tip
        return [
            _to_commit_info(c)
            for c in self.repo.iter_commits(rev, topo_order=True, max_count=max_count)
        ]

    def get_commits_between(self, upstream: str, branch: str) -> List[CommitInfo]:
        """Non-merge commits in branch not in upstream, oldest first."""
        commits = self.repo.iter_commits(
            f"{upstream}..{branch}", topo_order=True, reverse=True, no_merges=True
        )
        return [_to_commit_info(c) for c in commits]

    def local_branch_targets(self) -> List[Tuple[str, str]]:
        """Return (branch name, commit id) for every local branch pointing at a commit."""
        raw = self.repo.git.for_each_ref(
            "--format=%(objectname) %(objecttype) %(refname)",
            "refs/heads",
            stdout_as_string=False,
        )
        targets: List[Tuple[str, str]] = []
        for line in raw.splitlines():
            if not line.strip():
                continue
            sha, objtype, refname = line.split(b" ", 2)
            try:
                name = refname.decode("utf-8")[len("refs/heads/"):]
            except UnicodeDecodeError as e:
                raise NameEncodingError(f"branch name is not valid UTF-8: {refname!r}") from e
            if objtype != b"commit":
                logger.debug(f"Skipping branch {name}: points at a {objtype.decode()}")
                continue
            targets.append((name, sha.decode("ascii")))
        return targets

    def branch_labels(self) -> Dict[str, List[str]]:
        """Map commit id -> short names of local and remote branches pointing at it."""
        output = self.repo.git.for_each_ref(
            "--format=%(objectname) %(refname:short)", "refs/heads", "refs/remotes"
        )
        labels: Dict[str, List[str]] = {}
        for line in output.splitlines():
            sha, _, name = line.partition(" ")
            if not name or name.endswith("/HEAD"):
                continue
            labels.setdefault(sha, []).append(name)
        return labels

    def set_branch_target(
        self, branch_name: str, new_sha: str, old_sha: Optional[str], reason: str
    ) -> None:
        """Move a local branch; fails if it no longer points at old_sha."""
        args = ["-m", reason, f"refs/heads/{branch_name}", new_sha]
        if old_sha:
            args.append(old_sha)
        self.repo.git.update_ref(*args)
        logger.info(f"Moved branch {branch_name} -> {new_sha[:10]}")

    def record_orig_head(self, sha: str) -> None:
        self.repo.git.update_ref("ORIG_HEAD", sha)

    # --- Diffs and the index ---
    def _collect_diff(self, source: ChangeSource, *diff_args: str) -> AmendmentDiff:
        patch = self.repo.git.diff(
            "--binary", *diff_args, stdout_as_string=False, strip_newline_in_stdout=False
        )
        files: List[FileStat] = []
        for line in self.repo.git.diff("--numstat", *diff_args).splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, removed, path = parts
            binary = added == "-"
            files.append(
                FileStat(
                    path=path,
                    insertions=0 if binary else int(added),
                    deletions=0 if binary else int(removed),
                    binary=binary,
                )
            )
        stat = self.repo.git.diff("--stat", *diff_args) if files else ""
        return AmendmentDiff(source=source, patch=patch, files=files, stat=stat)

    def staged_diff(self) -> AmendmentDiff:
        """Diff between HEAD's tree and the index."""
        return self._collect_diff(ChangeSource.STAGED, "--cached", "HEAD")

    def unstaged_diff(self) -> AmendmentDiff:
        """Diff between the index and the working tree (tracked files only)."""
        return self._collect_diff(ChangeSource.UNSTAGED)

    def apply_patch(self, patch: bytes, *apply_args: str) -> None:
        """Feed a patch to `git apply` with the given options.

        Patches stay bytes throughout, file contents need not be valid UTF-8.
        """
        if not patch.strip():
            logger.debug("Empty patch, nothing to apply")
            return
        if not patch.endswith(b"\n"):
            patch += b"\n"
        fd, patch_path = tempfile.mkstemp(prefix="instafix-", suffix=".patch")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(patch)
            self.repo.git.apply(*apply_args, patch_path)
        finally:
            os.unlink(patch_path)

    def apply_diff(self, diff: AmendmentDiff, index_only: bool = False) -> None:
        """Apply a diff to the index, or to both index and working tree."""
        self.apply_patch(diff.patch, "--cached" if index_only else "--index")
        logger.info(
            f"Applied {diff.source.value.lower()} diff ({diff.files_changed} files) to "
            f"{'index' if index_only else 'index and working tree'}"
        )

    def pick_onto_head(self, commit: CommitInfo) -> None:
        """Bring a commit's change into index and working tree on top of HEAD."""
        head_sha = self.repo.head.commit.hexsha
        if commit.parents and commit.parents[0] == head_sha:
            self.repo.git.read_tree("-u", "--reset", commit.hash)
            return
        base = commit.parents[0] if commit.parents else self.empty_tree()
        patch = self.repo.git.diff(
            "--binary", base, commit.hash, stdout_as_string=False, strip_newline_in_stdout=False
        )
        self.apply_patch(patch, "--3way", "--index")

    def empty_tree(self) -> str:
        return self.repo.git.hash_object("-t", "tree", os.devnull).strip()

    def write_tree(self) -> str:
        return self.repo.git.write_tree().strip()

    def unstage_all(self) -> None:
        """Reset the index to HEAD, leaving the working tree alone."""
        self.repo.head.reset(index=True, working_tree=False)

    def is_worktree_dirty(self) -> bool:
        """Return True if tracked files differ from HEAD in the index or working tree."""
        return self.repo.is_dirty(index=True, working_tree=True, untracked_files=False)

    # --- Commits ---
    def commit_index_on_head(self, message: str) -> CommitInfo:
        """Commit the current index on top of HEAD, advancing the checked-out branch."""
        tree = self.write_tree()
        commit = Commit.create_from_tree(
            self.repo, tree, message, parent_commits=[self.repo.head.commit], head=True
        )
        logger.info(f"Created commit {commit.hexsha[:10]} '{message.splitlines()[0]}'")
        return _to_commit_info(commit)

    def amend_commit_tree(self, commit_sha: str, tree: str) -> str:
        """Rewrite a commit with a new tree, keeping everything else."""
        original = self.repo.commit(commit_sha)
        amended = Commit.create_from_tree(
            self.repo,
            tree,
            original.message,
            parent_commits=list(original.parents),
            head=False,
            author=original.author,
            committer=original.committer,
            author_date=_git_date(original.authored_date, original.author_tz_offset),
            commit_date=_git_date(original.committed_date, original.committer_tz_offset),
        )
        return amended.hexsha

    def replay_commit(self, commit_sha: str, parent_sha: str) -> str:
        """Record the index as a copy of commit_sha on top of parent_sha."""
        original = self.repo.commit(commit_sha)
        replayed = Commit.create_from_tree(
            self.repo,
            self.write_tree(),
            original.message,
            parent_commits=[self.repo.commit(parent_sha)],
            head=False,
            author=original.author,
            committer=Actor.committer(self.repo.config_reader()),
            author_date=_git_date(original.authored_date, original.author_tz_offset),
        )
        return replayed.hexsha

    # --- HEAD and working tree ---
    def checkout_detached(self, commitish: str) -> None:
        self.repo.git.checkout("--quiet", "--detach", commitish)

    def attach_head(self, branch_name: str) -> None:
        self.repo.git.symbolic_ref("HEAD", f"refs/heads/{branch_name}")

    def reset(self, commitish: str, mode: str = "--mixed") -> None:
        self.repo.git.reset("--quiet", mode, commitish)

    def is_rebase_in_progress(self) -> bool:
        """Check if a rebase is currently in progress."""
        git_dir = Path(self.repo.git_dir)
        return any((git_dir / d).exists() for d in ("rebase-merge", "rebase-apply"))

    # --- Stash ---
    def stash_save(self, message: str) -> None:
        self.repo.git.stash("push", "--quiet", "-m", message)
        logger.info(f"Stashed working tree changes: {message}")

    def stash_pop(self) -> None:
        self.repo.git.stash("pop", "--quiet")
        logger.info("Restored stashed working tree changes")

    # --- Configuration ---
    def get_config_value(self, section: str, option: str, default: Any = None) -> Any:
        """Read a value from the merged git configuration (system, global, repository)."""
        reader = self.repo.config_reader()
        try:
            return reader.get_value(section, option)
        except (NoSectionError, NoOptionError):
            return default
        finally:
            reader.release()
