"""
Data models and error taxonomy for git-instafix.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List

from git.exc import GitCommandError


@dataclass
class CommitInfo:
    """Information about a Git commit."""

    hash: str
    message: str
    author: str
    author_email: str
    date: str
    parents: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.split("\n", 1)[0]

    @property
    def short_hash(self) -> str:
        return self.hash[:10]

    def display(self) -> str:
        """Render as "short_hash summary"."""
        return f"{self.short_hash} {self.summary or '<no summary>'}"


@dataclass
class RetargetedBranch:
    """A branch moved from a rewritten commit to its replacement."""

    name: str
    from_hash: str
    to_hash: str

    def __str__(self) -> str:
        return f"updated branch {self.name}: {self.from_hash[:15]} -> {self.to_hash[:15]}"


class ChangeSource(Enum):
    """Where the amendment came from."""

    STAGED = "Staged"
    UNSTAGED = "Unstaged"


@dataclass
class FileStat:
    path: str
    insertions: int = 0
    deletions: int = 0
    binary: bool = False


@dataclass
class AmendmentDiff:
    """Snapshot of a diff, taken when it was computed.

    Later index mutations are not reflected here; build a new one instead.
    """

    source: ChangeSource
    patch: bytes
    files: List[FileStat] = field(default_factory=list)
    stat: str = ""

    @property
    def text(self) -> str:
        """The patch for display; bytes that are not UTF-8 are replaced."""
        return self.patch.decode("utf-8", errors="replace")

    @property
    def files_changed(self) -> int:
        return len(self.files)

    @property
    def insertions(self) -> int:
        return sum(f.insertions for f in self.files)

    @property
    def deletions(self) -> int:
        return sum(f.deletions for f in self.files)


class RewriteStepKind(Enum):
    """Operation kinds a rewrite step may carry. Only PICK is replayed."""

    PICK = "pick"
    REWORD = "reword"
    EDIT = "edit"
    SQUASH = "squash"
    FIXUP = "fixup"
    EXEC = "exec"


@dataclass(frozen=True)
class RewriteStep:
    """One commit to process during a rewrite operation."""

    index: int
    kind: RewriteStepKind
    commit: CommitInfo


@dataclass
class CommitChoice:
    """A row of the interactive commit list."""

    commit: CommitInfo
    branches: List[str] = field(default_factory=list)


class InstafixError(Exception):
    """Base exception for git-instafix.

    Carries a chain of stage descriptions, outermost first, which is rendered
    in front of the message.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.context: List[str] = []

    def with_context(self, description: str) -> "InstafixError":
        self.context.insert(0, description)
        return self

    def __str__(self) -> str:
        if not self.message:
            return ""
        return ": ".join([*self.context, self.message])


class GitRepositoryError(InstafixError):
    """Exception raised for Git repository related errors."""

    pass


class RefNotFoundError(InstafixError):
    """A named ref could not be resolved."""

    pass


class NameEncodingError(InstafixError):
    """A branch name is not valid UTF-8."""

    pass


class NoDivergenceError(InstafixError):
    """HEAD is the upstream branch itself, so there is nothing to fix up onto."""

    pass


class EmptyRangeError(InstafixError):
    """No commits between HEAD and its boundary."""

    pass


class EmptyRebaseError(InstafixError):
    """The rewrite operation produced no first step."""

    pass


class PatternNotFoundError(InstafixError):
    """No commit summary in range contains the requested pattern."""

    pass


class NothingToAmendError(InstafixError):
    """Neither staged nor working-tree changes exist."""

    pass


class InteractionCancelledError(InstafixError):
    """The user interrupted a prompt."""

    pass


class UnsupportedRewriteOperationError(InstafixError):
    """A rewrite step or mode this tool does not emulate."""

    pass


class UserDeclinedError(InstafixError):
    """The user answered no to a confirmation. Renders as an empty message."""

    def __init__(self) -> None:
        super().__init__("")


@contextmanager
def stage(description: str) -> Iterator[None]:
    """Attach ``description`` to any failure raised inside the block."""
    try:
        yield
    except InstafixError as e:
        e.with_context(description)
        raise
    except GitCommandError as e:
        raise GitRepositoryError(str(e).strip()).with_context(description) from e


def commit_id_and_summary(commits: List[CommitInfo], idx: int) -> str:
    """Render commits[idx] as "short_hash (summary)" or "<unknown>"."""
    if 0 <= idx < len(commits):
        c = commits[idx]
        return f"{c.short_hash} ({c.summary or '<unknown>'})"
    return "<unknown>"
