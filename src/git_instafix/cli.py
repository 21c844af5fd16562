"""
Command-line interface for git-instafix and git-rebase-with-intermediates.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .cli_prompt import CliPrompt
from .config import MAX_COMMITS_VAR, REQUIRE_NEWLINE_VAR, THEME_VAR, UPSTREAM_VAR
from .diff_ui import print_themes
from .models import InstafixError, InteractionCancelledError, UserDeclinedError
from .orchestrator import InstafixOrchestrator
from . import __version__ as PACKAGE_VERSION


console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

LOG_PATH_VAR = "GIT_INSTAFIX_LOG"


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"{ctx.find_root().info_name or 'git-instafix'} {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Determine default log file path (~/.git-instafix/git-instafix.log)."""
    env_path = os.environ.get(LOG_PATH_VAR)
    if env_path:
        p = Path(env_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    base = Path.home() / ".git-instafix"
    base.mkdir(parents=True, exist_ok=True)
    return base / "git-instafix.log"


def setup_logging(
    verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None
) -> Path:
    """Log everything to a rotating file; echo to the terminal only with --verbose or --log-level."""
    log_path = Path(log_file) if log_file else _default_log_path()

    root = logging.getLogger()
    # Clear existing handlers to avoid duplication in tests / repeated invocations
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_handler = RotatingFileHandler(
        str(log_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        console_handler = RichHandler(console=err_console, rich_tracebacks=True)
        console_handler.setLevel(level_map.get((console_level or "info").lower(), logging.INFO))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    return log_path


def _common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Version, logging and repository options shared by every command."""
    func = click.option(
        "--repo-path",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        help="Path to repository (defaults to current directory)",
    )(func)
    func = click.option(
        "--log-level",
        type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
        default=None,
        help="Console log level. By default, console logging is disabled.",
    )(func)
    func = click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")(func)
    func = click.option(
        "--version",
        "-V",
        is_flag=True,
        callback=_print_version,
        expose_value=False,
        is_eager=True,
        help="Show version and exit.",
    )(func)
    return func


@contextmanager
def _exit_on_error(verbose: bool) -> Iterator[None]:
    """Map failures to exit codes: 1 for errors, 130 for cancellation."""
    try:
        yield
    except UserDeclinedError:
        logger.debug("User declined, exiting quietly")
        sys.exit(1)
    except (InteractionCancelledError, click.Abort, KeyboardInterrupt):
        err_console.print("\nOperation cancelled by user", style="bold yellow")
        logger.debug("Operation cancelled by user", exc_info=True)
        sys.exit(130)
    except InstafixError as e:
        err_console.print(f"Error: {escape(str(e))}", style="bold red", soft_wrap=True)
        logger.error(f"Failed: {e}")
        logger.debug("Traceback", exc_info=True)
        sys.exit(1)
    except Exception as e:
        err_console.print(f"Unexpected error: {escape(str(e))}", style="bold red", soft_wrap=True)
        if verbose:
            err_console.print_exception()
        logger.debug("Unexpected error", exc_info=True)
        sys.exit(1)


@click.command("git-instafix", context_settings={"help_option_names": ["-h", "--help"]})
@_common_options
@click.option(
    "-s",
    "--squash",
    is_flag=True,
    hidden=True,
    help="Change the commit message that you amend (squash!) instead of fixup!",
)
@click.option(
    "-m",
    "--max-commits",
    type=click.IntRange(min=1),
    envvar=MAX_COMMITS_VAR,
    default=None,
    help="The maximum number of commits to show when looking for your merge point [default: 15]",
)
@click.option(
    "-P",
    "--commit-message-pattern",
    default=None,
    help="Specify a commit to amend by the subject line of the commit message",
)
@click.option(
    "-u",
    "--default-upstream-branch",
    envvar=UPSTREAM_VAR,
    default=None,
    help="The branch that marks where to stop looking for commits to amend",
)
@click.option(
    "--require-newline",
    type=click.BOOL,
    envvar=REQUIRE_NEWLINE_VAR,
    default=None,
    help="Require a newline when confirming y/n questions",
)
@click.option(
    "--theme",
    envvar=THEME_VAR,
    default=None,
    help="Use this theme for highlighting diffs [default: monokai]",
)
@click.option("--help-themes", is_flag=True, help="Show the available highlight themes and exit")
def instafix_cli(
    verbose: bool,
    log_level: Optional[str],
    repo_path: Optional[Path],
    squash: bool,
    max_commits: Optional[int],
    commit_message_pattern: Optional[str],
    default_upstream_branch: Optional[str],
    require_newline: Optional[bool],
    theme: Optional[str],
    help_themes: bool,
) -> None:
    """Fix a commit in your history with your currently-staged changes.

    When run with no changes staged, prompts to stage all changes to tracked
    files. Branches pointing at rewritten commits are moved along with them.
    """
    log_path = setup_logging(verbose, console_level=log_level)
    logger.debug(f"git-instafix {PACKAGE_VERSION}: cwd={Path.cwd()} repo_path={repo_path} log={log_path}")

    if help_themes:
        print_themes(console)
        return

    with _exit_on_error(verbose):
        orchestrator = InstafixOrchestrator(repo_path, CliPrompt(console))
        config = orchestrator.load_config(
            squash=squash,
            max_commits=max_commits,
            commit_message_pattern=commit_message_pattern,
            default_upstream_branch=default_upstream_branch,
            require_newline=require_newline,
            theme=theme,
        )
        retargeted = orchestrator.instafix(config)
        logger.info(f"Fixup complete, {len(retargeted)} intermediate branches moved")


@click.command("git-rebase-with-intermediates", context_settings={"help_option_names": ["-h", "--help"]})
@_common_options
@click.argument("onto")
def rebase_cli(
    verbose: bool, log_level: Optional[str], repo_path: Optional[Path], onto: str
) -> None:
    """Rebase the current branch onto ONTO, moving every branch along the way."""
    setup_logging(verbose, console_level=log_level)

    with _exit_on_error(verbose):
        orchestrator = InstafixOrchestrator(repo_path, CliPrompt(console))
        retargeted = orchestrator.rebase_onto(onto)
        if retargeted is None:
            console.print(f"Current branch is already up to date with {escape(onto)}.")
            return
        console.print(
            f"Rebased onto {escape(onto)}, moved {len(retargeted)} intermediate branch(es)",
            style="bold green",
        )


def _run(command: click.Command, **extra: Any) -> None:
    try:
        command(**extra)
    except KeyboardInterrupt:
        err_console.print("\nOperation cancelled by user", style="bold yellow")
        logger.debug("Top-level cancellation (KeyboardInterrupt)", exc_info=True)
        sys.exit(130)


def main() -> None:
    """Entry point for git-instafix; a program name ending in 'squash' turns on squash mode."""
    squash = Path(sys.argv[0]).name.endswith("squash")
    _run(instafix_cli, default_map={"squash": True} if squash else None)


def main_squash() -> None:
    """Entry point for git-instasquash."""
    _run(instafix_cli, default_map={"squash": True})


def rebase_main() -> None:
    """Entry point for git-rebase-with-intermediates."""
    _run(rebase_cli)
