"""
Rendering of amendment diffs: highlighted patches and diffstats.
"""

from __future__ import annotations

import logging
from typing import List

from pygments.styles import get_all_styles
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from .config import DEFAULT_THEME
from .models import AmendmentDiff


logger = logging.getLogger(__name__)

# Rows kept free below the diff for the confirmation prompt
PROMPT_ROOM = 5


def available_themes() -> List[str]:
    return sorted(get_all_styles())


def resolve_theme(theme: str) -> str:
    if theme in available_themes():
        return theme
    logger.warning(f"Unknown theme '{theme}', using {DEFAULT_THEME}")
    return DEFAULT_THEME


def print_themes(console: Console) -> None:
    console.print("Available themes:")
    for theme in available_themes():
        console.print(f"  {theme}", highlight=False)


def print_diffstat(console: Console, diff: AmendmentDiff) -> None:
    console.print(f"{diff.source.value} changes:")
    console.print(escape(diff.stat), highlight=False)


def fits_on_screen(diff: AmendmentDiff, height: int) -> bool:
    """Whether the whole patch can be shown without pushing the prompt off screen."""
    cutoff = max(height - PROMPT_ROOM, 0)
    if diff.insertions + diff.deletions >= cutoff:
        return False
    return len(diff.text.splitlines()) < cutoff


def print_diff(console: Console, diff: AmendmentDiff, theme: str) -> None:
    """Print the highlighted patch, or the diffstat if it would not fit."""
    if not fits_on_screen(diff, console.size.height):
        print_diffstat(console, diff)
        return
    console.print(Syntax(diff.text.rstrip("\n"), "diff", theme=resolve_theme(theme)))
