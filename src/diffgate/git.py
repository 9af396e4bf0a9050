"""Obtain diff text from a local git working tree."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class GitDiffError(Exception):
    """Running ``git diff`` failed."""


def git_diff_command(staged: bool = False, head: bool = False, base: str | None = None) -> list[str]:
    """Build the ``git diff`` argument list for the requested comparison."""
    if base:
        return ["git", "diff", base]
    if head and not staged:
        return ["git", "diff", "HEAD"]
    return ["git", "diff", "--staged"]


def read_git_diff(
    staged: bool = False,
    head: bool = False,
    base: str | None = None,
    cwd: Path | None = None,
) -> str:
    """Run ``git diff`` and return its output.

    With no comparison selected the staged changes are used, falling back
    to changes against HEAD when nothing is staged.

    Raises:
        GitDiffError: If git is missing or exits non-zero
    """
    explicit = staged or head or base is not None
    text = _run(git_diff_command(staged, head, base), cwd)
    if not explicit and not text.strip():
        logger.debug("Nothing staged, diffing against HEAD")
        text = _run(git_diff_command(head=True), cwd)
    return text


def _run(command: list[str], cwd: Path | None) -> str:
    logger.debug("Running %s", " ".join(command))
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GitDiffError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        if "not a git repository" in stderr:
            raise GitDiffError("This command must be run in a git repository") from e
        raise GitDiffError(f"{' '.join(command)} failed: {stderr}") from e
    return completed.stdout
