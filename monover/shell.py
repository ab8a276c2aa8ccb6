"""Shell and git utilities.

Provides a small wrapper around git for the CLI, plus output formatting
helpers.
"""

from __future__ import annotations

import subprocess
import sys
from typing import NoReturn


def git(*args: str, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "rev-parse", "HEAD").
        check: If True (default), raise on non-zero exit. Set to False
               for lookups that may legitimately fail (e.g., outside a repo).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(["git", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def current_branch() -> str:
    return git("rev-parse", "--abbrev-ref", "HEAD", check=False)


def current_commit() -> str:
    return git("rev-parse", "HEAD", check=False)


def step(msg: str) -> None:
    """Print a visually distinct step header."""
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def fatal(msg: str) -> NoReturn:
    """Print an error message and exit with code 1."""
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
