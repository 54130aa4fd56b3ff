"""Process probes for ancillary event context.

Lookups here are best effort: a failure never propagates, the caller gets
a fallback value instead.
"""

import subprocess
from pathlib import Path

from devtrack.core.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_BRANCH = "Unknown"
GIT_TIMEOUT_SECONDS = 2.0


def _git(directory: Path, *args: str) -> str | None:
    """Run a git command in ``directory``; return its trimmed stdout or None on any failure."""
    try:
        result = subprocess.run(
            ["git", "-C", str(directory), *args],
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git {' '.join(args)} failed in {directory}: {e}")
        return None

    if result.returncode != 0:
        logger.debug(
            f"git {' '.join(args)} exited with {result.returncode} in {directory}",
            extra={"stderr": result.stderr.strip()},
        )
        return None

    output = result.stdout.strip()
    return output or None


def get_git_branch(file: str) -> str:
    """Return the current branch of the repository containing ``file``, or "Unknown"."""
    return _git(Path(file).parent, "rev-parse", "--abbrev-ref", "HEAD") or UNKNOWN_BRANCH


def get_project_root(file: str) -> str:
    """Return the work-tree root containing ``file``, falling back to its directory."""
    directory = Path(file).parent
    return _git(directory, "rev-parse", "--show-toplevel") or str(directory)
