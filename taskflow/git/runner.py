"""Git subprocess runner.

Primitives built on run_git() never raise for a failed git command; they
return a GitResult (or a bool / parsed value) and let the caller decide.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
NETWORK_TIMEOUT = 60


@dataclass
class GitResult:
    """Result of a git command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout and stderr joined, for messages."""
        return "\n".join(p for p in (self.stdout.strip(), self.stderr.strip()) if p)


def run_git(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_TIMEOUT,
) -> GitResult:
    """
    Run `git -C <cwd> <args>`.

    A missing git executable is reported as returncode 127 rather than raised.

    Args:
        args: Git command arguments (e.g., ["status", "--porcelain"])
        cwd: Repository directory
        timeout: Timeout in seconds

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["git", "-C", str(cwd)] + args
    logger.debug(f"[GIT] {' '.join(args)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            returncode=-1,
            stdout="",
            stderr=f"git {args[0] if args else ''} timed out after {timeout}s",
            timed_out=True,
        )
    except FileNotFoundError:
        return GitResult(returncode=127, stdout="", stderr="git executable not found")

    return GitResult(
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
    )
