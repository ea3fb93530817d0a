"""Git checkout and pull."""

from pathlib import Path

from taskflow.git.runner import NETWORK_TIMEOUT, GitResult, run_git


def has_remote(repo: Path) -> bool:
    """Check if repo has any remotes configured."""
    result = run_git(["remote"], repo)
    return bool(result.stdout.strip())


def pull(repo: Path) -> GitResult:
    """Pull the current branch from its upstream."""
    return run_git(["pull"], repo, timeout=NETWORK_TIMEOUT)


def checkout_branch(repo: Path, branch: str) -> GitResult:
    """Checkout an existing branch."""
    return run_git(["checkout", branch], repo)


def create_branch(repo: Path, branch: str) -> GitResult:
    """Create branch from HEAD and check it out."""
    return run_git(["checkout", "-b", branch], repo)
