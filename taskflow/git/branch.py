"""Git branch queries."""

from pathlib import Path

from taskflow.git.runner import run_git


def is_work_tree(repo: Path) -> bool:
    """True if repo is inside a git work tree."""
    result = run_git(["rev-parse", "--is-inside-work-tree"], repo)
    return result.success and result.stdout.strip() == "true"


def get_current_branch(repo: Path) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = run_git(["branch", "--show-current"], repo)
    if result.success:
        return result.stdout.strip() or None
    return None


def branch_exists(repo: Path, branch: str) -> bool:
    """Check if a local branch exists."""
    result = run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo)
    return result.success


def find_base_branch(repo: Path, preferred: str) -> str | None:
    """First existing branch among preferred, main, master."""
    for candidate in dict.fromkeys([preferred, "main", "master"]):
        if branch_exists(repo, candidate):
            return candidate
    return None
