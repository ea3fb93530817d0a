"""Git stash operations."""

from pathlib import Path

from taskflow.git.runner import GitResult, run_git

NOTHING_TO_STASH = "No local changes to save"


def stash_push(repo: Path, message: str) -> GitResult:
    """Stash tracked and untracked changes under message.

    Check stash_created() on the result: git exits 0 even when there was
    nothing to stash.
    """
    return run_git(["stash", "push", "--include-untracked", "-m", message], repo)


def stash_created(result: GitResult) -> bool:
    return result.success and NOTHING_TO_STASH not in result.output


def stash_pop(repo: Path) -> GitResult:
    return run_git(["stash", "pop"], repo)
