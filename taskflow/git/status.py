"""Git working tree status."""

from pathlib import Path

from taskflow.git.runner import run_git


def get_status_porcelain(repo: Path) -> str:
    """Get git status in porcelain format."""
    result = run_git(["status", "--porcelain"], repo)
    return result.stdout


def has_uncommitted_changes(repo: Path) -> bool:
    """Check for staged, unstaged or untracked changes."""
    return bool(get_status_porcelain(repo).strip())


def has_staged_changes(repo: Path) -> bool:
    """Check if the index differs from HEAD."""
    result = run_git(["diff", "--cached", "--quiet"], repo)
    # --quiet exits 1 when there are differences
    return result.returncode == 1


def get_changed_files(repo: Path) -> list[str]:
    """Paths from porcelain status, rename targets for renames."""
    files = []
    for line in get_status_porcelain(repo).splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        files.append(path)
    return files
