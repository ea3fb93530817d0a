"""Git operations for taskflow.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
  Examples: stash_push(), checkout_branch(), pull()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: has_uncommitted_changes(), branch_exists(), is_work_tree()
- Functions returning parsed values (str, list): Return empty/None on failure.
  Examples: get_current_branch() -> None, get_changed_files() -> []

verify_branch() is the only entry point that raises.
"""

from taskflow.git.runner import GitResult, run_git
from taskflow.git.status import (
    has_uncommitted_changes,
    has_staged_changes,
    get_status_porcelain,
    get_changed_files,
)
from taskflow.git.branch import (
    is_work_tree,
    get_current_branch,
    branch_exists,
    find_base_branch,
)
from taskflow.git.stash import (
    stash_push,
    stash_created,
    stash_pop,
)
from taskflow.git.remote import (
    has_remote,
    pull,
    checkout_branch,
    create_branch,
)
from taskflow.git.guardian import (
    BranchCheck,
    GuardPhase,
    branch_switch_command,
    expected_branch,
    verify_branch,
)

__all__ = [
    # runner
    "GitResult",
    "run_git",
    # status
    "has_uncommitted_changes",
    "has_staged_changes",
    "get_status_porcelain",
    "get_changed_files",
    # branch
    "is_work_tree",
    "get_current_branch",
    "branch_exists",
    "find_base_branch",
    # stash
    "stash_push",
    "stash_created",
    "stash_pop",
    # remote
    "has_remote",
    "pull",
    "checkout_branch",
    "create_branch",
    # guardian
    "BranchCheck",
    "GuardPhase",
    "branch_switch_command",
    "expected_branch",
    "verify_branch",
]
