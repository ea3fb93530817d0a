"""
Branch guardian: make sure work on a story happens on the story's branch.

verify_branch() walks an explicit phase sequence:

    CLEAN -> STASHED -> SWITCHED -> RESTORED

STASHED and RESTORED only occur when there were local changes. The sequence
is not transactional. Instead every failure names the exact shell command
that gets a human back on track.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from taskflow.git.branch import branch_exists, find_base_branch, get_current_branch, is_work_tree
from taskflow.git.remote import checkout_branch, create_branch, has_remote, pull
from taskflow.git.stash import stash_created, stash_pop, stash_push
from taskflow.git.status import get_changed_files, has_staged_changes, has_uncommitted_changes
from taskflow.lib.config import BranchingConfig
from taskflow.lib.constants import AUTO_STASH_MESSAGE, slugify
from taskflow.lib.errors import BranchMismatch, VersionControlUnavailable
from taskflow.lib.models import Story

logger = logging.getLogger(__name__)


class GuardPhase(Enum):
    CLEAN = "clean"
    STASHED = "stashed"
    SWITCHED = "switched"
    RESTORED = "restored"


@dataclass
class BranchCheck:
    """Outcome of verify_branch()."""
    expected: str
    previous: str | None                       # Branch before the call
    phase: GuardPhase = GuardPhase.CLEAN
    switched: bool = False
    created: bool = False
    stashed: bool = False
    stash_pending: bool = False                # Stash pop failed; changes still stashed
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(f"[GIT] {message}")
        self.warnings.append(message)


def expected_branch(story: Story, branching: BranchingConfig) -> str:
    """Branch name for a story, e.g. story/S1.2-login-form."""
    prefix = branching.intermittent_prefix if story.is_intermittent else branching.prefix
    return f"{prefix}S{story.id}-{slugify(story.title)}"


def branch_switch_command(repo: Path, current: str | None, expected: str, base: str) -> str:
    """Manual shell command that gets from current onto expected."""
    if branch_exists(repo, expected):
        return f"git checkout {expected}"
    if current == base:
        return f"git pull && git checkout -b {expected}"
    return f"git checkout {base} && git pull && git checkout -b {expected}"


def _mismatch(
    repo: Path,
    check: BranchCheck,
    base: str,
    detail: str,
) -> BranchMismatch:
    current = get_current_branch(repo) or "(detached)"
    command = branch_switch_command(repo, current, check.expected, base)
    if check.stashed:
        command += " && git stash pop"
    logger.error(f"[GIT] Branch switch to {check.expected} failed: {detail}")
    return BranchMismatch(current, check.expected, command, stashed=check.stashed)


def verify_branch(repo: Path, story: Story, branching: BranchingConfig) -> BranchCheck:
    """Ensure repo is on the story's branch, switching if needed.

    Local changes are stashed under a fixed message before the switch and
    popped afterwards. A failed stash stops before any switch. A failed pop is
    reported as a warning and leaves the switch in place.

    Raises:
        VersionControlUnavailable: If repo is not a git work tree
        BranchMismatch: If the stash or checkout failed, or the branch is wrong afterwards
    """
    if not is_work_tree(repo):
        raise VersionControlUnavailable(repo)

    expected = expected_branch(story, branching)
    current = get_current_branch(repo)
    check = BranchCheck(expected=expected, previous=current)

    if current == expected:
        logger.debug(f"[GIT] Already on {expected}")
        return check

    base = find_base_branch(repo, branching.base) or branching.base

    # Stash
    if has_uncommitted_changes(repo) or has_staged_changes(repo):
        changed = get_changed_files(repo)
        logger.info(f"[GIT] Stashing {len(changed)} changed file(s) before switching to {expected}")
        result = stash_push(repo, AUTO_STASH_MESSAGE)
        if stash_created(result):
            check.stashed = True
            check.phase = GuardPhase.STASHED
        elif result.success:
            check.warn("Nothing to stash; continuing")
        else:
            logger.error(f"[GIT] git stash failed, staying on {current}: {result.output}")
            command = (
                f'git stash push --include-untracked -m "{AUTO_STASH_MESSAGE}" && '
                f"{branch_switch_command(repo, current, expected, base)} && git stash pop"
            )
            raise BranchMismatch(current or "(detached)", expected, command)

    # Switch
    if branch_exists(repo, expected):
        result = checkout_branch(repo, expected)
        if not result.success:
            raise _mismatch(repo, check, base, result.output)
    else:
        if current != base and branch_exists(repo, base):
            result = checkout_branch(repo, base)
            if not result.success:
                raise _mismatch(repo, check, base, result.output)

        if has_remote(repo):
            result = pull(repo)
            if not result.success:
                check.warn(
                    f"git pull failed, branch may be outdated: {result.output or 'unknown error'}"
                )
        else:
            logger.debug(f"[GIT] No remote; creating {expected} from local {base}")

        result = create_branch(repo, expected)
        if not result.success:
            raise _mismatch(repo, check, base, result.output)
        check.created = True

    # Verify
    now = get_current_branch(repo)
    if now != expected:
        raise _mismatch(repo, check, base, f"current branch is {now}")
    check.switched = True
    check.phase = GuardPhase.SWITCHED
    logger.info(f"[GIT] Switched {current} -> {expected}")

    # Restore
    if check.stashed:
        result = stash_pop(repo)
        if result.success:
            check.phase = GuardPhase.RESTORED
        else:
            check.stash_pending = True
            check.warn(
                "Changes were stashed but could not be restored. "
                "Resolve conflicts and run: git stash pop"
            )

    return check
