"""
Lifecycle operations: start, advance, block, hold, resume, back, abort.

Each operation loads the tree, asks TaskFSM whether the move is allowed, then
persists the new status through update_task_status() so the task file, the
feature file and the project index change together. The only step that does
real work is validating -> committing, which runs the configured checks.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from taskflow.git.guardian import BranchCheck, verify_branch
from taskflow.lib.config import Project
from taskflow.lib.errors import (
    ActiveTaskExists,
    DependenciesNotMet,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from taskflow.lib.models import TaskFileContent, TaskLocation, TasksProgress, TaskStatus
from taskflow.lib.types import KnownPatternMatch, LogTriage, ParsedError
from taskflow.runner.validation import ValidationSummary, run_validations, save_validation_status
from taskflow.store.store import (
    get_task_file_path,
    load_task_file,
    load_tasks_progress,
    update_task_status,
)
from taskflow.workflow.deps import unmet_dependencies
from taskflow.workflow.fsm import ADVANCE_TARGET, RESUME_TARGETS, TaskFSM, resume_trigger
from taskflow.workflow.scheduler import (
    find_active_task,
    find_paused_task,
    is_intermittent_task,
    resolve_task,
)
from taskflow.workflow.tracking import append_note, complete_all_subtasks, make_note

logger = logging.getLogger(__name__)

@dataclass
class StartResult:
    task_id: str
    status: str
    branch: BranchCheck | None = None          # None when branching strategy is "none"
    warnings: list[str] = field(default_factory=list)


@dataclass
class ResumeResult:
    task_id: str
    status: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class AdvanceResult:
    task_id: str
    from_status: str
    to_status: str                             # Equals from_status when not advanced
    advanced: bool
    validation: ValidationSummary | None = None
    errors: list[ParsedError] = field(default_factory=list)
    known: KnownPatternMatch | None = None     # Set with errors when a triage is given


def _load(project: Project, task_id: str | None) -> tuple[TasksProgress, TaskLocation, TaskFileContent]:
    tasks_dir = project.paths.tasks_dir
    progress = load_tasks_progress(tasks_dir)
    location = resolve_task(progress, task_id)
    content = load_task_file(get_task_file_path(tasks_dir, progress, location.task.id))
    return progress, location, content


def _fsm(content: TaskFileContent) -> TaskFSM:
    return TaskFSM(content.id, content.status, content.previous_status)


def _check_no_other_active(progress: TasksProgress, location: TaskLocation, warnings: list[str]) -> None:
    active = find_active_task(progress)
    if active is None or active.task.id == location.task.id:
        return
    if is_intermittent_task(location.feature, location.task):
        message = f"Task {active.task.id} is still active; starting intermittent task {location.task.id} alongside it"
        logger.warning(f"[LIFECYCLE] {message}")
        warnings.append(message)
        return
    raise ActiveTaskExists(active.task.id)


# ============================================================================
# Start / advance
# ============================================================================


def start_task(project: Project, task_id: str) -> StartResult:
    """Move a not-started task to setup, switching to its story branch.

    Raises:
        TaskNotFound: Unknown task ID
        InvalidTransition: Task is not not-started
        ActiveTaskExists: Another non-intermittent task is active
        DependenciesNotMet: A dependency is not completed
        VersionControlUnavailable, BranchMismatch: From the branch guardian
    """
    progress, location, content = _load(project, task_id)
    fsm = _fsm(content)
    if not fsm.can("start"):
        raise InvalidTransition(task_id, content.status, TaskStatus.SETUP.value)

    result = StartResult(task_id=task_id, status=content.status)
    _check_no_other_active(progress, location, result.warnings)

    unmet = unmet_dependencies(progress, location.task)
    if unmet:
        raise DependenciesNotMet(task_id, unmet)

    branching = project.config.branching
    if branching.strategy != "none":
        result.branch = verify_branch(project.paths.project_root, location.story, branching)
        result.warnings.extend(result.branch.warnings)

    fsm.fire("start")
    update_task_status(project.paths.tasks_dir, progress, task_id, fsm.state)
    result.status = fsm.state
    return result


def advance_task(
    project: Project,
    task_id: str | None = None,
    triage: LogTriage | None = None,
) -> AdvanceResult:
    """Move a task one step along the happy path.

    From validating the configured checks run first; the task only moves to
    committing when they all pass. A failed run is returned with
    advanced=False and, when a triage collaborator is given, parsed errors
    and the known-pattern match.

    Raises:
        NoActiveTask: No task_id and nothing active
        InvalidTransition: Task is not in an active status
    """
    progress, location, content = _load(project, task_id)
    task_id = location.task.id
    fsm = _fsm(content)
    if not fsm.can("advance"):
        raise InvalidTransition(task_id, content.status, ADVANCE_TARGET.get(content.status, "advance"))

    result = AdvanceResult(
        task_id=task_id,
        from_status=content.status,
        to_status=content.status,
        advanced=False,
    )

    if content.status == TaskStatus.VALIDATING.value:
        logs_dir = project.paths.logs_dir
        summary = run_validations(
            logs_dir,
            task_id,
            project.config.validation_commands,
            cwd=project.paths.project_root,
        )
        save_validation_status(logs_dir, task_id, summary)
        fsm.validation = summary
        result.validation = summary
        if not summary.passed:
            if triage is not None:
                result.errors = triage.classify(summary.all_output)
                result.known = triage.match_known_patterns(summary.all_output)
            logger.info(f"[LIFECYCLE] {task_id} stays in validating: {', '.join(summary.failed_checks)} failed")
            return result

    if not fsm.fire("advance"):
        return result

    fields = {}
    if fsm.state == TaskStatus.COMPLETED.value and complete_all_subtasks(content):
        fields["subtasks"] = content.subtasks

    update_task_status(project.paths.tasks_dir, progress, task_id, fsm.state, **fields)
    result.to_status = fsm.state
    result.advanced = True
    return result


def assert_validation_passed(summary: ValidationSummary, logs_dir: Path) -> None:
    """Raise ValidationFailed naming each failed check and its log file."""
    if summary.passed:
        return
    log_files = summary.log_files
    raise ValidationFailed(
        summary.failed_checks,
        {label: log_files.get(label, logs_dir) for label in summary.failed_checks},
    )


# ============================================================================
# Pause / resume
# ============================================================================


def block_task(project: Project, reason: str, task_id: str | None = None) -> TaskLocation:
    """Block an active task with a reason. The reason is also kept as a blocker note."""
    if not reason or not reason.strip():
        raise ValueError("A block reason is required")

    progress, location, content = _load(project, task_id)
    fsm = _fsm(content)
    fsm.fire("block")

    append_note(content, make_note(reason, "blocker"))
    return update_task_status(
        project.paths.tasks_dir,
        progress,
        location.task.id,
        fsm.state,
        blocked_reason=reason,
        previous_status=fsm.previous_status,
        notes=content.notes,
    )


def hold_task(project: Project, reason: str | None = None, task_id: str | None = None) -> TaskLocation:
    progress, location, content = _load(project, task_id)
    fsm = _fsm(content)
    fsm.fire("hold")

    fields = {"previous_status": fsm.previous_status}
    if reason:
        append_note(content, make_note(f"On hold: {reason}"))
        fields["notes"] = content.notes
    return update_task_status(project.paths.tasks_dir, progress, location.task.id, fsm.state, **fields)


def resume_task(project: Project, task_id: str | None = None, target: str | None = None) -> ResumeResult:
    """Move a blocked or on-hold task back into work.

    target defaults to the stamped previous status, then setup. previous_status
    is left in place for audit.

    Raises:
        NotFound: No task_id and nothing is paused
        InvalidTransition: Task is not paused, or target is not a resume target
    """
    tasks_dir = project.paths.tasks_dir
    if task_id is None:
        paused = find_paused_task(load_tasks_progress(tasks_dir))
        if paused is None:
            raise NotFound("(no blocked or on-hold task)", "Paused task", "Run 'taskflow status' to see task states.")
        task_id = paused.task.id

    progress, location, content = _load(project, task_id)

    if target is None:
        target = content.previous_status or TaskStatus.SETUP.value
    if target not in RESUME_TARGETS:
        raise InvalidTransition(task_id, content.status, target)

    fsm = _fsm(content)
    trigger = resume_trigger(target)
    if not fsm.can(trigger):
        raise InvalidTransition(task_id, content.status, target)

    result = ResumeResult(task_id=task_id, status=content.status)
    _check_no_other_active(progress, location, result.warnings)
    fsm.fire(trigger)
    update_task_status(tasks_dir, progress, task_id, fsm.state)
    result.status = fsm.state
    return result


# ============================================================================
# Back / abort
# ============================================================================


def back_task(project: Project, task_id: str | None = None) -> TaskLocation:
    """Step an active task back one stage (not from setup)."""
    progress, location, content = _load(project, task_id)
    fsm = _fsm(content)
    fsm.fire("back")
    return update_task_status(project.paths.tasks_dir, progress, location.task.id, fsm.state)


def abort_task(project: Project, task_id: str | None = None) -> TaskLocation:
    """Abandon work on an active task and return it to not-started."""
    progress, location, content = _load(project, task_id)
    fsm = _fsm(content)
    fsm.fire("abort")
    return update_task_status(project.paths.tasks_dir, progress, location.task.id, fsm.state)
