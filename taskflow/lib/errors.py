"""
Error taxonomy for taskflow.

Every error carries a stable code and a recovery hint so a human can act on
it without reading the source. Store and rollup errors always propagate.
"""

from pathlib import Path


class TaskflowError(Exception):
    """Base class for all engine errors."""

    code = "TASKFLOW_ERROR"

    def __init__(self, message: str, recovery_hint: str = ""):
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class NotFound(TaskflowError):
    """A referenced file (index, feature, task) does not exist."""

    code = "NOT_FOUND"

    def __init__(
        self,
        path: Path | str,
        what: str = "File",
        recovery_hint: str = "Check that the tasks directory was initialized and the path is correct.",
    ):
        self.path = Path(path)
        self.what = what
        super().__init__(f"{what} not found: {path}", recovery_hint)


class TaskNotFound(NotFound):
    """A task ID does not resolve to any task in the tree."""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(task_id, "Task", "Run 'taskflow next' to find available tasks.")


class MalformedData(TaskflowError):
    """A file exists but does not match its schema."""

    code = "MALFORMED_DATA"

    def __init__(self, path: Path | str, detail: str):
        self.path = Path(path)
        self.detail = detail
        super().__init__(
            f"Malformed data in {path}: {detail}",
            f"Fix or regenerate {path}; it was not loaded.",
        )


class InvalidTransition(TaskflowError):
    """A lifecycle call was attempted from a state that does not permit it."""

    code = "INVALID_TRANSITION"

    def __init__(self, task_id: str, current: str, requested: str):
        self.task_id = task_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid transition for task {task_id}: {current} -> {requested}",
            "Run 'taskflow status' to see the task's current state.",
        )


class NoActiveTask(TaskflowError):
    """An operation needs an active task and none exists."""

    code = "NO_ACTIVE_TASK"

    def __init__(self):
        super().__init__(
            "No active task",
            "Run 'taskflow start <id>' to start a task.",
        )


class ActiveTaskExists(TaskflowError):
    """Another task is already active."""

    code = "ACTIVE_TASK_EXISTS"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(
            f"Another task is already active ({task_id})",
            f"Finish, block or abort task {task_id} before starting a new one.",
        )


class DependenciesNotMet(TaskflowError):
    """A task's prerequisites are not completed."""

    code = "DEPENDENCIES_NOT_MET"

    def __init__(self, task_id: str, unmet: list[str]):
        self.task_id = task_id
        self.unmet = unmet
        super().__init__(
            f"Task {task_id} has unmet dependencies: {', '.join(unmet)}",
            f"Complete {', '.join(unmet)} first.",
        )


class VersionControlUnavailable(TaskflowError):
    """Branch operations require a git work tree."""

    code = "VCS_UNAVAILABLE"

    def __init__(self, repo: Path | str):
        self.repo = Path(repo)
        super().__init__(
            f"Git is not initialized in {repo}",
            "Run: git init && git commit --allow-empty -m \"Initial commit\"",
        )


class BranchMismatch(TaskflowError):
    """The current branch is not the one expected after a switch."""

    code = "WRONG_BRANCH"

    def __init__(self, current: str, expected: str, recovery_command: str, stashed: bool = False):
        self.current = current
        self.expected = expected
        self.recovery_command = recovery_command
        self.stashed = stashed                 # Work was left in the stash
        super().__init__(
            f"Wrong branch: current is '{current}', expected '{expected}'",
            f"Run: {recovery_command}",
        )


class ValidationFailed(TaskflowError):
    """One or more configured checks failed."""

    code = "VALIDATION_FAILED"

    def __init__(self, failed_checks: list[str], log_files: dict[str, Path]):
        self.failed_checks = failed_checks
        self.log_files = log_files
        logs = ", ".join(str(log_files[label]) for label in failed_checks if label in log_files)
        super().__init__(
            f"Validation failed: {', '.join(failed_checks)}",
            "Fix the errors and run 'taskflow check' again."
            + (f" Logs: {logs}" if logs else ""),
        )


class InvalidCheckCommand(TaskflowError):
    """A configured check command cannot be run."""

    code = "INVALID_CHECK_COMMAND"

    def __init__(self, label: str):
        self.label = label
        super().__init__(
            f"Command cannot be empty for check '{label}'",
            "Fix validation.commands in taskflow.config.json.",
        )


class TimerError(TaskflowError):
    """Timer start/stop does not match the task's running timer."""

    code = "TIMER_STATE"

    def __init__(self, task_id: str, running: bool):
        self.task_id = task_id
        self.running = running
        if running:
            super().__init__(
                f"Timer already running for task {task_id}",
                f"Stop it first with 'taskflow time --task {task_id} --stop'.",
            )
        else:
            super().__init__(
                f"No timer running for task {task_id}",
                f"Start one with 'taskflow time --task {task_id} --start'.",
            )
