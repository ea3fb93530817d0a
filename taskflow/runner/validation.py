"""
Validation runner: execute the configured check commands for a task.

Commands run one at a time through the shell. Each check writes its output
to .taskflow/logs/<task-id-dashed>-<label>.log. A failing check is a normal
result; only an unrunnable (empty) command raises. No timeout is applied.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from taskflow.lib.constants import VALIDATION_STATUS_LABEL
from taskflow.lib.errors import InvalidCheckCommand, NotFound
from taskflow.lib.validate import validate_file, write_json

logger = logging.getLogger(__name__)

NO_COMMANDS_MESSAGE = "No validation commands configured."


@dataclass
class CheckResult:
    """Outcome of one check command."""
    label: str
    command: str
    success: bool
    exit_code: int
    output: str                                # stdout + stderr
    log_file: Path


@dataclass
class ValidationSummary:
    passed: bool
    failed_checks: list[str] = field(default_factory=list)
    results: list[CheckResult] = field(default_factory=list)
    all_output: str = ""

    @property
    def log_files(self) -> dict[str, Path]:
        return {r.label: r.log_file for r in self.results}


@dataclass
class ValidationStatus:
    """Last recorded validation outcome for a task."""
    task_id: str
    passed: bool
    timestamp: str
    failed_checks: list[str] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dashed(task_id: str) -> str:
    return task_id.replace(".", "-")


def get_log_file_path(logs_dir: Path, task_id: str, label: str) -> Path:
    label = "-".join(label.split())
    return logs_dir / f"{_dashed(task_id)}-{label}.log"


def get_validation_status_path(logs_dir: Path, task_id: str) -> Path:
    return logs_dir / f"{_dashed(task_id)}-{VALIDATION_STATUS_LABEL}.json"


def run_command_with_log(logs_dir: Path, cmd: str, label: str, task_id: str, cwd: Path | None = None) -> CheckResult:
    """Run one check through the shell and write its log file.

    Raises:
        InvalidCheckCommand: If cmd is empty
    """
    if not cmd or not cmd.strip():
        raise InvalidCheckCommand(label)

    logger.info(f"[VALIDATE] {task_id} running {label}: {cmd}")
    try:
        result = subprocess.run(
            cmd,
            shell=True,
            cwd=cwd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )
        exit_code = result.returncode
        output = f"{result.stdout}\n{result.stderr}".strip()
    except OSError as e:
        exit_code = 127
        output = f"Failed to run command: {e}"

    log_file = get_log_file_path(logs_dir, task_id, label)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.write_text(f"Command: {cmd}\nTimestamp: {_now()}\n\n{output}\n", encoding="utf-8")

    success = exit_code == 0
    if success:
        logger.info(f"[VALIDATE] {label} passed")
    else:
        logger.warning(f"[VALIDATE] {label} failed (exit {exit_code}), see {log_file}")

    return CheckResult(
        label=label,
        command=cmd,
        success=success,
        exit_code=exit_code,
        output=output,
        log_file=log_file,
    )


def run_validations(
    logs_dir: Path,
    task_id: str,
    commands: dict[str, str] | None,
    cwd: Path | None = None,
) -> ValidationSummary:
    """Run every configured check in order.

    An empty or missing command map passes with no results; no default checks
    are assumed.
    """
    if not commands:
        logger.warning(f"[VALIDATE] {NO_COMMANDS_MESSAGE}")
        return ValidationSummary(passed=True, all_output=NO_COMMANDS_MESSAGE)

    summary = ValidationSummary(passed=True)
    sections = []
    for label, cmd in commands.items():
        result = run_command_with_log(logs_dir, cmd, label, task_id, cwd=cwd)
        summary.results.append(result)
        if not result.success:
            summary.failed_checks.append(label)
        sections.append(f"--- {label.upper()} ---\n{result.output}")

    summary.passed = not summary.failed_checks
    summary.all_output = "\n\n".join(sections)
    return summary


# ============================================================================
# Status persistence and logs
# ============================================================================


def save_validation_status(logs_dir: Path, task_id: str, summary: ValidationSummary) -> Path:
    path = get_validation_status_path(logs_dir, task_id)
    data = {
        "taskId": task_id,
        "passed": summary.passed,
        "timestamp": _now(),
        "failedChecks": list(summary.failed_checks),
    }
    write_json(path, data, "validation_status")
    return path


def get_last_validation_status(logs_dir: Path, task_id: str) -> ValidationStatus | None:
    """Return the last saved status, or None if checks never ran.

    Raises:
        MalformedData: If the status file is corrupt
    """
    try:
        data = validate_file(get_validation_status_path(logs_dir, task_id), "validation_status")
    except NotFound:
        return None
    return ValidationStatus(
        task_id=data["taskId"],
        passed=data["passed"],
        timestamp=data["timestamp"],
        failed_checks=list(data["failedChecks"]),
    )


def get_check_log(logs_dir: Path, task_id: str, label: str) -> str:
    """Contents of a check's log file, empty if it never ran."""
    path = get_log_file_path(logs_dir, task_id, label)
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


def cleanup_task_logs(logs_dir: Path, task_id: str) -> int:
    """Delete every log and status file for a task. Returns the count removed."""
    if not logs_dir.is_dir():
        return 0
    removed = 0
    for path in logs_dir.glob(f"{_dashed(task_id)}-*"):
        if path.is_file():
            path.unlink()
            removed += 1
    if removed:
        logger.debug(f"[VALIDATE] Removed {removed} log file(s) for {task_id}")
    return removed
