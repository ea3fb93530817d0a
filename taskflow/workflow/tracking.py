"""Per-task bookkeeping that never changes a task's status.

Subtasks, notes and time entries live only in the task file, so these helpers
rewrite that one file and leave the feature file and index alone.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from taskflow.lib.errors import NotFound, TimerError
from taskflow.lib.models import NOTE_TYPES, SUBTASK_STATUSES, TaskFileContent, TaskNote, TasksProgress, TimeEntry
from taskflow.store.store import get_task_file_path, load_task_file, save_task_file

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso(stamp: str) -> datetime:
    """Parse an ISO timestamp. A trailing Z and naive times are read as UTC."""
    if stamp.endswith("Z"):
        stamp = stamp[:-1] + "+00:00"
    parsed = datetime.fromisoformat(stamp)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _hours_between(start: str, end: str) -> float:
    delta = parse_iso(end) - parse_iso(start)
    return round(delta.total_seconds() / 3600, 2)


def _load(tasks_dir: Path, progress: TasksProgress, task_id: str) -> tuple[Path, TaskFileContent]:
    path = get_task_file_path(tasks_dir, progress, task_id)
    return path, load_task_file(path)


# ============================================================================
# Subtasks
# ============================================================================


def update_subtask_status(
    tasks_dir: Path,
    progress: TasksProgress,
    task_id: str,
    subtask_id: str,
    status: str = "completed",
) -> TaskFileContent:
    """Mark one subtask pending or completed.

    Raises:
        ValueError: If status is not a subtask status
        NotFound: If the subtask does not exist
    """
    if status not in SUBTASK_STATUSES:
        raise ValueError(f"Invalid subtask status '{status}'")

    path, content = _load(tasks_dir, progress, task_id)
    for subtask in content.subtasks:
        if subtask.id == subtask_id:
            subtask.status = status
            break
    else:
        raise NotFound(f"{task_id}/{subtask_id}", "Subtask", f"Run 'taskflow status {task_id}' to list subtasks.")

    save_task_file(path, content)
    logger.info(f"[TRACK] {task_id} subtask {subtask_id} -> {status}")
    return content


def complete_all_subtasks(content: TaskFileContent) -> int:
    """Mark every subtask completed in memory. Returns how many changed."""
    changed = 0
    for subtask in content.subtasks:
        if subtask.status != "completed":
            subtask.status = "completed"
            changed += 1
    return changed


# ============================================================================
# Notes
# ============================================================================


def make_note(text: str, note_type: str = "note") -> TaskNote:
    if note_type not in NOTE_TYPES:
        raise ValueError(f"Invalid note type '{note_type}'; expected one of {', '.join(NOTE_TYPES)}")
    return TaskNote(timestamp=now_iso(), type=note_type, content=text)


def append_note(content: TaskFileContent, note: TaskNote) -> None:
    if content.notes is None:
        content.notes = []
    content.notes.append(note)


def add_note(
    tasks_dir: Path,
    progress: TasksProgress,
    task_id: str,
    text: str,
    note_type: str = "note",
) -> TaskNote:
    note = make_note(text, note_type)
    path, content = _load(tasks_dir, progress, task_id)
    append_note(content, note)
    save_task_file(path, content)
    logger.info(f"[TRACK] {task_id} {note_type} added")
    return note


# ============================================================================
# Time tracking
# ============================================================================


def running_entry(content: TaskFileContent) -> TimeEntry | None:
    for entry in content.time_entries or []:
        if entry.end is None:
            return entry
    return None


def start_timer(tasks_dir: Path, progress: TasksProgress, task_id: str, note: str | None = None) -> TimeEntry:
    """Open a time entry.

    Raises:
        TimerError: If a timer is already running
    """
    path, content = _load(tasks_dir, progress, task_id)
    if running_entry(content) is not None:
        raise TimerError(task_id, running=True)

    entry = TimeEntry(start=now_iso(), note=note)
    if content.time_entries is None:
        content.time_entries = []
    content.time_entries.append(entry)
    save_task_file(path, content)
    logger.info(f"[TRACK] {task_id} timer started")
    return entry


def stop_timer(tasks_dir: Path, progress: TasksProgress, task_id: str) -> TimeEntry:
    """Close the running time entry and add its hours to actual_hours.

    Raises:
        TimerError: If no timer is running
    """
    path, content = _load(tasks_dir, progress, task_id)
    entry = running_entry(content)
    if entry is None:
        raise TimerError(task_id, running=False)

    entry.end = now_iso()
    entry.hours = _hours_between(entry.start, entry.end)
    content.actual_hours = round((content.actual_hours or 0) + entry.hours, 2)
    save_task_file(path, content)
    logger.info(f"[TRACK] {task_id} timer stopped ({entry.hours}h)")
    return entry


def log_time(
    tasks_dir: Path,
    progress: TasksProgress,
    task_id: str,
    hours: float,
    note: str | None = None,
) -> TimeEntry:
    """Record hours worked without running a timer."""
    if hours <= 0:
        raise ValueError("Hours must be positive")

    path, content = _load(tasks_dir, progress, task_id)
    stamp = now_iso()
    entry = TimeEntry(start=stamp, end=stamp, hours=hours, note=note)
    if content.time_entries is None:
        content.time_entries = []
    content.time_entries.append(entry)
    content.actual_hours = round((content.actual_hours or 0) + hours, 2)
    save_task_file(path, content)
    logger.info(f"[TRACK] {task_id} logged {hours}h")
    return entry


def set_estimate(tasks_dir: Path, progress: TasksProgress, task_id: str, hours: float) -> TaskFileContent:
    if hours < 0:
        raise ValueError("Estimate cannot be negative")

    path, content = _load(tasks_dir, progress, task_id)
    content.estimated_hours = hours
    save_task_file(path, content)
    return content
