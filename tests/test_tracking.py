"""Tests for taskflow.workflow.tracking module."""

from datetime import datetime, timezone

import pytest

from conftest import read_json

from taskflow.lib.errors import NotFound, TaskNotFound, TimerError
from taskflow.lib.models import TaskFileContent, TimeEntry
from taskflow.store.store import get_task_file_path, load_task_file_content, load_tasks_progress, save_task_file
from taskflow.workflow import tracking
from taskflow.workflow.tracking import (
    add_note,
    complete_all_subtasks,
    log_time,
    make_note,
    parse_iso,
    running_entry,
    set_estimate,
    start_timer,
    stop_timer,
    update_subtask_status,
)

SUBTASKS = [
    {"id": "a", "description": "Write code", "status": "pending"},
    {"id": "b", "description": "Write tests", "status": "pending"},
]


@pytest.fixture
def plan(make_plan):
    tasks_dir = make_plan([{"id": "1.1.1", "status": "implementing", "subtasks": SUBTASKS}])
    return tasks_dir, load_tasks_progress(tasks_dir)


def reload(tasks_dir, task_id="1.1.1"):
    return load_task_file_content(tasks_dir, load_tasks_progress(tasks_dir), task_id)


class TestSubtasks:
    """Tests for subtask updates."""

    def test_complete_one(self, plan):
        tasks_dir, progress = plan
        update_subtask_status(tasks_dir, progress, "1.1.1", "b")
        assert [s.status for s in reload(tasks_dir).subtasks] == ["pending", "completed"]

    def test_back_to_pending(self, plan):
        tasks_dir, progress = plan
        update_subtask_status(tasks_dir, progress, "1.1.1", "a")
        update_subtask_status(tasks_dir, progress, "1.1.1", "a", "pending")
        assert reload(tasks_dir).subtasks[0].status == "pending"

    def test_status_unchanged(self, plan):
        tasks_dir, progress = plan
        update_subtask_status(tasks_dir, progress, "1.1.1", "a")
        assert reload(tasks_dir).status == "implementing"

    def test_unknown_subtask(self, plan):
        tasks_dir, progress = plan
        with pytest.raises(NotFound) as exc:
            update_subtask_status(tasks_dir, progress, "1.1.1", "z")
        assert exc.value.what == "Subtask"

    def test_invalid_status(self, plan):
        tasks_dir, progress = plan
        with pytest.raises(ValueError):
            update_subtask_status(tasks_dir, progress, "1.1.1", "a", "done")

    def test_unknown_task(self, plan):
        tasks_dir, progress = plan
        with pytest.raises(TaskNotFound):
            update_subtask_status(tasks_dir, progress, "9.9.9", "a")

    def test_complete_all_in_memory(self):
        content = TaskFileContent.from_dict({
            "id": "1.1.1", "title": "T", "description": "D", "status": "committing",
            "subtasks": [dict(SUBTASKS[0], status="completed"), SUBTASKS[1]],
        })
        assert complete_all_subtasks(content) == 1
        assert complete_all_subtasks(content) == 0


class TestNotes:
    """Tests for task notes."""

    def test_make_note_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            make_note("hello", "rant")

    def test_add_note(self, plan):
        tasks_dir, progress = plan
        add_note(tasks_dir, progress, "1.1.1", "Chose SQLite", "decision")
        add_note(tasks_dir, progress, "1.1.1", "Remember the migration")

        notes = reload(tasks_dir).notes
        assert [(n.type, n.content) for n in notes] == [
            ("decision", "Chose SQLite"),
            ("note", "Remember the migration"),
        ]

    def test_note_leaves_feature_file_alone(self, plan):
        tasks_dir, progress = plan
        feature_file = tasks_dir / "F1-feature-1" / "F1-feature-1.json"
        before = feature_file.read_text()
        add_note(tasks_dir, progress, "1.1.1", "x")
        assert feature_file.read_text() == before

    def test_on_disk_shape(self, plan):
        tasks_dir, progress = plan
        add_note(tasks_dir, progress, "1.1.1", "handing over", "handoff")
        data = read_json(get_task_file_path(tasks_dir, progress, "1.1.1"))
        assert list(data["notes"][0]) == ["timestamp", "type", "content"]


class TestTimeTracking:
    """Tests for timers, logged hours and estimates."""

    def test_start_and_stop(self, plan, monkeypatch):
        tasks_dir, progress = plan
        stamps = iter(["2026-01-05T09:00:00+00:00", "2026-01-05T10:30:00+00:00"])
        monkeypatch.setattr(tracking, "now_iso", lambda: next(stamps))

        start_timer(tasks_dir, progress, "1.1.1", note="pairing")
        assert running_entry(reload(tasks_dir)) is not None

        entry = stop_timer(tasks_dir, progress, "1.1.1")

        assert entry.hours == 1.5
        content = reload(tasks_dir)
        assert content.actual_hours == 1.5
        assert content.time_entries[0].note == "pairing"
        assert running_entry(content) is None

    def test_stop_timer_started_by_other_tools(self, plan, monkeypatch):
        tasks_dir, progress = plan
        content = reload(tasks_dir)
        content.time_entries = [TimeEntry(start="2026-01-05T09:00:00.000Z")]
        save_task_file(get_task_file_path(tasks_dir, progress, "1.1.1"), content)
        monkeypatch.setattr(tracking, "now_iso", lambda: "2026-01-05T09:45:00+00:00")

        assert stop_timer(tasks_dir, progress, "1.1.1").hours == 0.75

    def test_start_twice(self, plan):
        tasks_dir, progress = plan
        start_timer(tasks_dir, progress, "1.1.1")
        with pytest.raises(TimerError) as exc:
            start_timer(tasks_dir, progress, "1.1.1")
        assert exc.value.running

    def test_stop_without_timer(self, plan):
        tasks_dir, progress = plan
        with pytest.raises(TimerError) as exc:
            stop_timer(tasks_dir, progress, "1.1.1")
        assert not exc.value.running

    def test_log_time_accumulates(self, plan):
        tasks_dir, progress = plan
        log_time(tasks_dir, progress, "1.1.1", 2)
        log_time(tasks_dir, progress, "1.1.1", 0.25, note="review")

        content = reload(tasks_dir)
        assert content.actual_hours == 2.25
        assert len(content.time_entries) == 2

    @pytest.mark.parametrize("hours", [0, -1])
    def test_log_time_must_be_positive(self, plan, hours):
        tasks_dir, progress = plan
        with pytest.raises(ValueError):
            log_time(tasks_dir, progress, "1.1.1", hours)

    def test_set_estimate(self, plan):
        tasks_dir, progress = plan
        set_estimate(tasks_dir, progress, "1.1.1", 4)
        assert reload(tasks_dir).estimated_hours == 4

    @pytest.mark.parametrize("stamp", [
        "2026-01-05T09:00:00Z",
        "2026-01-05T09:00:00.000Z",
        "2026-01-05T09:00:00",
        "2026-01-05T10:00:00+01:00",
    ])
    def test_parse_iso_normalizes_to_utc(self, stamp):
        assert parse_iso(stamp) == datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def test_running_entry_ignores_closed(self):
        content = TaskFileContent(
            id="1.1.1", title="T", description="D", status="setup",
            time_entries=[TimeEntry(start="a", end="b", hours=1.0), TimeEntry(start="c")],
        )
        assert running_entry(content).start == "c"
