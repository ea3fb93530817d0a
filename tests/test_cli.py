"""Tests for the taskflow command line."""

import json

import pytest

from taskflow.cli import main
from taskflow.store.store import load_task_file_content, load_tasks_progress


@pytest.fixture
def project_root(tmp_path, make_plan):
    """Project root with branching off and a single passing check."""
    def _make(tasks, commands=None):
        make_plan(tasks)
        config = {
            "project": {"name": "demo"},
            "branching": {"strategy": "none"},
            "validation": {"commands": commands if commands is not None else {"test": "true"}},
        }
        (tmp_path / "taskflow.config.json").write_text(json.dumps(config))
        return tmp_path
    return _make


def run(root, *argv):
    return main(["--root", str(root), *argv])


def status_of(root, task_id):
    tasks_dir = root / "tasks"
    return load_task_file_content(tasks_dir, load_tasks_progress(tasks_dir), task_id).status


class TestStatusAndNext:
    def test_project_status(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "completed"}, {"id": "1.1.2", "status": "implementing"}])

        assert run(root, "status") == 0

        out = capsys.readouterr().out
        assert "Project: demo" in out
        assert "Tasks:    1/2" in out
        assert "Active: 1.1.2" in out

    def test_task_status(self, project_root, capsys):
        root = project_root([{
            "id": "1.1.1",
            "status": "blocked",
            "blockedReason": "waiting on API keys",
            "previousStatus": "implementing",
            "subtasks": [{"id": "a", "description": "Wire client", "status": "completed"}],
        }])

        assert run(root, "status", "1.1.1") == 0

        out = capsys.readouterr().out
        assert "Status:   blocked" in out
        assert "Blocked:  waiting on API keys" in out
        assert "[x] a Wire client" in out

    def test_next(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "completed"}, {"id": "1.1.2"}])
        assert run(root, "next") == 0
        out = capsys.readouterr().out
        assert "Next: 1.1.2" in out
        assert "taskflow start 1.1.2" in out

    def test_next_nothing_left(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "completed"}])
        assert run(root, "next") == 0
        assert "No available tasks" in capsys.readouterr().out


class TestWorkflowCommands:
    def test_start_through_completion(self, project_root, capsys):
        root = project_root([{"id": "1.1.1"}])

        assert run(root, "start", "1.1.1") == 0
        for _ in range(6):
            assert run(root, "check") == 0

        assert status_of(root, "1.1.1") == "completed"
        out = capsys.readouterr().out
        assert "test: passed" in out
        assert "committing -> completed" in out

    def test_failed_check_exits_nonzero(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "validating"}], commands={"test": "exit 1"})

        assert run(root, "check") == 1

        captured = capsys.readouterr()
        assert "test: FAILED (exit 1)" in captured.out
        assert "ERROR: Validation failed: test" in captured.err
        assert "1-1-1-test.log" in captured.err
        assert status_of(root, "1.1.1") == "validating"

    def test_block_and_resume(self, project_root):
        root = project_root([{"id": "1.1.1", "status": "verifying"}])

        assert run(root, "block", "waiting on review") == 0
        assert status_of(root, "1.1.1") == "blocked"

        assert run(root, "resume", "implementing") == 0
        assert status_of(root, "1.1.1") == "implementing"

    def test_hold_back_abort(self, project_root):
        root = project_root([{"id": "1.1.1", "status": "implementing"}])

        assert run(root, "back") == 0
        assert status_of(root, "1.1.1") == "planning"
        assert run(root, "hold", "--task", "1.1.1") == 0
        assert status_of(root, "1.1.1") == "on-hold"
        assert run(root, "resume") == 1
        assert status_of(root, "1.1.1") == "on-hold"
        assert run(root, "resume", "setup") == 0
        assert status_of(root, "1.1.1") == "setup"
        assert run(root, "abort") == 0
        assert status_of(root, "1.1.1") == "not-started"

    def test_resume_rejects_unknown_target(self, project_root):
        root = project_root([{"id": "1.1.1", "status": "blocked"}])
        with pytest.raises(SystemExit):
            run(root, "resume", "committing")


class TestBookkeepingCommands:
    def test_note_and_subtask(self, project_root, capsys):
        root = project_root([{
            "id": "1.1.1",
            "status": "setup",
            "subtasks": [{"id": "a", "description": "Wire client", "status": "pending"}],
        }])

        assert run(root, "note", "Use the v2 endpoint", "--type", "decision") == 0
        assert run(root, "subtask", "a") == 0

        tasks_dir = root / "tasks"
        content = load_task_file_content(tasks_dir, load_tasks_progress(tasks_dir), "1.1.1")
        assert content.notes[0].type == "decision"
        assert content.subtasks[0].status == "completed"

    def test_time(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "setup"}])

        assert run(root, "time", "--estimate", "3") == 0
        assert run(root, "time", "--log", "1.5", "--note", "spike") == 0
        assert run(root, "time") == 0

        out = capsys.readouterr().out
        assert "Estimated: 3.0h" in out
        assert "Actual:    1.5h" in out

    def test_stop_without_timer(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "setup"}])
        assert run(root, "time", "--stop") == 1
        assert "--start" in capsys.readouterr().err

    def test_deps(self, project_root, capsys):
        root = project_root([
            {"id": "1.1.1", "status": "completed"},
            {"id": "1.1.2", "dependencies": ["1.1.1", "2.1.1"]},
            {"id": "2.1.1"},
        ])

        assert run(root, "deps", "1.1.2") == 0

        out = capsys.readouterr().out
        assert "1.1.1 (completed)" in out
        assert "2.1.1 (unmet)" in out


class TestErrors:
    def test_no_active_task(self, project_root, capsys):
        root = project_root([{"id": "1.1.1"}])

        assert run(root, "check") == 1

        err = capsys.readouterr().err
        assert "ERROR: No active task" in err
        assert "taskflow start" in err

    def test_unknown_task(self, project_root, capsys):
        root = project_root([{"id": "1.1.1"}])
        assert run(root, "deps", "9.9.9") == 1
        assert "Task not found: 9.9.9" in capsys.readouterr().err

    def test_block_requires_reason(self, project_root, capsys):
        root = project_root([{"id": "1.1.1", "status": "setup"}])
        assert run(root, "block", " ") == 1
        assert "block reason" in capsys.readouterr().err

    def test_missing_tasks_dir(self, tmp_path, capsys):
        assert run(tmp_path, "status") == 1
        assert "ERROR:" in capsys.readouterr().err
