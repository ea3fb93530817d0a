"""Shared fixtures: build a small on-disk task plan."""

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from taskflow.lib.config import BranchingConfig, Project, TaskflowConfig, get_project_paths


def _write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n")


def write_plan(root: Path, tasks: list[dict], project: str = "demo") -> Path:
    """Write index, feature files and task files for a list of task specs.

    Each spec needs "id" and may set "status", "dependencies", "subtasks",
    "isIntermittent", "previousStatus" and "blockedReason". Stored story and
    feature statuses are deliberately left at not-started.

    Returns the tasks directory.
    """
    tasks_dir = root / "tasks"
    features: dict[str, dict] = {}

    for spec in tasks:
        task_id = spec["id"]
        feature_id, story_num, _ = task_id.split(".")
        story_id = f"{feature_id}.{story_num}"

        feature = features.setdefault(feature_id, {
            "id": feature_id,
            "title": f"Feature {feature_id}",
            "status": "not-started",
            "path": f"F{feature_id}-feature-{feature_id}",
            "stories": [],
        })
        story = next((s for s in feature["stories"] if s["id"] == story_id), None)
        if story is None:
            story = {"id": story_id, "title": f"Story {story_id}", "status": "not-started", "tasks": []}
            feature["stories"].append(story)

        status = spec.get("status", "not-started")
        ref = {
            "id": task_id,
            "title": f"Task {task_id}",
            "status": status,
            "dependencies": spec.get("dependencies", []),
        }
        if spec.get("isIntermittent"):
            ref["isIntermittent"] = True
        story["tasks"].append(ref)

        content = {
            "id": task_id,
            "title": f"Task {task_id}",
            "description": f"Do task {task_id}",
            "status": status,
            "skill": "backend",
            "subtasks": spec.get("subtasks", []),
            "context": [],
        }
        for key in ("previousStatus", "blockedReason"):
            if key in spec:
                content[key] = spec[key]
        story_dir = tasks_dir / feature["path"] / f"S{story_id}-story-{story_id.replace('.', '-')}"
        _write(story_dir / f"T{task_id}-task-{task_id.replace('.', '-')}.json", content)

    for feature in features.values():
        _write(tasks_dir / feature["path"] / f"{feature['path']}.json", feature)

    index = {
        "project": project,
        "features": [
            {"id": f["id"], "title": f["title"], "status": f["status"], "path": f["path"]}
            for f in features.values()
        ],
    }
    _write(tasks_dir / "project-index.json", index)
    return tasks_dir


def read_json(path: Path) -> dict:
    return json.loads(path.read_text())


@pytest.fixture
def make_plan(tmp_path):
    """Factory fixture: make_plan([{"id": "1.1.1"}, ...]) -> tasks dir."""
    def _make(tasks: list[dict], project: str = "demo") -> Path:
        return write_plan(tmp_path, tasks, project)
    return _make


@pytest.fixture
def make_project(tmp_path):
    """Factory fixture returning a Project rooted at tmp_path, branching off."""
    def _make(tasks: list[dict], commands: dict[str, str] | None = None, strategy: str = "none") -> Project:
        write_plan(tmp_path, tasks)
        config = TaskflowConfig(
            project_name="demo",
            branching=BranchingConfig(strategy=strategy),
            validation_commands=commands or {},
        )
        return Project(paths=get_project_paths(tmp_path), config=config)
    return _make


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), "-c", "user.email=test@example.com", "-c", "user.name=Test", *args],
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git_repo(tmp_path):
    """A git repo on main with one commit."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-b", "main")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test")
    (repo / "README.md").write_text("hello\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "-m", "Initial commit")
    return repo
