"""Path resolution for the three file layers.

Directory names carry slugs that may drift from titles, so story
directories and task files are found by ID prefix rather than rebuilt.
"""

from pathlib import Path

from taskflow.lib.constants import PROJECT_INDEX_FILE, slugify
from taskflow.lib.errors import NotFound


def get_project_index_path(tasks_dir: Path) -> Path:
    return tasks_dir / PROJECT_INDEX_FILE


def default_feature_path(feature_id: str, title: str) -> str:
    """Directory name used when a feature has no recorded path."""
    return f"F{feature_id}-{slugify(title)}"


def get_feature_dir(tasks_dir: Path, feature_path: str) -> Path:
    """Directory holding a feature's story directories."""
    if feature_path.endswith(".json"):
        return (tasks_dir / feature_path).parent
    return tasks_dir / feature_path


def get_feature_file_path(tasks_dir: Path, feature_path: str, feature_id: str | None = None) -> Path:
    """Resolve the feature JSON file.

    A path ending in .json is taken as-is. Otherwise the file is
    <dir>/<basename>.json, falling back to F<id>.json or F<id>-*.json inside
    the directory. When nothing exists yet the default name is returned.
    """
    if feature_path.endswith(".json"):
        return tasks_dir / feature_path

    feature_dir = tasks_dir / feature_path
    default = feature_dir / f"{Path(feature_path).name}.json"
    if default.exists() or feature_id is None or not feature_dir.is_dir():
        return default

    exact = feature_dir / f"F{feature_id}.json"
    if exact.exists():
        return exact
    matches = sorted(feature_dir.glob(f"F{feature_id}-*.json"))
    if matches:
        return matches[0]
    return default


def find_story_dir(feature_dir: Path, story_id: str) -> Path:
    """Find S<story_id>-* inside a feature directory."""
    if not feature_dir.is_dir():
        raise NotFound(feature_dir, "Feature directory")

    prefix = f"S{story_id}-"
    dirs = sorted(d for d in feature_dir.iterdir() if d.is_dir() and d.name.startswith(prefix))
    if not dirs:
        raise NotFound(feature_dir / f"{prefix}*", "Story directory")
    return dirs[0]


def find_task_file(story_dir: Path, task_id: str) -> Path:
    """Find T<task_id>.json or T<task_id>-*.json inside a story directory."""
    exact = story_dir / f"T{task_id}.json"
    if exact.exists():
        return exact

    matches = sorted(story_dir.glob(f"T{task_id}-*.json"))
    if not matches:
        raise NotFound(story_dir / f"T{task_id}-*.json", "Task file")
    return matches[0]
