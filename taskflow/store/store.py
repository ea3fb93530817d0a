"""
File-backed task store.

Three layers are kept consistent without a database:
  tasks/project-index.json          projected from the features in memory
  tasks/<feature>/<feature>.json    stories and TaskRefs
  tasks/<feature>/S*/T*.json        full task detail

The task file's status is the source of truth for a task. Every status change
goes through update_task_status(), which rewrites the task file, copies the
status into the TaskRef, recomputes rollups and overwrites the feature file and
project index. No targeted patches.
"""

import logging
from pathlib import Path

from taskflow.lib.errors import MalformedData, NotFound, TaskNotFound
from taskflow.lib.models import (
    Feature,
    FeatureRef,
    ProgressStats,
    ProjectIndex,
    StoryLocation,
    TaskFileContent,
    TaskLocation,
    TasksProgress,
    TaskStatus,
)
from taskflow.lib.validate import validate_file, write_json
from taskflow.store.paths import (
    default_feature_path,
    find_story_dir,
    find_task_file,
    get_feature_dir,
    get_feature_file_path,
    get_project_index_path,
)
from taskflow.workflow.rollup import recompute_rollups

logger = logging.getLogger(__name__)


# ============================================================================
# Project index
# ============================================================================


def load_project_index(tasks_dir: Path) -> ProjectIndex:
    """Load tasks/project-index.json.

    Raises:
        NotFound: If the index does not exist
        MalformedData: If it fails the schema
    """
    index_path = get_project_index_path(tasks_dir)
    data = validate_file(index_path, "project_index")
    return ProjectIndex.from_dict(data)


def save_project_index(tasks_dir: Path, progress: TasksProgress) -> None:
    """Overwrite the index with a projection of the in-memory features."""
    index = ProjectIndex(
        project=progress.project,
        features=[
            FeatureRef(
                id=f.id,
                title=f.title,
                status=f.status,
                path=f.path or default_feature_path(f.id, f.title),
            )
            for f in progress.features
        ],
    )
    write_json(get_project_index_path(tasks_dir), index.to_dict(), "project_index")


# ============================================================================
# Feature files
# ============================================================================


def load_feature(tasks_dir: Path, feature_path: str, feature_id: str | None = None) -> Feature:
    """Load one feature file. The returned feature remembers its path."""
    file_path = get_feature_file_path(tasks_dir, feature_path, feature_id)
    data = validate_file(file_path, "feature")
    feature = Feature.from_dict(data)
    feature.path = feature_path
    return feature


def save_feature(tasks_dir: Path, feature: Feature) -> None:
    if not feature.path:
        raise MalformedData(tasks_dir, f"Feature {feature.id} has no path; cannot save")
    file_path = get_feature_file_path(tasks_dir, feature.path, feature.id)
    write_json(file_path, feature.to_dict(), "feature")


# ============================================================================
# Task files
# ============================================================================


def get_task_file_path(tasks_dir: Path, progress: TasksProgress, task_id: str) -> Path:
    """Resolve the task file for a task in the tree.

    Raises:
        TaskNotFound: If the task is not in the tree
        NotFound: If its directory or file is missing on disk
    """
    location = find_task_location(progress, task_id)
    if location is None:
        raise TaskNotFound(task_id)

    feature_path = location.feature.path or default_feature_path(
        location.feature.id, location.feature.title
    )
    story_dir = find_story_dir(get_feature_dir(tasks_dir, feature_path), location.story.id)
    return find_task_file(story_dir, task_id)


def load_task_file(file_path: Path) -> TaskFileContent:
    data = validate_file(file_path, "task")
    return TaskFileContent.from_dict(data)


def save_task_file(file_path: Path, content: TaskFileContent) -> None:
    write_json(file_path, content.to_dict(), "task")


def load_task_file_content(tasks_dir: Path, progress: TasksProgress, task_id: str) -> TaskFileContent:
    return load_task_file(get_task_file_path(tasks_dir, progress, task_id))


def save_task_file_content(tasks_dir: Path, progress: TasksProgress, content: TaskFileContent) -> None:
    save_task_file(get_task_file_path(tasks_dir, progress, content.id), content)


# ============================================================================
# Composite load
# ============================================================================


def load_tasks_progress(tasks_dir: Path) -> TasksProgress:
    """Assemble the index and every feature file into one tree.

    A missing or invalid feature file degrades that feature to a stub (title
    and status from the index, no stories) and records a warning. Index
    errors propagate.
    """
    index = load_project_index(tasks_dir)
    progress = TasksProgress(project=index.project)

    for ref in index.features:
        try:
            progress.features.append(load_feature(tasks_dir, ref.path, ref.id))
        except (NotFound, MalformedData) as e:
            warning = f"Could not load feature {ref.id} ({ref.title}): {e}"
            logger.warning(f"[STORE] {warning}")
            progress.warnings.append(warning)
            progress.features.append(
                Feature(id=ref.id, title=ref.title, status=ref.status, path=ref.path, stories=[])
            )

    progress.features.sort(key=lambda f: int(f.id))
    return progress


# ============================================================================
# Lookups
# ============================================================================


def find_task_location(progress: TasksProgress, task_id: str) -> TaskLocation | None:
    for feature in progress.features:
        for story in feature.stories:
            for task in story.tasks:
                if task.id == task_id:
                    return TaskLocation(feature=feature, story=story, task=task)
    return None


def find_story_location(progress: TasksProgress, story_id: str) -> StoryLocation | None:
    for feature in progress.features:
        for story in feature.stories:
            if story.id == story_id:
                return StoryLocation(feature=feature, story=story)
    return None


def find_feature(progress: TasksProgress, feature_id: str) -> Feature | None:
    for feature in progress.features:
        if feature.id == feature_id:
            return feature
    return None


# ============================================================================
# Mutation
# ============================================================================


def update_task_status(
    tasks_dir: Path,
    progress: TasksProgress,
    task_id: str,
    status: str,
    **task_fields,
) -> TaskLocation:
    """Set a task's status and rewrite every layer that mirrors it.

    Extra keyword arguments are set on the TaskFileContent before writing
    (e.g. blocked_reason, previous_status).

    Raises:
        TaskNotFound, NotFound, MalformedData
    """
    location = find_task_location(progress, task_id)
    if location is None:
        raise TaskNotFound(task_id)

    file_path = get_task_file_path(tasks_dir, progress, task_id)
    content = load_task_file(file_path)
    old_status = content.status

    content.status = status
    for name, value in task_fields.items():
        if not hasattr(content, name):
            raise AttributeError(f"TaskFileContent has no field '{name}'")
        setattr(content, name, value)
    save_task_file(file_path, content)

    location.task.status = content.status
    recompute_rollups(location.feature)
    save_feature(tasks_dir, location.feature)
    save_project_index(tasks_dir, progress)

    logger.info(f"[STORE] {task_id}: {old_status} -> {status}")
    return location


def calculate_progress_stats(progress: TasksProgress) -> ProgressStats:
    stats = ProgressStats(total_features=len(progress.features))
    done = TaskStatus.COMPLETED.value

    for feature in progress.features:
        if feature.status == done:
            stats.completed_features += 1
        for story in feature.stories:
            stats.total_stories += 1
            if story.status == done:
                stats.completed_stories += 1
            for task in story.tasks:
                stats.total_tasks += 1
                if task.status == done:
                    stats.completed_tasks += 1

    return stats
