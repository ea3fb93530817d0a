"""Dependency resolution over the task tree."""

from taskflow.lib.models import TaskRef, TaskStatus, TasksProgress


def _status_of(progress: TasksProgress, task_id: str) -> str | None:
    for feature in progress.features:
        for story in feature.stories:
            for task in story.tasks:
                if task.id == task_id:
                    return task.status
    return None


def unmet_dependencies(progress: TasksProgress, task: TaskRef) -> list[str]:
    """Dependency IDs that are missing from the tree or not completed."""
    return [
        dep_id for dep_id in task.dependencies
        if _status_of(progress, dep_id) != TaskStatus.COMPLETED.value
    ]


def dependencies_met(progress: TasksProgress, task: TaskRef) -> bool:
    """True iff every dependency resolves to a completed task.

    An empty dependency list is met; an unknown ID is unmet, not an error.
    """
    return not unmet_dependencies(progress, task)


def dependents_of(progress: TasksProgress, task_id: str) -> list[TaskRef]:
    """Tasks that list task_id as a dependency."""
    return [
        task
        for feature in progress.features
        for story in feature.stories
        for task in story.tasks
        if task_id in task.dependencies
    ]
