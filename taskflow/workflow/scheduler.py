"""
Task selection over the in-memory tree.

Rollups are derived from the task statuses on every call; stored story and
feature statuses are never trusted here.
"""

import logging
from dataclasses import dataclass

from taskflow.lib.constants import INTERMITTENT_FEATURE_ID
from taskflow.lib.errors import NoActiveTask, TaskNotFound
from taskflow.lib.models import (
    PAUSED_STATUSES,
    Feature,
    RollupStatus,
    Story,
    TaskLocation,
    TaskRef,
    TasksProgress,
    TaskStatus,
    is_active_status,
)
from taskflow.store.store import find_task_location
from taskflow.workflow.deps import dependencies_met
from taskflow.workflow.rollup import feature_status, story_status

logger = logging.getLogger(__name__)


@dataclass
class NextTask:
    """Result of find_next_available_task()."""
    task: TaskRef
    story: Story
    feature: Feature
    tier: int                                  # 1..4, lower is preferred
    is_intermittent: bool = False


def is_intermittent_task(feature: Feature, task: TaskRef) -> bool:
    return task.is_intermittent or feature.id == INTERMITTENT_FEATURE_ID


def _iter_tasks(progress: TasksProgress):
    for feature in progress.features:
        for story in feature.stories:
            for task in story.tasks:
                yield feature, story, task


def find_active_tasks(progress: TasksProgress) -> list[TaskLocation]:
    """All tasks in an active status, in scan order."""
    return [
        TaskLocation(feature=f, story=s, task=t)
        for f, s, t in _iter_tasks(progress)
        if is_active_status(t.status)
    ]


def find_active_task(progress: TasksProgress) -> TaskLocation | None:
    """First active task in feature -> story -> task order.

    More than one active task is a tolerated inconsistency: the first one
    wins and a warning is logged.
    """
    active = find_active_tasks(progress)
    if not active:
        return None
    if len(active) > 1:
        ids = ", ".join(loc.task.id for loc in active)
        logger.warning(f"[SCHED] Multiple active tasks ({ids}); using {active[0].task.id}")
    return active[0]


def find_paused_task(progress: TasksProgress) -> TaskLocation | None:
    """First blocked or on-hold task in scan order."""
    for feature, story, task in _iter_tasks(progress):
        if task.status in PAUSED_STATUSES:
            return TaskLocation(feature=feature, story=story, task=task)
    return None


def find_next_available_task(
    progress: TasksProgress,
    exclude_id: str | None = None,
    include_intermittent: bool = False,
) -> NextTask | None:
    """Pick the next task to work on.

    Tiers, first non-empty wins:
      1. active tasks in in-progress stories
      2. not-started tasks with met dependencies in in-progress stories
      3. not-started tasks with met dependencies in not-started stories
      4. any non-completed intermittent task in feature 0 (opt-in)

    Tiers 1-3 skip intermittent tasks. Completed features are skipped.
    """
    in_progress = RollupStatus.IN_PROGRESS.value
    not_started = TaskStatus.NOT_STARTED.value

    candidates = []
    for feature in progress.features:
        if feature_status(feature) == RollupStatus.COMPLETED.value:
            continue
        for story in feature.stories:
            candidates.append((feature, story, story_status(story)))

    def scan(story_rollup: str, accept) -> NextTask | None:
        for feature, story, rollup in candidates:
            if rollup != story_rollup:
                continue
            for task in story.tasks:
                if task.id == exclude_id or is_intermittent_task(feature, task):
                    continue
                if accept(task):
                    return NextTask(task=task, story=story, feature=feature, tier=0)
        return None

    def ready(task: TaskRef) -> bool:
        return task.status == not_started and dependencies_met(progress, task)

    tiers = (
        (in_progress, lambda t: is_active_status(t.status)),
        (in_progress, ready),
        (not_started, ready),
    )
    for tier, (story_rollup, accept) in enumerate(tiers, start=1):
        found = scan(story_rollup, accept)
        if found:
            found.tier = tier
            logger.debug(f"[SCHED] Next task {found.task.id} (tier {tier})")
            return found

    if include_intermittent:
        for feature, story, _ in candidates:
            if feature.id != INTERMITTENT_FEATURE_ID:
                continue
            for task in story.tasks:
                if task.id == exclude_id or task.status == TaskStatus.COMPLETED.value:
                    continue
                logger.debug(f"[SCHED] Next task {task.id} (intermittent)")
                return NextTask(task=task, story=story, feature=feature, tier=4, is_intermittent=True)

    return None


def resolve_task(progress: TasksProgress, task_id: str | None = None) -> TaskLocation:
    """Locate task_id, or the active task when no ID is given.

    Raises:
        TaskNotFound: If task_id is not in the tree
        NoActiveTask: If no ID is given and nothing is active
    """
    if task_id is None:
        location = find_active_task(progress)
        if location is None:
            raise NoActiveTask()
        return location

    location = find_task_location(progress, task_id)
    if location is None:
        raise TaskNotFound(task_id)
    return location
