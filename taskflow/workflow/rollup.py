"""Story and feature status rollup.

Aggregate statuses are always derived from children, never mutated on their
own. Both levels share one rule:

    all completed                              -> completed
    any blocked, none completed or in flight   -> blocked
    any in flight or any completed             -> in-progress
    otherwise                                  -> not-started

For a story "in flight" means an active task status; for a feature it means
an in-progress story.
"""

from taskflow.lib.models import (
    Feature,
    RollupStatus,
    Story,
    TaskStatus,
    is_active_status,
)


def _rollup(statuses: list[str], in_flight) -> str:
    if not statuses:
        return RollupStatus.NOT_STARTED.value

    completed = sum(1 for s in statuses if s == TaskStatus.COMPLETED.value)
    blocked = sum(1 for s in statuses if s == TaskStatus.BLOCKED.value)
    active = sum(1 for s in statuses if in_flight(s))

    if completed == len(statuses):
        return RollupStatus.COMPLETED.value
    if blocked and not completed and not active:
        return RollupStatus.BLOCKED.value
    if active or completed:
        return RollupStatus.IN_PROGRESS.value
    return RollupStatus.NOT_STARTED.value


def story_status(story: Story) -> str:
    """Derive a story's status from its task statuses."""
    return _rollup([t.status for t in story.tasks], is_active_status)


def feature_status(feature: Feature) -> str:
    """Derive a feature's status from its stories' derived statuses."""
    return _rollup(
        [story_status(s) for s in feature.stories],
        lambda s: s == RollupStatus.IN_PROGRESS.value,
    )


def recompute_rollups(feature: Feature) -> None:
    """Overwrite stored story and feature statuses with derived ones."""
    for story in feature.stories:
        story.status = story_status(story)
    feature.status = feature_status(feature)
