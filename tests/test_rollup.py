"""Tests for taskflow.workflow.rollup and taskflow.workflow.deps modules."""

import pytest

from taskflow.lib.models import Feature, Story, TaskRef, TasksProgress
from taskflow.workflow.deps import dependencies_met, dependents_of, unmet_dependencies
from taskflow.workflow.rollup import feature_status, recompute_rollups, story_status


def _story(story_id: str, *statuses: str, stored: str = "not-started") -> Story:
    return Story(
        id=story_id,
        title=f"Story {story_id}",
        status=stored,
        tasks=[TaskRef(id=f"{story_id}.{i}", title="T", status=s) for i, s in enumerate(statuses, start=1)],
    )


class TestStoryStatus:
    """Tests for story rollup."""

    @pytest.mark.parametrize("statuses,expected", [
        ((), "not-started"),
        (("not-started", "not-started"), "not-started"),
        (("completed", "completed"), "completed"),
        (("completed", "not-started"), "in-progress"),
        (("implementing", "not-started"), "in-progress"),
        (("blocked", "not-started"), "blocked"),
        (("blocked", "blocked"), "blocked"),
        (("blocked", "completed"), "in-progress"),
        (("blocked", "setup"), "in-progress"),
        (("on-hold", "not-started"), "not-started"),
    ])
    def test_rule(self, statuses, expected):
        assert story_status(_story("1.1", *statuses)) == expected

    def test_ignores_stored_status(self):
        assert story_status(_story("1.1", "completed", stored="blocked")) == "completed"

    def test_order_independent(self):
        a = _story("1.1", "blocked", "completed", "not-started")
        b = _story("1.1", "not-started", "blocked", "completed")
        assert story_status(a) == story_status(b)


class TestFeatureStatus:
    """Tests for feature rollup over derived story statuses."""

    def test_empty_feature(self):
        assert feature_status(Feature(id="1", title="F", status="completed")) == "not-started"

    def test_all_stories_completed(self):
        feature = Feature(id="1", title="F", status="not-started", stories=[
            _story("1.1", "completed"),
            _story("1.2", "completed", "completed"),
        ])
        assert feature_status(feature) == "completed"

    def test_in_progress_story_makes_feature_in_progress(self):
        feature = Feature(id="1", title="F", status="not-started", stories=[
            _story("1.1", "verifying"),
            _story("1.2", "blocked"),
        ])
        assert feature_status(feature) == "in-progress"

    def test_blocked_story_without_progress(self):
        feature = Feature(id="1", title="F", status="not-started", stories=[
            _story("1.1", "blocked"),
            _story("1.2", "not-started"),
        ])
        assert feature_status(feature) == "blocked"

    def test_recompute_rollups_overwrites_stored(self):
        feature = Feature(id="1", title="F", status="completed", stories=[
            _story("1.1", "completed", stored="not-started"),
            _story("1.2", "not-started", stored="completed"),
        ])
        recompute_rollups(feature)
        assert [s.status for s in feature.stories] == ["completed", "not-started"]
        assert feature.status == "in-progress"


class TestDependencies:
    """Tests for dependency resolution."""

    @pytest.fixture
    def progress(self):
        story = Story(id="1.1", title="S", status="in-progress", tasks=[
            TaskRef(id="1.1.1", title="A", status="completed"),
            TaskRef(id="1.1.2", title="B", status="implementing", dependencies=["1.1.1"]),
            TaskRef(id="1.1.3", title="C", status="not-started", dependencies=["1.1.1", "1.1.2"]),
            TaskRef(id="1.1.4", title="D", status="not-started", dependencies=["9.9.9"]),
        ])
        return TasksProgress(project="demo", features=[
            Feature(id="1", title="F", status="in-progress", stories=[story]),
        ])

    def _task(self, progress, task_id):
        return next(t for t in progress.features[0].stories[0].tasks if t.id == task_id)

    def test_empty_dependencies_met(self, progress):
        assert dependencies_met(progress, self._task(progress, "1.1.1"))

    def test_completed_dependency_met(self, progress):
        assert dependencies_met(progress, self._task(progress, "1.1.2"))

    def test_unmet_lists_only_incomplete(self, progress):
        task = self._task(progress, "1.1.3")
        assert not dependencies_met(progress, task)
        assert unmet_dependencies(progress, task) == ["1.1.2"]

    def test_unknown_dependency_is_unmet(self, progress):
        task = self._task(progress, "1.1.4")
        assert not dependencies_met(progress, task)
        assert unmet_dependencies(progress, task) == ["9.9.9"]

    def test_dependents_of(self, progress):
        assert [t.id for t in dependents_of(progress, "1.1.1")] == ["1.1.2", "1.1.3"]
        assert dependents_of(progress, "1.1.3") == []
