"""
Data models for the task tree.

Three storage granularities describe one tree:
  tasks/project-index.json          ProjectIndex (features only)
  tasks/<feature>/<feature>.json    Feature with embedded stories and TaskRefs
  tasks/<feature>/S*/T*.json        TaskFileContent (full detail for one task)

Files keep camelCase keys; dataclasses use snake_case.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from taskflow.lib.constants import (
    FEATURE_ID_PATTERN,
    INTERMITTENT_FEATURE_ID,
    STORY_ID_PATTERN,
    TASK_ID_PATTERN,
)


class TaskStatus(Enum):
    """Every lifecycle state a task can be in."""

    NOT_STARTED = "not-started"
    SETUP = "setup"
    PLANNING = "planning"
    IMPLEMENTING = "implementing"
    VERIFYING = "verifying"
    VALIDATING = "validating"
    COMMITTING = "committing"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    ON_HOLD = "on-hold"


class RollupStatus(Enum):
    """Aggregate status of a story or feature."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    ON_HOLD = "on-hold"


ACTIVE_STATUSES = frozenset({
    TaskStatus.SETUP.value,
    TaskStatus.PLANNING.value,
    TaskStatus.IMPLEMENTING.value,
    TaskStatus.VERIFYING.value,
    TaskStatus.VALIDATING.value,
    TaskStatus.COMMITTING.value,
})

PAUSED_STATUSES = frozenset({TaskStatus.BLOCKED.value, TaskStatus.ON_HOLD.value})

SUBTASK_STATUSES = ("pending", "completed")
NOTE_TYPES = ("note", "handoff", "blocker", "decision")
SKILLS = ("backend", "frontend", "fullstack", "devops", "docs", "development")
DEFAULT_SKILL = "backend"


def is_active_status(status: str | None) -> bool:
    """True for setup..committing."""
    return status in ACTIVE_STATUSES


def parse_status(status_str: str | None) -> TaskStatus | None:
    """Parse a status string into TaskStatus.

    Returns None if status is unknown.
    """
    if status_str is None:
        return None
    for status in TaskStatus:
        if status.value == status_str:
            return status
    return None


@dataclass
class TaskIdParts:
    feature_id: str
    story_id: str
    task_number: str


def parse_task_id(task_id: str) -> TaskIdParts | None:
    """Split "N.M.K" into feature "N", story "N.M" and task number "K"."""
    match = TASK_ID_PATTERN.match(task_id)
    if not match:
        return None
    return TaskIdParts(
        feature_id=match.group(1),
        story_id=f"{match.group(1)}.{match.group(2)}",
        task_number=match.group(3),
    )


def is_valid_task_id(task_id: str) -> bool:
    return bool(TASK_ID_PATTERN.match(task_id))


def is_valid_story_id(story_id: str) -> bool:
    return bool(STORY_ID_PATTERN.match(story_id))


def is_valid_feature_id(feature_id: str) -> bool:
    return bool(FEATURE_ID_PATTERN.match(feature_id))


# ============================================================================
# Task file (T*.json)
# ============================================================================


@dataclass
class Subtask:
    """Checklist item inside a task. Does not affect scheduling."""
    id: str
    description: str
    status: str = "pending"                    # pending, completed

    @classmethod
    def from_dict(cls, data: dict) -> "Subtask":
        return cls(id=data["id"], description=data["description"], status=data["status"])

    def to_dict(self) -> dict:
        return {"id": self.id, "description": self.description, "status": self.status}


@dataclass
class TaskNote:
    timestamp: str
    content: str
    type: Optional[str] = None                 # note, handoff, blocker, decision
    from_: Optional[str] = None                # "from" on disk
    to: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TaskNote":
        return cls(
            timestamp=data["timestamp"],
            content=data["content"],
            type=data.get("type"),
            from_=data.get("from"),
            to=data.get("to"),
        )

    def to_dict(self) -> dict:
        out = {"timestamp": self.timestamp}
        if self.type is not None:
            out["type"] = self.type
        if self.from_ is not None:
            out["from"] = self.from_
        if self.to is not None:
            out["to"] = self.to
        out["content"] = self.content
        return out


@dataclass
class TimeEntry:
    start: str
    end: Optional[str] = None
    hours: Optional[float] = None
    note: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TimeEntry":
        return cls(
            start=data["start"],
            end=data.get("end"),
            hours=data.get("hours"),
            note=data.get("note"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"start": self.start}
        if self.end is not None:
            out["end"] = self.end
        if self.hours is not None:
            out["hours"] = self.hours
        if self.note is not None:
            out["note"] = self.note
        return out


# Keys owned by TaskFileContent; anything else is carried in `extra`
_TASK_FILE_KEYS = {
    "id", "title", "description", "status", "skill", "subtasks", "context",
    "blockedReason", "previousStatus", "notes", "timeEntries",
    "estimatedHours", "actualHours",
}


@dataclass
class TaskFileContent:
    """Full detail for one task. Its status is the source of truth for the task."""
    id: str                                    # N.M.K
    title: str
    description: str
    status: str
    skill: str = DEFAULT_SKILL
    subtasks: list[Subtask] = field(default_factory=list)
    context: list[str] = field(default_factory=list)
    blocked_reason: Optional[str] = None
    previous_status: Optional[str] = None      # Stamped when blocked / put on hold
    notes: Optional[list[TaskNote]] = None
    time_entries: Optional[list[TimeEntry]] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "TaskFileContent":
        notes = data.get("notes")
        entries = data.get("timeEntries")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            status=data["status"],
            skill=data.get("skill", DEFAULT_SKILL),
            subtasks=[Subtask.from_dict(s) for s in data.get("subtasks", [])],
            context=list(data.get("context", [])),
            blocked_reason=data.get("blockedReason"),
            previous_status=data.get("previousStatus"),
            notes=[TaskNote.from_dict(n) for n in notes] if notes is not None else None,
            time_entries=[TimeEntry.from_dict(e) for e in entries] if entries is not None else None,
            estimated_hours=data.get("estimatedHours"),
            actual_hours=data.get("actualHours"),
            extra={k: v for k, v in data.items() if k not in _TASK_FILE_KEYS},
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "skill": self.skill,
            "subtasks": [s.to_dict() for s in self.subtasks],
            "context": list(self.context),
        }
        if self.blocked_reason is not None:
            out["blockedReason"] = self.blocked_reason
        if self.previous_status is not None:
            out["previousStatus"] = self.previous_status
        if self.notes is not None:
            out["notes"] = [n.to_dict() for n in self.notes]
        if self.time_entries is not None:
            out["timeEntries"] = [e.to_dict() for e in self.time_entries]
        if self.estimated_hours is not None:
            out["estimatedHours"] = self.estimated_hours
        if self.actual_hours is not None:
            out["actualHours"] = self.actual_hours
        out.update(self.extra)
        return out


# ============================================================================
# Feature file (F*.json)
# ============================================================================


@dataclass
class TaskRef:
    """Lightweight task entry embedded in a story for traversal and rollup."""
    id: str
    title: str
    status: str
    dependencies: list[str] = field(default_factory=list)
    is_intermittent: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "TaskRef":
        return cls(
            id=data["id"],
            title=data["title"],
            status=data["status"],
            dependencies=list(data.get("dependencies", [])),
            is_intermittent=bool(data.get("isIntermittent", False)),
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "dependencies": list(self.dependencies),
        }
        if self.is_intermittent:
            out["isIntermittent"] = True
        return out


@dataclass
class Story:
    id: str                                    # N.M
    title: str
    status: str
    tasks: list[TaskRef] = field(default_factory=list)

    @property
    def is_intermittent(self) -> bool:
        return (
            self.id.split(".")[0] == INTERMITTENT_FEATURE_ID
            or any(t.is_intermittent for t in self.tasks)
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Story":
        return cls(
            id=data["id"],
            title=data["title"],
            status=data["status"],
            tasks=[TaskRef.from_dict(t) for t in data["tasks"]],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "tasks": [t.to_dict() for t in self.tasks],
        }


@dataclass
class Feature:
    id: str                                    # N
    title: str
    status: str
    path: Optional[str] = None                 # Directory (or .json file) under tasks/
    stories: list[Story] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Feature":
        return cls(
            id=data["id"],
            title=data["title"],
            status=data["status"],
            path=data.get("path"),
            stories=[Story.from_dict(s) for s in data["stories"]],
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"id": self.id, "title": self.title, "status": self.status}
        if self.path is not None:
            out["path"] = self.path
        out["stories"] = [s.to_dict() for s in self.stories]
        return out


# ============================================================================
# Project index (project-index.json)
# ============================================================================


@dataclass
class FeatureRef:
    id: str
    title: str
    status: str
    path: str

    @classmethod
    def from_dict(cls, data: dict) -> "FeatureRef":
        return cls(id=data["id"], title=data["title"], status=data["status"], path=data["path"])

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "status": self.status, "path": self.path}


@dataclass
class ProjectIndex:
    project: str
    features: list[FeatureRef] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectIndex":
        return cls(
            project=data["project"],
            features=[FeatureRef.from_dict(f) for f in data["features"]],
        )

    def to_dict(self) -> dict:
        return {"project": self.project, "features": [f.to_dict() for f in self.features]}


# ============================================================================
# Runtime types (never stored)
# ============================================================================


@dataclass
class TasksProgress:
    """The whole tree in memory: index plus every feature file."""
    project: str
    features: list[Feature] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class TaskLocation:
    feature: Feature
    story: Story
    task: TaskRef


@dataclass
class StoryLocation:
    feature: Feature
    story: Story


@dataclass
class ProgressStats:
    total_features: int = 0
    completed_features: int = 0
    total_stories: int = 0
    completed_stories: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
