"""
Configuration loaders for taskflow.

Loads taskflow.config.json (or taskflow.yaml) from the project root and
resolves the project layout.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from taskflow.lib import validate
from taskflow.lib.constants import (
    CONFIG_FILES,
    DEFAULT_BASE_BRANCH,
    DEFAULT_BRANCH_PREFIX,
    DEFAULT_INTERMITTENT_PREFIX,
    LOGS_DIR_NAME,
    TASKFLOW_DIR_NAME,
    TASKS_DIR_NAME,
)
from taskflow.lib.errors import MalformedData

logger = logging.getLogger(__name__)


@dataclass
class BranchingConfig:
    """Branch naming and switching policy."""
    strategy: str = "per-story"                # per-story, none
    base: str = DEFAULT_BASE_BRANCH
    prefix: str = DEFAULT_BRANCH_PREFIX
    intermittent_prefix: str = DEFAULT_INTERMITTENT_PREFIX


@dataclass
class TaskflowConfig:
    """Project configuration from taskflow.config.json"""
    project_name: str = ""
    branching: BranchingConfig = field(default_factory=BranchingConfig)
    validation_commands: dict[str, str] = field(default_factory=dict)  # label -> shell command


@dataclass
class ProjectPaths:
    project_root: Path
    tasks_dir: Path
    taskflow_dir: Path
    logs_dir: Path
    config_path: Path | None


@dataclass
class Project:
    """Everything a lifecycle operation needs to know about the project."""
    paths: ProjectPaths
    config: TaskflowConfig


def find_config_file(project_root: Path) -> Path | None:
    for name in CONFIG_FILES:
        candidate = project_root / name
        if candidate.exists():
            return candidate
    return None


def get_project_paths(project_root: Path) -> ProjectPaths:
    taskflow_dir = project_root / TASKFLOW_DIR_NAME
    return ProjectPaths(
        project_root=project_root,
        tasks_dir=project_root / TASKS_DIR_NAME,
        taskflow_dir=taskflow_dir,
        logs_dir=taskflow_dir / LOGS_DIR_NAME,
        config_path=find_config_file(project_root),
    )


def load_config(project_root: Path) -> TaskflowConfig:
    """Load the project config and return TaskflowConfig.

    If no config file exists, returns defaults. JSON configs are read with the
    YAML loader since JSON is a subset of YAML.

    Raises:
        MalformedData: If the file cannot be parsed or fails the config schema
    """
    config_path = find_config_file(project_root)
    if config_path is None:
        logger.debug(f"[CONFIG] No config in {project_root}, using defaults")
        return TaskflowConfig(project_name=project_root.name)

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise MalformedData(config_path, f"Cannot parse config: {e}") from None

    validate.validate(data, "config", config_path)

    branching = data.get("branching", {})
    validation = data.get("validation", {}) or {}
    return TaskflowConfig(
        project_name=data.get("project", {}).get("name", project_root.name),
        branching=BranchingConfig(
            strategy=branching.get("strategy", "per-story"),
            base=branching.get("base", DEFAULT_BASE_BRANCH),
            prefix=branching.get("prefix", DEFAULT_BRANCH_PREFIX),
            intermittent_prefix=branching.get("intermittentPrefix", DEFAULT_INTERMITTENT_PREFIX),
        ),
        validation_commands=dict(validation.get("commands") or {}),
    )


def load_project(project_root: Path) -> Project:
    """Resolve paths and load config for a project root."""
    project_root = project_root.resolve()
    return Project(paths=get_project_paths(project_root), config=load_config(project_root))
