"""Shared constants for taskflow."""

import re

# Project layout (relative to the project root)
TASKS_DIR_NAME = "tasks"
TASKFLOW_DIR_NAME = ".taskflow"
LOGS_DIR_NAME = "logs"
PROJECT_INDEX_FILE = "project-index.json"
CONFIG_FILES = ("taskflow.config.json", "taskflow.yaml")

# ID validation
TASK_ID_PATTERN = re.compile(r'^(\d+)\.(\d+)\.(\d+)$')
STORY_ID_PATTERN = re.compile(r'^\d+\.\d+$')
FEATURE_ID_PATTERN = re.compile(r'^\d+$')

# Intermittent tasks live under this feature
INTERMITTENT_FEATURE_ID = "0"

# Branching
DEFAULT_BASE_BRANCH = "main"
DEFAULT_BRANCH_PREFIX = "story/"
DEFAULT_INTERMITTENT_PREFIX = "intermittent/"
AUTO_STASH_MESSAGE = "Auto-stash by taskflow before branch switch"

# Validation logs
VALIDATION_STATUS_LABEL = "validation-status"


def slugify(text: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim dashes."""
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')
