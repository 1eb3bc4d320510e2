"""Optional task background from ``docs/tasks/<task>-task.md``."""

import logging
from pathlib import Path

from planwf.domain.constants import TASK_FILENAME_TEMPLATE, TASKS_DIR

logger = logging.getLogger(__name__)


def task_file_path(project_root: Path, task: str) -> Path:
    """Path of the task file for task under project_root.

    Raises:
        ValueError: If task is empty or contains path separators
    """
    name = task.strip()
    if not name or "/" in name or "\\" in name or ".." in name:
        raise ValueError(f"Invalid task name: '{task}'")
    return project_root / TASKS_DIR / TASK_FILENAME_TEMPLATE.format(task=name)


def load_task_context(project_root: Path, task: str) -> str | None:
    """Read the task file if it exists.

    Returns:
        File content, or None when there is no task file
    """
    path = task_file_path(project_root, task)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No task file at %s", path)
        return None
    return content.strip() or None
