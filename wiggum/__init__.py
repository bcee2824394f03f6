"""
WIGGUM - PRD Task Backlog
=========================

Task backlog for AI-driven development loops, stored as one JSON
document (plans/prd.json by default).

Usage:
    from wiggum import TaskManager, PrdRepository

    manager = TaskManager(PrdRepository("plans/prd.json"))

    task = manager.add_task("Set up CI", priority=1, category="infrastructure")
    manager.get_ready_tasks()
    manager.complete_task(task.id)
    print(manager.get_status())
"""

__version__ = "1.0.0"

from .schema import (
    Prd,
    Task,
    TaskStatus,
    TaskCategory,
    TaskUpdate,
    StatusSummary,
    CompletionResult,
    MANUAL,
)

from .repository import (
    PrdRepository,
    PrdError,
    PrdNotFoundError,
    PrdParseError,
    PrdReadError,
    PrdWriteError,
)

from .manager import TaskManager
from .utils import infer_category

__all__ = [
    "TaskManager",
    "PrdRepository",
    "Prd",
    "Task",
    "TaskStatus",
    "TaskCategory",
    "TaskUpdate",
    "StatusSummary",
    "CompletionResult",
    "MANUAL",
    "PrdError",
    "PrdNotFoundError",
    "PrdParseError",
    "PrdReadError",
    "PrdWriteError",
    "infer_category",
]
