"""
WIGGUM - Task Manager
=====================
Backlog engine: ID assignment, filtering, dependency readiness, status
transitions and summary reporting. Every operation is one load, compute,
(optional) save cycle against the whole PRD document.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Iterable, Union
import logging
import re

from .repository import PrdRepository
from .schema import (
    Prd, Task, TaskStatus, TaskCategory, TaskUpdate, StatusSummary,
    CompletionResult, MANUAL, utc_now
)

logger = logging.getLogger("wiggum.manager")

RECENTLY_COMPLETED_LIMIT = 5

# leading whitespace, optional sign, ASCII digits
LEADING_INT_RE = re.compile(r"\s*([+-]?[0-9]+)")


class TaskManager:
    """
    PRD backlog engine

    Expected failures are reported as sentinel values (None, False,
    CompletionResult) rather than exceptions. Storage failures raise
    wiggum.repository.PrdError and are never retried or repaired here.
    """

    def __init__(self, repository: PrdRepository):
        self.repository = repository

    # ========================================
    # TASK OPERATIONS
    # ========================================

    def add_task(
        self,
        feature: str,
        priority: int,
        category: Union[TaskCategory, str],
        dependencies: Optional[Iterable[str]] = None,
        notes: Optional[str] = None
    ) -> Task:
        """Append a new pending task with the next free ID"""
        prd = self.repository.load()

        task = Task(
            id=next_task_id(prd.backlog),
            priority=priority,
            feature=feature,
            status=TaskStatus.PENDING,
            category=category,
            created_at=utc_now(),
            dependencies=list(dependencies or []),
            notes=notes
        )
        prd.backlog.append(task)
        self.repository.save(prd)

        logger.info(f"➕ Added task #{task.id}: {task.feature}")
        return task

    def list_tasks(
        self,
        status: Optional[Union[TaskStatus, str]] = None,
        category: Optional[Union[TaskCategory, str]] = None
    ) -> List[Task]:
        """Tasks matching the optional filters, highest priority first"""
        tasks = self.repository.load().backlog

        if status:
            status = TaskStatus(status)
            tasks = [t for t in tasks if t.status == status]
        if category:
            category = TaskCategory(category)
            tasks = [t for t in tasks if t.category == category]

        return sort_by_priority(tasks)

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get task by ID"""
        return self.repository.load().find(task_id)

    def update_task(
        self,
        task_id: str,
        updates: Union[TaskUpdate, Dict[str, Any]]
    ) -> Optional[Task]:
        """Apply a partial update; returns None if the task does not exist"""
        if not isinstance(updates, TaskUpdate):
            updates = TaskUpdate.model_validate(updates)

        prd = self.repository.load()
        task = prd.find(task_id)
        if not task:
            logger.warning(f"Task not found: {task_id}")
            return None

        changes = updates.changes()
        new_status = changes.get("status")

        if new_status == TaskStatus.COMPLETED:
            if not task.is_completed:
                task.completed_at = utc_now()
                task.completed_by = MANUAL
            else:
                # already completed: keep metadata, fill gaps from hand edits
                task.completed_at = task.completed_at or utc_now()
                task.completed_by = task.completed_by or MANUAL
        elif new_status is not None:
            task.completed_at = None
            task.completed_by = None

        for field, value in changes.items():
            setattr(task, field, value)

        self.repository.save(prd)
        logger.info(f"✏️ Updated task #{task.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return task

    def complete_task(self, task_id: str) -> CompletionResult:
        """Mark a task completed if every dependency is completed"""
        prd = self.repository.load()
        task = prd.find(task_id)
        if not task:
            logger.warning(f"Task not found: {task_id}")
            return CompletionResult.NOT_FOUND

        blocked_by = _blocking_dependencies(prd, task)
        if blocked_by:
            logger.warning(f"⛔ Task #{task_id} blocked by: {blocked_by}")
            return CompletionResult.DEPENDENCY_UNSATISFIED

        task.status = TaskStatus.COMPLETED
        task.completed_at = utc_now()
        task.completed_by = MANUAL

        self.repository.save(prd)
        logger.info(f"✅ Completed task #{task.id}: {task.feature}")
        return CompletionResult.COMPLETED

    def blocking_dependencies(self, task_id: str) -> Optional[List[str]]:
        """Dependency IDs that keep a task from completing (None if no such task)"""
        prd = self.repository.load()
        task = prd.find(task_id)
        if not task:
            return None
        return _blocking_dependencies(prd, task)

    def delete_task(self, task_id: str) -> bool:
        """Remove a task. Dependents keep the now-dangling reference."""
        return self.remove_task(task_id) is not None

    def remove_task(self, task_id: str) -> Optional[List[str]]:
        """
        Remove a task in one load/save cycle.

        Returns the IDs of tasks still depending on it (now blocked for
        good), or None if there was no such task.
        """
        prd = self.repository.load()
        task = prd.find(task_id)
        if not task:
            logger.warning(f"Task not found: {task_id}")
            return None

        prd.backlog.remove(task)
        self.repository.save(prd)

        dependents = dependents_of(prd, task_id)
        if dependents:
            logger.warning(f"🗑️ Deleted task #{task_id}; still referenced by: {dependents}")
        else:
            logger.info(f"🗑️ Deleted task #{task_id}")
        return dependents

    # ========================================
    # REPORTING
    # ========================================

    def get_status(self) -> StatusSummary:
        """Status tallies plus the most recently completed tasks"""
        tasks = self.repository.load().backlog

        counts = {status: 0 for status in TaskStatus}
        for task in tasks:
            counts[task.status] += 1

        finished = [t for t in tasks if t.is_completed and t.completed_at]
        finished.sort(key=lambda t: _as_utc(t.completed_at), reverse=True)

        return StatusSummary(
            total=len(tasks),
            pending=counts[TaskStatus.PENDING],
            in_progress=counts[TaskStatus.IN_PROGRESS],
            completed=counts[TaskStatus.COMPLETED],
            recently_completed=finished[:RECENTLY_COMPLETED_LIMIT]
        )

    def get_ready_tasks(self) -> List[Task]:
        """Pending tasks whose dependencies are all completed"""
        tasks = self.repository.load().backlog
        completed_ids = {t.id for t in tasks if t.is_completed}

        ready = [
            t for t in tasks
            if t.status == TaskStatus.PENDING
            and all(dep_id in completed_ids for dep_id in t.dependencies)
        ]
        return sort_by_priority(ready)


# ========================================
# HELPERS
# ========================================

def next_task_id(tasks: Iterable[Task]) -> str:
    """(max numeric id) + 1, reading each ID's leading integer ("3a" -> 3).

    IDs without a leading integer are ignored.
    """
    max_id = 0
    for task in tasks:
        match = LEADING_INT_RE.match(task.id)
        if not match:
            continue
        max_id = max(max_id, int(match.group(1)))
    return str(max_id + 1)


def sort_by_priority(tasks: Iterable[Task]) -> List[Task]:
    # sorted() is stable: equal priorities keep document order
    return sorted(tasks, key=lambda t: t.priority)


def dependents_of(prd: Prd, task_id: str) -> List[str]:
    return [t.id for t in prd.backlog if task_id in t.dependencies]


def _blocking_dependencies(prd: Prd, task: Task) -> List[str]:
    """Dangling or incomplete dependencies, in declaration order"""
    blocking = []
    for dep_id in task.dependencies:
        dep = prd.find(dep_id)
        if dep is None or not dep.is_completed:
            blocking.append(dep_id)
    return blocking


def _as_utc(value: datetime) -> datetime:
    # hand-edited documents may carry naive timestamps
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
