"""
WIGGUM - PRD Schema Definition
==============================
The PRD document: a project name plus an ordered backlog of tasks.
Field names on disk are camelCase (createdAt, completedBy, ...) so the
document stays compatible with agents that edit plans/prd.json by hand.
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


MANUAL = "manual"              # completedBy tag for engine-driven completion
AGENT_COMPLETED_BY = "opencode"  # tag the agent loop asks the agent to write


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Task lifecycle states"""
    PENDING = "pending"           # Not started
    IN_PROGRESS = "in_progress"   # Being worked on
    COMPLETED = "completed"       # Done, completion metadata set


class TaskCategory(str, Enum):
    """Kind of work a task represents"""
    INFRASTRUCTURE = "infrastructure"
    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    DOCS = "docs"


class CompletionResult(str, Enum):
    """Outcome of TaskManager.complete_task"""
    COMPLETED = "completed"
    NOT_FOUND = "not_found"
    DEPENDENCY_UNSATISFIED = "dependency_unsatisfied"

    def __bool__(self) -> bool:
        return self is CompletionResult.COMPLETED


class Task(BaseModel):
    """Individual backlog entry"""
    # keys added by hand or by an agent are kept on write
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    priority: int                   # Lower value = higher priority
    feature: str                    # Free-text description
    status: TaskStatus = TaskStatus.PENDING
    category: TaskCategory = TaskCategory.FEATURE
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    # Completion metadata, set together and cleared together
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    completed_by: Optional[str] = Field(default=None, alias="completedBy")

    # Task IDs that must be completed first; may reference missing tasks
    dependencies: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class Prd(BaseModel):
    """Complete backlog document - the unit of persistence"""
    model_config = ConfigDict(extra="allow")

    project: str
    backlog: List[Task] = Field(default_factory=list)

    def find(self, task_id: str) -> Optional[Task]:
        for task in self.backlog:
            if task.id == task_id:
                return task
        return None

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TaskUpdate(BaseModel):
    """Partial update for TaskManager.update_task.

    Only fields that were explicitly given are applied; everything else
    keeps its previous value. ``notes`` may be set to None to clear it.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    feature: Optional[str] = None
    priority: Optional[int] = None
    category: Optional[TaskCategory] = None
    status: Optional[TaskStatus] = None
    dependencies: Optional[List[str]] = None
    notes: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        changed = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "notes":
                continue
            changed[name] = value
        return changed


class StatusSummary(BaseModel):
    """Counts per status plus the most recently completed tasks"""
    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    pending: int = 0
    in_progress: int = Field(default=0, alias="inProgress")
    completed: int = 0
    recently_completed: List[Task] = Field(default_factory=list, alias="recentlyCompleted")
