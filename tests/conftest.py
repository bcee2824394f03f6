"""Shared fixtures: a scratch PRD file per test."""

import json
import logging

import pytest

from wiggum.manager import TaskManager
from wiggum.repository import PrdRepository


INITIAL_PRD = {
    "project": "Test Project",
    "backlog": [
        {
            "id": "1",
            "priority": 1,
            "feature": "Existing task",
            "status": "pending",
            "category": "feature",
            "createdAt": "2026-01-05T10:00:00Z",
            "completedAt": None,
            "completedBy": None,
            "dependencies": [],
            "notes": None,
        }
    ],
}


def make_task(task_id, priority=1, status="pending", category="feature",
              completed_at=None, dependencies=None, feature=None, notes=None):
    return {
        "id": task_id,
        "priority": priority,
        "feature": feature or f"Task {task_id}",
        "status": status,
        "category": category,
        "createdAt": "2026-01-05T10:00:00Z",
        "completedAt": completed_at,
        "completedBy": "manual" if completed_at else None,
        "dependencies": dependencies or [],
        "notes": notes,
    }


def write_prd(path, backlog, project="Test Project"):
    path.write_text(json.dumps({"project": project, "backlog": backlog}, indent=2), encoding="utf-8")


@pytest.fixture
def prd_path(tmp_path):
    path = tmp_path / "plans" / "prd.json"
    path.parent.mkdir()
    path.write_text(json.dumps(INITIAL_PRD, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def empty_prd_path(tmp_path):
    path = tmp_path / "prd.json"
    write_prd(path, [])
    return path


@pytest.fixture
def repository(prd_path):
    return PrdRepository(prd_path)


@pytest.fixture
def manager(repository):
    return TaskManager(repository)


@pytest.fixture
def empty_manager(empty_prd_path):
    return TaskManager(PrdRepository(empty_prd_path))


@pytest.fixture(autouse=True)
def reset_wiggum_logger():
    """CLI entry points attach a stderr handler; drop it between tests."""
    yield
    logging.getLogger("wiggum").handlers.clear()
