#!/usr/bin/env python3
"""
WIGGUM - Task CLI
=================
Command-line tool for managing the PRD backlog.

Usage:
    task init "My Project"
    task add
    task add "Fix the login bug" --priority 1
    task list
    task list --all
    task update 3 --status in_progress
    task complete 3
    task delete 3
    task status
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from . import __version__
from .config import resolve_prd_path
from .log import setup_logging, level_for_verbosity
from .manager import TaskManager
from .repository import PrdRepository, PrdError, PrdNotFoundError
from .schema import Task, TaskStatus, TaskCategory, TaskUpdate, CompletionResult
from .utils import infer_category, prompt, split_ids

logger = logging.getLogger("wiggum.cli")

STATUS_ICONS = {
    TaskStatus.PENDING: "⏳",
    TaskStatus.IN_PROGRESS: "🔄",
    TaskStatus.COMPLETED: "✅",
}

STATUS_CHOICES = [s.value for s in TaskStatus]
CATEGORY_CHOICES = [c.value for c in TaskCategory]
DEFAULT_PRIORITY = 3


class UsageError(Exception):
    """Bad interactive input; reported to the user, exit code 1."""


# ========================================
# RENDERING
# ========================================

def _day(task: Task) -> str:
    return task.completed_at.strftime("%Y-%m-%d") if task.completed_at else ""


def format_task(task: Task, icon: Optional[str] = None, show_completed: bool = True) -> str:
    icon = icon or STATUS_ICONS.get(task.status, "❓")
    completed = f" (completed: {_day(task)})" if show_completed and task.completed_at else ""
    deps = f" [deps: {', '.join(task.dependencies)}]" if task.dependencies else ""
    return f"{icon} #{task.id} (P{task.priority}) [{task.category.value}] {task.feature}{completed}{deps}"


def render_tasks(tasks: List[Task]) -> str:
    if not tasks:
        return "No tasks found."
    lines = []
    for task in tasks:
        lines.append(format_task(task))
        if task.notes:
            lines.append(f"   └─ {task.notes}")
    return "\n".join(lines)


def render_overview(manager: TaskManager) -> str:
    """Recently completed tasks followed by the tasks ready to work on"""
    status = manager.get_status()
    ready = manager.get_ready_tasks()
    lines = []

    if status.recently_completed:
        lines.append("🕐 Recently completed:")
        for task in status.recently_completed:
            lines.append("  " + format_task(task, icon="✅", show_completed=False))
        lines.append("")

    if ready:
        lines.append("📋 Available tasks (no pending dependencies):")
        for task in ready:
            lines.append("  " + format_task(task, icon="⏳"))
            if task.notes:
                lines.append(f"     └─ {task.notes}")
    else:
        lines.append("📋 No available tasks (all pending tasks have unresolved dependencies)")

    return "\n".join(lines)


def render_status(manager: TaskManager) -> str:
    status = manager.get_status()
    lines = [
        "📊 Task Summary",
        f"Total: {status.total} | Pending: {status.pending} | "
        f"In Progress: {status.in_progress} | Completed: {status.completed}",
    ]
    if status.recently_completed:
        lines.extend(["", "🕐 Recently completed:"])
        for task in status.recently_completed:
            lines.append(f"  #{task.id} - {task.feature} ({_day(task)})")
    return "\n".join(lines)


# ========================================
# INTERACTIVE INPUT
# ========================================

def _parse_priority(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise UsageError(f"Priority must be a whole number, got '{text}'")


def _parse_category(text: str) -> TaskCategory:
    try:
        return TaskCategory(text)
    except ValueError:
        raise UsageError(f"Unknown category '{text}' (choose from: {', '.join(CATEGORY_CHOICES)})")


def _collect_new_task(args) -> dict:
    """Fields for add_task, prompting only when no description was given"""
    if args.description:
        return {
            "feature": args.description,
            "priority": args.priority if args.priority is not None else DEFAULT_PRIORITY,
            "category": args.category or infer_category(args.description),
            "dependencies": split_ids(args.deps) if args.deps else [],
            "notes": args.notes,
        }

    print("Adding new task...")
    feature = prompt("Description: ")
    if not feature:
        raise UsageError("Description is required")

    if args.priority is not None:
        priority = args.priority
    else:
        priority = _parse_priority(prompt("Priority (1-5): ", default=str(DEFAULT_PRIORITY)))

    if args.category:
        category = TaskCategory(args.category)
    else:
        suggested = infer_category(feature)
        print("Categories:", ", ".join(CATEGORY_CHOICES))
        category = _parse_category(prompt(f"Category (default: {suggested.value}): ", default=suggested.value))

    deps_text = args.deps if args.deps is not None else prompt("Dependencies (comma-separated task IDs, or empty): ")
    notes = args.notes if args.notes is not None else (prompt("Notes (optional, or empty): ") or None)

    return {
        "feature": feature,
        "priority": priority,
        "category": category,
        "dependencies": split_ids(deps_text),
        "notes": notes,
    }


def _collect_update(args, task: Task) -> dict:
    """Changed fields for update_task; interactive when no flag was given"""
    updates = {}
    if args.feature is not None:
        updates["feature"] = args.feature
    if args.priority is not None:
        updates["priority"] = args.priority
    if args.category is not None:
        updates["category"] = args.category
    if args.status is not None:
        updates["status"] = args.status
    if args.deps is not None:
        updates["dependencies"] = split_ids(args.deps)
    if args.notes is not None:
        updates["notes"] = args.notes or None
    if updates:
        return updates

    print(f"Updating task #{task.id}")
    print(f"Current: {task.feature}")
    print(f"Status: {task.status.value} | Category: {task.category.value} | Priority: {task.priority}")

    feature = prompt(f"Description (current: {task.feature}): ")
    if feature:
        updates["feature"] = feature

    priority = prompt(f"Priority (current: {task.priority}): ")
    if priority:
        updates["priority"] = _parse_priority(priority)

    print("Categories:", ", ".join(CATEGORY_CHOICES))
    category = prompt(f"Category (current: {task.category.value}): ")
    if category:
        updates["category"] = _parse_category(category)

    print("Status:", ", ".join(STATUS_CHOICES))
    status = prompt(f"Status (current: {task.status.value}): ")
    if status:
        if status not in STATUS_CHOICES:
            raise UsageError(f"Unknown status '{status}' (choose from: {', '.join(STATUS_CHOICES)})")
        updates["status"] = status

    deps = prompt(f"Dependencies (current: {', '.join(task.dependencies) or 'none'}): ")
    if deps:
        updates["dependencies"] = split_ids(deps)

    notes = prompt(f"Notes (current: {task.notes or 'none'}): ")
    if notes:
        updates["notes"] = notes

    return updates


# ========================================
# COMMANDS
# ========================================

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--prd", help="Path to PRD file (default: $PRD_PATH or ./plans/prd.json)")
    common.add_argument("-V", "--verbose", action="count", default=0, help="Log engine activity (-VV for debug)")

    parser = argparse.ArgumentParser(
        prog="task",
        description="Task CLI - Manage tasks for Wiggum",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  task init "My Project"             Create plans/prd.json
  task add                           Add a new task interactively
  task add "Write README" -p 2       Add a task without prompts
  task list                          Show recently completed and ready tasks
  task list --all                    Show all tasks
  task list --status pending         Show only pending tasks
  task update 3                      Update task #3 interactively
  task update 3 --status in_progress Update a single field
  task complete 5                    Mark task #5 as completed
  task delete 5                      Remove task #5
  task status                        Show task summary

Environment:
  Works in the current directory (like git)
  PRD_PATH overrides the default ./plans/prd.json (--prd overrides both)
  --prd works before or after the command (after wins)
        """
    )
    parser.add_argument("-v", "--version", action="version", version=f"task {__version__}")
    parser.add_argument("--prd", dest="global_prd", help="Path to PRD file, before the command")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # INIT command
    init_parser = subparsers.add_parser("init", parents=[common], help="Create an empty PRD")
    init_parser.add_argument("project", help="Project name")

    # ADD command
    add_parser = subparsers.add_parser("add", parents=[common], help="Add a new task")
    add_parser.add_argument("description", nargs="?", help="Task description (prompts when omitted)")
    add_parser.add_argument("-p", "--priority", type=int, help="Priority, lower runs first")
    add_parser.add_argument("-c", "--category", choices=CATEGORY_CHOICES, help="Category (default: inferred)")
    add_parser.add_argument("--deps", help="Comma-separated dependency task IDs")
    add_parser.add_argument("--notes", help="Free-text notes")

    # LIST command
    list_parser = subparsers.add_parser("list", parents=[common], help="List tasks")
    list_parser.add_argument("--all", action="store_true", help="Show all tasks")
    list_parser.add_argument("--status", choices=STATUS_CHOICES, help="Filter by status")
    list_parser.add_argument("--category", choices=CATEGORY_CHOICES, help="Filter by category")

    # UPDATE command
    update_parser = subparsers.add_parser("update", parents=[common], help="Update a task")
    update_parser.add_argument("task_id", help="Task ID")
    update_parser.add_argument("--feature", help="New description")
    update_parser.add_argument("-p", "--priority", type=int, help="New priority")
    update_parser.add_argument("-c", "--category", choices=CATEGORY_CHOICES, help="New category")
    update_parser.add_argument("-s", "--status", choices=STATUS_CHOICES, help="New status")
    update_parser.add_argument("--deps", help="Comma-separated dependency task IDs")
    update_parser.add_argument("--notes", help="New notes (empty string clears)")

    # COMPLETE command
    complete_parser = subparsers.add_parser("complete", parents=[common], help="Mark a task as complete")
    complete_parser.add_argument("task_id", help="Task ID to complete")

    # DELETE command
    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete a task")
    delete_parser.add_argument("task_id", help="Task ID to delete")

    # STATUS command
    status_parser = subparsers.add_parser("status", parents=[common], help="Show task summary")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def run_command(args, manager: TaskManager) -> int:
    if args.command == "init":
        manager.repository.init(args.project)
        print(f"✅ Created: {manager.repository.path}")
        print(f"   Project: {args.project}")

    elif args.command == "add":
        task = manager.add_task(**_collect_new_task(args))
        print(f"✅ Task {task.id} added successfully.")

    elif args.command == "list":
        if args.all or args.status or args.category:
            print(render_tasks(manager.list_tasks(args.status, args.category)))
        elif not manager.list_tasks():
            print("No tasks found.")
        else:
            print(render_overview(manager))

    elif args.command == "update":
        task = manager.get_task(args.task_id)
        if not task:
            print(f"❌ Task #{args.task_id} not found.", file=sys.stderr)
            return 1
        try:
            updates = TaskUpdate.model_validate(_collect_update(args, task))
        except ValidationError as e:
            print(f"❌ Invalid update: {e}", file=sys.stderr)
            return 1
        if not manager.update_task(args.task_id, updates):
            print(f"❌ Failed to update task #{args.task_id}.", file=sys.stderr)
            return 1
        print(f"✅ Task #{args.task_id} updated successfully.")

    elif args.command == "complete":
        result = manager.complete_task(args.task_id)
        if result == CompletionResult.NOT_FOUND:
            print(f"❌ Failed to complete task #{args.task_id}. Task not found.", file=sys.stderr)
            return 1
        if result == CompletionResult.DEPENDENCY_UNSATISFIED:
            blocked_by = manager.blocking_dependencies(args.task_id) or []
            print(
                f"❌ Failed to complete task #{args.task_id}. "
                f"Dependencies not satisfied: {', '.join('#' + d for d in blocked_by)}",
                file=sys.stderr
            )
            return 1
        print(f"✅ Task #{args.task_id} marked as completed.")

    elif args.command == "delete":
        dependents = manager.remove_task(args.task_id)
        if dependents is None:
            print(f"❌ Task #{args.task_id} not found.", file=sys.stderr)
            return 1
        print(f"🗑️ Task #{args.task_id} deleted.")
        if dependents:
            print(
                f"⚠️ Still depending on #{args.task_id} (now blocked): "
                f"{', '.join('#' + d for d in dependents)}"
            )

    elif args.command == "status":
        if args.json:
            summary = manager.get_status()
            print(json.dumps(summary.model_dump(mode="json", by_alias=True), indent=2))
        else:
            print(render_status(manager))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(level_for_verbosity(args.verbose))
    prd_path = resolve_prd_path(args.prd or args.global_prd)
    logger.debug(f"Using PRD at {prd_path}")
    manager = TaskManager(PrdRepository(prd_path))

    try:
        return run_command(args, manager)
    except PrdNotFoundError as e:
        print(f"❌ {e}", file=sys.stderr)
        print("   Create one with: task init <project>", file=sys.stderr)
    except PrdError as e:
        print(f"❌ {e}", file=sys.stderr)
    except UsageError as e:
        print(f"❌ {e}", file=sys.stderr)
    except EOFError:
        print("\n❌ Input aborted.", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
