"""Small helpers shared by the drivers: category inference and prompting."""

from typing import List, Optional, Tuple

from .schema import TaskCategory

# Checked in order; the first group with a matching keyword wins.
CATEGORY_KEYWORDS: Tuple[Tuple[TaskCategory, Tuple[str, ...]], ...] = (
    (TaskCategory.INFRASTRUCTURE, ("setup", "set up", "initialize", "configure", "install", "create config")),
    (TaskCategory.BUGFIX, ("test", "fix", "bug")),
    (TaskCategory.REFACTOR, ("refactor", "clean", "optimize")),
    (TaskCategory.DOCS, ("documentation", "readme", "agents.md")),
)


def infer_category(description: str) -> TaskCategory:
    """Guess a category from free text. Used as a prompt default only."""
    lower = description.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return TaskCategory.FEATURE


def prompt(question: str, default: Optional[str] = None) -> str:
    """Ask on stdin; a blank answer returns ``default`` (or "")."""
    answer = input(question).strip()
    if not answer and default is not None:
        return default
    return answer


def split_ids(text: str) -> List[str]:
    """Parse a comma-separated list of task IDs, dropping blanks."""
    return [part.strip() for part in text.split(",") if part.strip()]
