"""Search, filter and summary stats over a user's task list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from taskmaster.domain.models import Task

StatusFilter = Literal["all", "pending", "completed"]


@dataclass(frozen=True)
class TaskFilter:
    """List filter; "all" (or an empty search) means no constraint."""

    search: str = ""
    priority: str = "all"
    category: str = "all"
    status: StatusFilter = "all"

    def matches(self, task: Task) -> bool:
        term = self.search.strip().lower()
        if term:
            in_title = term in task.title.lower()
            in_description = bool(task.description) and term in task.description.lower()
            if not (in_title or in_description):
                return False
        if self.priority != "all" and task.priority.value != self.priority:
            return False
        if self.category != "all" and task.category.value != self.category:
            return False
        if self.status == "completed" and not task.completed:
            return False
        if self.status == "pending" and task.completed:
            return False
        return True


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    high_priority: int
    progress: int  # percent, rounded


def filter_tasks(tasks: Iterable[Task], task_filter: TaskFilter) -> list[Task]:
    return [t for t in tasks if task_filter.matches(t)]


def task_stats(tasks: Iterable[Task]) -> TaskStats:
    tasks = list(tasks)
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    high_priority = sum(1 for t in tasks if t.priority.value == "high" and not t.completed)
    progress = round(completed / total * 100) if total else 0
    return TaskStats(
        total=total,
        completed=completed,
        pending=total - completed,
        high_priority=high_priority,
        progress=progress,
    )
