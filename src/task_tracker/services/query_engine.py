"""Read-only views over a task collection: filters, search, and aggregates.

Nothing here mutates its input. ``now`` is naive local time. A task with no
due time counts as due at 23:59 on its due date wherever overdue is checked.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict, List, Optional, Sequence

from task_tracker.domain.task_models import Task, TaskFilter, TaskInsights, TaskPriority, TaskStats, TaskView

END_OF_DAY = time(23, 59)


def due_at(task: Task) -> datetime:
    due_time = time.fromisoformat(task.due_time) if task.due_time else END_OF_DAY
    return datetime.combine(date.fromisoformat(task.due_date), due_time)


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now()
    return not task.completed and due_at(task) < now


def is_today(task: Task, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now()
    return task.due_date == now.date().isoformat()


def filter_tasks(tasks: Sequence[Task], name: str, now: Optional[datetime] = None) -> List[Task]:
    """Apply a named filter. Unknown names fall back to ``all``."""
    now = now or datetime.now()
    try:
        kind = TaskFilter(name)
    except ValueError:
        kind = TaskFilter.all

    if kind is TaskFilter.pending:
        return [t for t in tasks if not t.completed]
    if kind is TaskFilter.completed:
        return [t for t in tasks if t.completed]
    if kind is TaskFilter.today:
        return [t for t in tasks if is_today(t, now)]
    if kind is TaskFilter.overdue:
        return [t for t in tasks if is_overdue(t, now)]
    if kind is TaskFilter.high:
        return [t for t in tasks if t.priority == TaskPriority.high]
    # incomplete first, then earliest due date; sorted() is stable
    return sorted(tasks, key=lambda t: (t.completed, t.due_date))


def search(tasks: Sequence[Task], term: Optional[str]) -> List[Task]:
    if not term or not term.strip():
        return list(tasks)
    needle = term.lower()
    return [t for t in tasks if needle in t.title.lower() or needle in t.description.lower()]


def compute_stats(tasks: Sequence[Task]) -> TaskStats:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    return TaskStats(total=total, completed=completed, pending=total - completed)


def compute_insights(tasks: Sequence[Task], now: Optional[datetime] = None) -> TaskInsights:
    now = now or datetime.now()
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    # round half up, as a percentage display would
    rate = int(completed * 100 / total + 0.5) if total else 0

    breakdown: Dict[str, int] = {}
    for t in tasks:
        breakdown[t.category] = breakdown.get(t.category, 0) + 1
    # max() keeps the first of equal counts
    most_used = max(breakdown, key=breakdown.__getitem__) if breakdown else "None"

    return TaskInsights(
        total=total,
        completed=completed,
        completion_rate=rate,
        overdue_count=sum(1 for t in tasks if is_overdue(t, now)),
        category_breakdown=breakdown,
        most_used_category=most_used,
    )


def annotate(task: Task, now: Optional[datetime] = None) -> TaskView:
    now = now or datetime.now()
    return TaskView(**task.model_dump(), is_overdue=is_overdue(task, now), is_today=is_today(task, now))
