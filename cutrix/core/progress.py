from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from cutrix.domain import Task


@dataclass(slots=True)
class PlanProgress:
    total_planned: int
    total_completed: int
    percent: float


def plan_progress(tasks: Iterable[Task]) -> PlanProgress:
    """Completed layers over planned layers across every task of a plan."""

    items = list(tasks)
    planned = sum(task.planned_layers for task in items)
    completed = sum(task.completed_layers for task in items)
    percent = completed * 100 / planned if planned > 0 else 0.0
    return PlanProgress(total_planned=planned, total_completed=completed, percent=percent)


def layout_progress(tasks: Iterable[Task]) -> float:
    """Mean of the per-task completion percentages."""

    items = list(tasks)
    if not items:
        return 0.0
    total = sum(task.completed_layers * 100 / task.planned_layers if task.planned_layers > 0 else 0.0 for task in items)
    return total / len(items)
