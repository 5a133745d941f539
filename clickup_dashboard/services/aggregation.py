"""Группировка задач в проекты и расчёт показателей."""
from __future__ import annotations

import math
import time
from typing import Dict, Iterable, List, Optional

from clickup_dashboard.models import Project, ProjectStats, RiskLevel, Task, parse_timestamp

DAY_MS = 24 * 60 * 60 * 1000
DUE_SOON_DAYS = 7
NO_FOLDER = "No Folder"
CLOSED_STATUS_NAMES = {"complete", "closed"}


def now_ms() -> int:
    return int(time.time() * 1000)


def is_task_closed(task: Task) -> bool:
    """Задача закрыта по типу статуса или по имени статуса (complete/closed)."""
    if task.status.type == "closed":
        return True
    return (task.status.status or "").lower() in CLOSED_STATUS_NAMES


def percent_complete(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def classify_risk(stats: ProjectStats) -> RiskLevel:
    if stats.overdue_tasks > 0:
        return RiskLevel.HIGH
    if stats.due_next_7_days > 0 and stats.percent_complete < 50:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _new_project(task: Task) -> Project:
    if task.folder is not None:
        project_id = task.folder.id
        name = task.folder.name
        folder_name = task.folder.name
    else:
        project_id = task.task_list.id
        name = f"{task.task_list.name} (List)"
        folder_name = NO_FOLDER
    return Project(
        id=project_id,
        name=name,
        folder_name=folder_name,
        space_id=task.space_id or "Unknown Space",
    )


def _count_task(stats: ProjectStats, task: Task, now: int, due_soon_limit: int) -> None:
    stats.total_tasks += 1
    if is_task_closed(task):
        stats.completed_tasks += 1
        return
    stats.open_tasks += 1
    due = parse_timestamp(task.due_date)
    if due is None:
        return
    if due < now:
        stats.overdue_tasks += 1
    elif due <= due_soon_limit:
        stats.due_next_7_days += 1


def sort_projects(projects: Iterable[Project]) -> List[Project]:
    """Сначала высокий риск, затем больше открытых задач."""
    return sorted(projects, key=lambda p: (-p.risk_level.rank, -p.stats.open_tasks))


def process_tasks_into_projects(tasks: Iterable[Task], now: Optional[int] = None) -> List[Project]:
    """Группирует задачи по папкам (или спискам без папки) и считает статистику.

    ``now`` в миллисекундах фиксируется один раз на весь проход.
    Задачи без списка пропускаются.
    """
    if now is None:
        now = now_ms()
    due_soon_limit = now + DUE_SOON_DAYS * DAY_MS
    projects: Dict[str, Project] = {}

    for task in tasks or []:
        if task is None or task.task_list is None:
            continue
        group_id = task.folder.id if task.folder is not None else task.task_list.id
        project = projects.get(group_id)
        if project is None:
            project = projects[group_id] = _new_project(task)
        project.tasks.append(task)
        _count_task(project.stats, task, now, due_soon_limit)

    for project in projects.values():
        stats = project.stats
        stats.percent_complete = percent_complete(stats.completed_tasks, stats.total_tasks)
        project.risk_level = classify_risk(stats)

    return sort_projects(projects.values())


__all__ = [
    "classify_risk",
    "is_task_closed",
    "now_ms",
    "percent_complete",
    "process_tasks_into_projects",
    "sort_projects",
]
