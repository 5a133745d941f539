"""Сводные показатели и фильтры для представлений дашборда."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from clickup_dashboard.models import Comment, Project, RiskLevel, Space, Task, parse_timestamp
from clickup_dashboard.services.aggregation import is_task_closed, percent_complete

TASK_FILTERS = ("all", "open", "overdue")
TIME_UNITS = ((31536000, "y"), (2592000, "mo"), (86400, "d"), (3600, "h"), (60, "m"))


@dataclass
class OverviewStats:
    total_tasks: int = 0
    overdue_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: int = 0
    high_risk_count: int = 0


@dataclass
class SpaceOverview:
    space: Space
    stats: OverviewStats
    projects: List[Project] = field(default_factory=list)


def summarize(projects: Iterable[Project]) -> OverviewStats:
    projects = list(projects)
    total = sum(p.stats.total_tasks for p in projects)
    completed = sum(p.stats.completed_tasks for p in projects)
    return OverviewStats(
        total_tasks=total,
        overdue_tasks=sum(p.stats.overdue_tasks for p in projects),
        completed_tasks=completed,
        completion_rate=percent_complete(completed, total),
        high_risk_count=sum(1 for p in projects if p.risk_level is RiskLevel.HIGH),
    )


def space_overviews(projects: Sequence[Project], spaces: Iterable[Space]) -> List[SpaceOverview]:
    """Показатели по каждому пространству; папки с отчётами уходят в конец списка."""
    result = []
    for space in spaces:
        own = [p for p in projects if p.space_id == space.id]
        ordered = sorted(own, key=lambda p: "report" in p.name.lower())
        result.append(SpaceOverview(space=space, stats=summarize(own), projects=ordered))
    return result


def overdue_leaderboard(projects: Iterable[Project]) -> List[Project]:
    overdue = [p for p in projects if p.stats.overdue_tasks > 0]
    return sorted(overdue, key=lambda p: p.stats.overdue_tasks, reverse=True)


def filter_projects(projects: Iterable[Project], search_term: str = "", status_filter: str = "all") -> List[Project]:
    term = search_term.lower()
    result = []
    for project in projects:
        if term not in project.name.lower():
            continue
        if status_filter == "at_risk" and project.risk_level is RiskLevel.LOW:
            continue
        if status_filter == "on_track" and project.risk_level is not RiskLevel.LOW:
            continue
        result.append(project)
    return result


def is_task_overdue(task: Task, now: int) -> bool:
    due = parse_timestamp(task.due_date)
    return due is not None and due < now and not is_task_closed(task)


def filter_tasks(tasks: Iterable[Task], mode: str, now: int) -> List[Task]:
    if mode not in TASK_FILTERS:
        raise ValueError(f"Неизвестный фильтр задач: {mode}")
    if mode == "open":
        return [t for t in tasks if not is_task_closed(t)]
    if mode == "overdue":
        return [t for t in tasks if is_task_overdue(t, now)]
    return list(tasks)


def start_of_week(moment: datetime) -> datetime:
    """Понедельник 00:00 той же недели."""
    monday = moment - timedelta(days=moment.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def weekly_comments(project: Project, moment: Optional[datetime] = None) -> List[Comment]:
    moment = moment or datetime.now()
    since = int(start_of_week(moment).timestamp() * 1000)
    return [c for c in project.recent_comments if c.timestamp is not None and c.timestamp >= since]


def format_time_ago(timestamp: object, now: int) -> str:
    stamp = parse_timestamp(timestamp)
    if stamp is None:
        return ""
    seconds = max(0, (now - stamp) // 1000)
    for size, suffix in TIME_UNITS:
        if seconds > size:
            return f"{seconds // size}{suffix} ago"
    return "Just now"


__all__ = [
    "TASK_FILTERS",
    "OverviewStats",
    "SpaceOverview",
    "filter_projects",
    "filter_tasks",
    "format_time_ago",
    "is_task_overdue",
    "overdue_leaderboard",
    "space_overviews",
    "start_of_week",
    "summarize",
    "weekly_comments",
]
