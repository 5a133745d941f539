"""Определения доменных сущностей дашборда."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


def parse_timestamp(value: object) -> Optional[int]:
    """Разбирает метку времени ClickUp (миллисекунды строкой).

    Пустое или некорректное значение считается отсутствующим.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class RiskLevel(str, Enum):
    """Уровень риска проекта."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return {"High": 3, "Medium": 2, "Low": 1}[self.value]


@dataclass(slots=True)
class Status:
    """Статус задачи."""

    status: str
    type: str
    color: str = ""
    orderindex: int = 0


@dataclass(slots=True)
class TaskList:
    id: str
    name: str
    access: bool = True


@dataclass(slots=True)
class Folder:
    id: str
    name: str
    hidden: bool = False


@dataclass(slots=True)
class Space:
    """Пространство ClickUp."""

    id: str
    name: str
    private: bool = False
    statuses: List[Status] = field(default_factory=list)
    multiple_assignees: bool = False


@dataclass(slots=True)
class Member:
    """Пользователь ClickUp (автор комментария или исполнитель)."""

    id: Optional[int]
    username: str
    color: str = ""
    profile_picture: Optional[str] = None


@dataclass(slots=True)
class Comment:
    """Комментарий к задаче."""

    id: str
    comment: List[Dict[str, Any]]
    comment_text: str
    user: Member
    resolved: bool
    date: str
    task_id: Optional[str] = None
    task_name: Optional[str] = None

    @property
    def timestamp(self) -> Optional[int]:
        return parse_timestamp(self.date)


@dataclass(slots=True)
class Task:
    """Задача ClickUp."""

    id: str
    name: str
    status: Status
    date_created: Optional[str] = None
    date_updated: Optional[str] = None
    date_closed: Optional[str] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    task_list: Optional[TaskList] = None
    folder: Optional[Folder] = None
    space_id: Optional[str] = None
    orderindex: Optional[str] = None
    url: str = ""
    assignees: List[Member] = field(default_factory=list)
    comments: Optional[List[Comment]] = None


@dataclass(slots=True)
class ProjectStats:
    total_tasks: int = 0
    open_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    due_next_7_days: int = 0
    percent_complete: int = 0


@dataclass(slots=True)
class Project:
    """Проект: папка ClickUp или отдельный список без папки."""

    id: str
    name: str
    folder_name: Optional[str]
    space_id: str
    tasks: List[Task] = field(default_factory=list)
    stats: ProjectStats = field(default_factory=ProjectStats)
    risk_level: RiskLevel = RiskLevel.LOW
    recent_comments: List[Comment] = field(default_factory=list)
    latest_comment: Optional[Comment] = None


@dataclass(slots=True)
class AIAnalysis:
    """Результат AI-анализа для дашборда."""

    summary: str
    top_risks: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    email_draft: str = ""


@dataclass(slots=True)
class Snapshot:
    """Сохранённое состояние дашборда."""

    spaces: List[Space]
    projects: List[Project]
    comments: List[Comment] = field(default_factory=list)
    last_updated: Optional[datetime] = None


__all__ = [
    "AIAnalysis",
    "Comment",
    "Folder",
    "Member",
    "Project",
    "ProjectStats",
    "RiskLevel",
    "Snapshot",
    "Space",
    "Status",
    "Task",
    "TaskList",
    "parse_timestamp",
]
