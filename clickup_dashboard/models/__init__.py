"""Доменные модели дашборда."""

from .entities import (
    AIAnalysis,
    Comment,
    Folder,
    Member,
    Project,
    ProjectStats,
    RiskLevel,
    Snapshot,
    Space,
    Status,
    Task,
    TaskList,
    parse_timestamp,
)

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
