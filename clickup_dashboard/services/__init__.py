"""Сервисный слой приложения."""

from .aggregation import classify_risk, is_task_closed, process_tasks_into_projects
from .enrichment import CommentEnricher, collect_recent_comments, run_in_chunks
from .mapper import ClickUpMapper
from .snapshot_store import SnapshotStore
from .state import DashboardState
from .summary import DashboardSummarizer, is_quota_error
from .visibility import VisibilityRule, apply_visibility_rules, filter_projects_for_space
from .dashboard import DashboardService

__all__ = [
    "ClickUpMapper",
    "CommentEnricher",
    "DashboardService",
    "DashboardState",
    "DashboardSummarizer",
    "SnapshotStore",
    "VisibilityRule",
    "apply_visibility_rules",
    "classify_risk",
    "collect_recent_comments",
    "filter_projects_for_space",
    "is_quota_error",
    "is_task_closed",
    "process_tasks_into_projects",
    "run_in_chunks",
]
