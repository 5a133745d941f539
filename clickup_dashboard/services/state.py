"""Состояние дашборда и чистые функции переходов."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Tuple

from clickup_dashboard.models import AIAnalysis, Comment, Project, Snapshot, Space

HOME = "home"
SPACE = "space"
STATUS_FILTERS = ("all", "at_risk", "on_track")


@dataclass(frozen=True)
class DashboardState:
    view: str = HOME
    selected_space_id: Optional[str] = None
    spaces: Tuple[Space, ...] = field(default_factory=tuple)
    projects: Tuple[Project, ...] = field(default_factory=tuple)
    comments: Tuple[Comment, ...] = field(default_factory=tuple)
    loading: bool = False
    tasks_loading: bool = False
    comments_loading: bool = False
    ai_loading: bool = False
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    from_cache: bool = False
    analysis: Optional[AIAnalysis] = None
    selected_project_id: Optional[str] = None
    search_term: str = ""
    status_filter: str = "all"


def is_busy(state: DashboardState) -> bool:
    return state.loading or state.tasks_loading or state.comments_loading or state.ai_loading


def cache_loaded(state: DashboardState, snapshot: Snapshot) -> DashboardState:
    """Снимок из кэша отображается сразу, но помечается как устаревший."""
    return replace(
        state,
        spaces=tuple(snapshot.spaces),
        projects=tuple(snapshot.projects),
        comments=tuple(snapshot.comments),
        last_updated=snapshot.last_updated or state.last_updated,
        from_cache=True,
    )


def spaces_loaded(state: DashboardState, spaces) -> DashboardState:
    return replace(state, spaces=tuple(spaces))


def load_started(state: DashboardState, *, background: bool = False, reset_analysis: bool = False) -> DashboardState:
    return replace(
        state,
        loading=state.loading if background else True,
        tasks_loading=not background,
        error=None,
        analysis=None if reset_analysis else state.analysis,
    )


def tasks_loaded(state: DashboardState, projects, moment: Optional[datetime] = None) -> DashboardState:
    return replace(
        state,
        projects=tuple(projects),
        tasks_loading=False,
        from_cache=False,
        last_updated=moment or state.last_updated,
    )


def comments_started(state: DashboardState) -> DashboardState:
    return replace(state, comments_loading=True)


def comments_loaded(state: DashboardState, projects, comments) -> DashboardState:
    return replace(
        state,
        projects=tuple(projects),
        comments=tuple(comments),
        comments_loading=False,
    )


def analysis_started(state: DashboardState) -> DashboardState:
    return replace(state, ai_loading=True)


def analysis_loaded(state: DashboardState, analysis: AIAnalysis) -> DashboardState:
    return replace(state, analysis=analysis, ai_loading=False)


def load_finished(state: DashboardState, moment: Optional[datetime] = None) -> DashboardState:
    return replace(
        state,
        loading=False,
        tasks_loading=False,
        comments_loading=False,
        ai_loading=False,
        last_updated=moment or state.last_updated,
    )


def load_failed(state: DashboardState, message: str) -> DashboardState:
    """Ошибка показывается баннером; ранее загруженные данные остаются."""
    return replace(
        state,
        error=message,
        loading=False,
        tasks_loading=False,
        comments_loading=False,
        ai_loading=False,
    )


def select_space(state: DashboardState, space_id: str) -> DashboardState:
    return replace(state, view=SPACE, selected_space_id=space_id, selected_project_id=None)


def navigate_home(state: DashboardState) -> DashboardState:
    return replace(state, view=HOME, selected_space_id=None, selected_project_id=None)


def select_project(state: DashboardState, project_id: str) -> DashboardState:
    return replace(state, selected_project_id=project_id)


def close_project(state: DashboardState) -> DashboardState:
    return replace(state, selected_project_id=None)


def set_filters(
    state: DashboardState,
    *,
    search_term: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> DashboardState:
    if status_filter is not None and status_filter not in STATUS_FILTERS:
        raise ValueError(f"Неизвестный фильтр статуса: {status_filter}")
    return replace(
        state,
        search_term=state.search_term if search_term is None else search_term,
        status_filter=state.status_filter if status_filter is None else status_filter,
    )


def selected_project(state: DashboardState) -> Optional[Project]:
    if state.selected_project_id is None:
        return None
    return next((p for p in state.projects if p.id == state.selected_project_id), None)


__all__ = [
    "DashboardState",
    "HOME",
    "SPACE",
    "STATUS_FILTERS",
    "analysis_loaded",
    "analysis_started",
    "cache_loaded",
    "close_project",
    "comments_loaded",
    "comments_started",
    "is_busy",
    "load_failed",
    "load_finished",
    "load_started",
    "navigate_home",
    "select_project",
    "select_space",
    "selected_project",
    "set_filters",
    "spaces_loaded",
    "tasks_loaded",
]
