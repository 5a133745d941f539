"""Оркестрация загрузки данных дашборда: сначала кэш, затем сеть."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import requests

from clickup_dashboard.clients import ClickUpAPIError, ClickUpClient
from clickup_dashboard.config import AppConfig
from clickup_dashboard.models import AIAnalysis, Comment, Project
from clickup_dashboard.services import state as transitions
from clickup_dashboard.services.aggregation import process_tasks_into_projects
from clickup_dashboard.services.enrichment import CommentEnricher, collect_recent_comments
from clickup_dashboard.services.mapper import ClickUpMapper
from clickup_dashboard.services.snapshot_store import SnapshotStore
from clickup_dashboard.services.state import DashboardState
from clickup_dashboard.services.visibility import (
    apply_visibility_rules,
    build_rules,
    filter_projects_for_space,
)

LOGGER = logging.getLogger(__name__)

Summarizer = Callable[[Sequence[Project], Sequence[Comment]], AIAnalysis]

DATA_ERRORS = (ClickUpAPIError, requests.RequestException, ValueError)


class DashboardService:
    """Оркестратор жизненного цикла данных дашборда.

    Два режима: общий (все пространства) и детальный (одно пространство
    с комментариями и AI-сводкой). Отмена запросов не поддерживается:
    если обновления пересекаются, побеждает то, что завершилось последним.
    """

    def __init__(
        self,
        config: AppConfig,
        client: ClickUpClient,
        store: SnapshotStore,
        summarizer: Optional[Summarizer] = None,
        enricher: Optional[CommentEnricher] = None,
        mapper: Optional[ClickUpMapper] = None,
        clock: Callable[[], float] = time.time,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._config = config
        self._client = client
        self._store = store
        self._summarizer = summarizer
        self._mapper = mapper or ClickUpMapper()
        self._enricher = enricher or CommentEnricher(
            client.fetch_task_comments,
            chunk_size=config.sync.comment_chunk_size,
            chunk_delay=config.sync.comment_chunk_delay,
            lookback_days=config.sync.comment_lookback_days,
            mapper=self._mapper,
            show_progress=config.sync.show_progress,
        )
        self._rules = build_rules(config.visibility)
        self._clock = clock
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="dashboard-refresh")
        self._lock = threading.Lock()
        self._state = DashboardState()

    # region state
    @property
    def state(self) -> DashboardState:
        return self._state

    def _apply(self, transition, *args, **kwargs) -> DashboardState:
        with self._lock:
            self._state = transition(self._state, *args, **kwargs)
            return self._state

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _moment(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    # endregion

    # region public API
    def start(self, *, background: bool = True) -> Optional[Future]:
        """Показывает кэш сразу и обновляет данные из сети.

        При наличии кэша сетевое обновление уходит в фон и возвращается ``Future``.
        Без кэша загрузка выполняется синхронно.
        """
        snapshot = self._store.load()
        if snapshot is not None:
            LOGGER.info("Загружен кэш: %s проектов", len(snapshot.projects))
            self._apply(transitions.cache_loaded, snapshot)
            if background:
                return self._executor.submit(self._initial_sync, True)
            self._initial_sync(True)
            return None
        self._apply(transitions.load_started)
        self._initial_sync(False)
        return None

    def refresh_home(self, *, background: bool = False) -> List[Project]:
        """Общий режим: все задачи команды без комментариев."""
        self._apply(transitions.load_started, background=background)
        try:
            projects = self._load_projects(space_id=None)
            projects = apply_visibility_rules(projects, self._state.spaces, self._rules)
        except DATA_ERRORS as exc:
            LOGGER.error("Не удалось загрузить общие данные: %s", exc)
            if background:
                self._apply(transitions.load_finished)
            else:
                self._apply(transitions.load_failed, str(exc) or "Failed to load global data")
            return list(self._state.projects)
        moment = self._moment()
        self._apply(transitions.tasks_loaded, projects, moment)
        self._store.save(self._state.spaces, projects, [], moment)
        self._apply(transitions.load_finished, moment)
        return projects

    def refresh_space(self, space_id: str, *, skip_ai: bool = False) -> List[Project]:
        """Детальный режим: задачи пространства, комментарии, лента и AI-сводка."""
        self._apply(transitions.load_started, reset_analysis=not skip_ai)
        try:
            projects = self._load_projects(space_id=space_id)
            space = next((s for s in self._state.spaces if s.id == space_id), None)
            projects = filter_projects_for_space(projects, space, self._rules)
            self._apply(transitions.tasks_loaded, projects)

            self._apply(transitions.comments_started)
            enriched = self._enricher.enrich(projects, now=self._now_ms())
            comments = collect_recent_comments(enriched)
            self._apply(transitions.comments_loaded, enriched, comments)
        except DATA_ERRORS as exc:
            LOGGER.error("Не удалось загрузить пространство %s: %s", space_id, exc)
            self._apply(transitions.load_failed, str(exc) or "An unknown error occurred")
            return list(self._state.projects)

        self._store.save(self._state.spaces, enriched, comments, self._moment())

        if not skip_ai and self._summarizer is not None:
            self._apply(transitions.analysis_started)
            analysis = self._summarizer(enriched, comments)
            self._apply(transitions.analysis_loaded, analysis)

        self._apply(transitions.load_finished, self._moment())
        return enriched

    def select_space(self, space_id: str, *, skip_ai: bool = False) -> List[Project]:
        self._apply(transitions.select_space, space_id)
        return self.refresh_space(space_id, skip_ai=skip_ai)

    def navigate_home(self) -> List[Project]:
        self._apply(transitions.navigate_home)
        return self.refresh_home()

    def open_project(self, project: Project) -> List[Project]:
        """Переход из общего режима к проекту в его пространстве (без AI-сводки)."""
        projects = self.select_space(project.space_id, skip_ai=True)
        self._apply(transitions.select_project, project.id)
        return projects

    def periodic_refresh(self) -> List[Project]:
        """Тихое обновление активного режима без AI-сводки."""
        current = self._state
        if current.view == transitions.SPACE and current.selected_space_id:
            LOGGER.info("Автообновление пространства %s", current.selected_space_id)
            return self.refresh_space(current.selected_space_id, skip_ai=True)
        LOGGER.info("Автообновление общих данных")
        return self.refresh_home(background=True)

    def manual_refresh(self) -> List[Project]:
        current = self._state
        if current.view == transitions.SPACE and current.selected_space_id:
            return self.refresh_space(current.selected_space_id, skip_ai=False)
        return self.refresh_home()

    def run_periodic(
        self,
        stop_event: threading.Event,
        interval: Optional[float] = None,
        on_refresh: Optional[Callable[[DashboardState], None]] = None,
    ) -> None:
        """Обновляет активный режим каждые ``interval`` секунд, пока не выставлен ``stop_event``."""
        interval = self._config.sync.refresh_interval if interval is None else interval
        while not stop_event.wait(interval):
            self.periodic_refresh()
            if on_refresh is not None:
                on_refresh(self._state)

    def set_filters(self, *, search_term: Optional[str] = None, status_filter: Optional[str] = None) -> DashboardState:
        return self._apply(transitions.set_filters, search_term=search_term, status_filter=status_filter)

    def load_spaces(self) -> bool:
        """Загружает пространства; ошибка попадает в баннер."""
        try:
            spaces = [self._mapper.map_space(item) for item in self._client.fetch_spaces()]
        except DATA_ERRORS as exc:
            LOGGER.error("Не удалось получить пространства: %s", exc)
            self._apply(transitions.load_failed, str(exc) or "Failed to initialize app")
            return False
        self._apply(transitions.spaces_loaded, spaces)
        return True

    # endregion

    # region helpers
    def _initial_sync(self, background: bool) -> None:
        if self.load_spaces():
            self.refresh_home(background=background)

    def _load_projects(self, space_id: Optional[str]) -> List[Project]:
        raw_tasks = self._client.fetch_team_tasks(space_id)
        tasks = self._mapper.map_tasks(raw_tasks)
        return process_tasks_into_projects(tasks, now=self._now_ms())

    # endregion


__all__ = ["DashboardService", "Summarizer"]
