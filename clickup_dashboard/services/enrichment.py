"""Догрузка комментариев к недавно обновлённым задачам."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from tqdm import tqdm

from clickup_dashboard.models import Comment, Project, parse_timestamp
from clickup_dashboard.services.aggregation import DAY_MS, now_ms
from clickup_dashboard.services.mapper import ClickUpMapper

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class CommentCandidate:
    task_id: str
    task_name: str
    project_index: int


@dataclass
class CommentResult:
    candidate: CommentCandidate
    comments: List[Dict]


def run_in_chunks(
    items: Sequence[T],
    worker: Callable[[T], R],
    *,
    chunk_size: int,
    delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
    show_progress: bool = False,
    desc: str = "Пачки",
) -> List[R]:
    """Обрабатывает элементы пачками по ``chunk_size`` параллельно.

    Следующая пачка стартует только после завершения всех задач текущей,
    между пачками выдерживается пауза ``delay``. Порядок результатов
    совпадает с порядком ``items``.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size должно быть не меньше 1")
    results: List[R] = []
    starts = range(0, len(items), chunk_size)
    with ThreadPoolExecutor(max_workers=chunk_size) as pool:
        for start in tqdm(starts, desc=desc, disable=not show_progress):
            chunk = items[start : start + chunk_size]
            futures = [pool.submit(worker, item) for item in chunk]
            results.extend(future.result() for future in futures)
            if delay and start + chunk_size < len(items):
                sleep(delay)
    return results


def collect_recent_comments(projects: Iterable[Project]) -> List[Comment]:
    """Общая лента комментариев всех проектов, новые сверху."""
    comments = [comment for project in projects for comment in project.recent_comments]
    return sort_comments(comments)


def sort_comments(comments: Iterable[Comment]) -> List[Comment]:
    return sorted(comments, key=lambda c: c.timestamp if c.timestamp is not None else -1, reverse=True)


class CommentEnricher:
    """Выбирает задачи, обновлённые за последние дни, и подтягивает их комментарии."""

    def __init__(
        self,
        fetch_comments: Callable[[str], List[Dict]],
        *,
        chunk_size: int = 6,
        chunk_delay: float = 0.05,
        lookback_days: int = 30,
        mapper: Optional[ClickUpMapper] = None,
        sleep: Callable[[float], None] = time.sleep,
        show_progress: bool = False,
    ) -> None:
        self._fetch_comments = fetch_comments
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._lookback_days = lookback_days
        self._mapper = mapper or ClickUpMapper()
        self._sleep = sleep
        self._show_progress = show_progress

    def select_candidates(self, projects: Sequence[Project], now: int) -> List[CommentCandidate]:
        threshold = now - self._lookback_days * DAY_MS
        candidates: List[CommentCandidate] = []
        for index, project in enumerate(projects):
            for task in project.tasks:
                updated = parse_timestamp(task.date_updated)
                if updated is not None and updated > threshold:
                    candidates.append(CommentCandidate(task.id, task.name, index))
        return candidates

    def _fetch(self, candidate: CommentCandidate) -> CommentResult:
        return CommentResult(candidate, self._fetch_comments(candidate.task_id))

    def enrich(self, projects: Sequence[Project], now: Optional[int] = None) -> List[Project]:
        """Возвращает копии проектов с комментариями; входные объекты не меняются."""
        if now is None:
            now = now_ms()
        candidates = self.select_candidates(projects, now)
        LOGGER.info("Запрос комментариев для %s задач", len(candidates))
        results = run_in_chunks(
            candidates,
            self._fetch,
            chunk_size=self._chunk_size,
            delay=self._chunk_delay,
            sleep=self._sleep,
            show_progress=self._show_progress,
            desc="Комментарии",
        )

        enriched = [
            replace(
                project,
                tasks=[replace(task, comments=[]) for task in project.tasks],
                stats=replace(project.stats),
                recent_comments=[],
                latest_comment=None,
            )
            for project in projects
        ]

        for result in results:
            if not result.comments:
                continue
            candidate = result.candidate
            project = enriched[candidate.project_index]
            task = next((t for t in project.tasks if t.id == candidate.task_id), None)
            if task is None:
                continue
            stamped = [
                replace(self._mapper.map_comment(item), task_id=candidate.task_id, task_name=candidate.task_name)
                for item in result.comments
                if isinstance(item, dict)
            ]
            task.comments = stamped
            project.recent_comments.extend(stamped)

        for project in enriched:
            project.recent_comments = sort_comments(project.recent_comments)
            project.latest_comment = project.recent_comments[0] if project.recent_comments else None
        return enriched


__all__ = [
    "CommentEnricher",
    "collect_recent_comments",
    "run_in_chunks",
    "sort_comments",
]
