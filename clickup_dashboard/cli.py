"""CLI-интерфейс дашборда."""
from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import typer

from clickup_dashboard.clients import ClickUpClient, GeminiClient
from clickup_dashboard.config import AppConfig
from clickup_dashboard.models import Comment, Project
from clickup_dashboard.services.dashboard import DashboardService
from clickup_dashboard.services.mapper import ClickUpMapper
from clickup_dashboard.services.overview import (
    TASK_FILTERS,
    filter_projects,
    filter_tasks,
    format_time_ago,
    overdue_leaderboard,
    space_overviews,
    summarize,
    weekly_comments,
)
from clickup_dashboard.services.snapshot_store import SnapshotStore
from clickup_dashboard.services.state import DashboardState
from clickup_dashboard.services.summary import DashboardSummarizer

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(help="Дашборд состояния проектов ClickUp")


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def format_table(title: str, rows: Iterable[Tuple[str, ...]], headers: Sequence[str]) -> str:
    rows = [tuple(str(cell) for cell in row) for row in rows]
    if not rows:
        return f"{title}: нет данных"
    widths = [max(len(headers[i]), *(len(row[i]) for row in rows)) for i in range(len(headers))]
    header = "  |  ".join(h.ljust(w) for h, w in zip(headers, widths))
    separator = "--+-".join("-" * w for w in widths)
    body = "\n".join("  " + "  |  ".join(cell.ljust(w) for cell, w in zip(row, widths)) for row in rows)
    return f"{title}:\n  {header}\n  {separator}\n{body}"


def build_service(config_path: Path) -> tuple[DashboardService, SnapshotStore]:
    config = AppConfig.load(config_path)
    config.ensure_runtime_dirs()
    store = SnapshotStore(config.cache_db)
    client = ClickUpClient(config.clickup, config.sync)
    summarizer = None
    if config.gemini.enabled:
        summarizer = DashboardSummarizer(GeminiClient(config.gemini), comment_limit=config.gemini.comment_limit)
    service = DashboardService(config, client, store, summarizer=summarizer)
    return service, store


def render_projects(projects: Sequence[Project], now: int) -> str:
    rows = [
        (
            p.name,
            p.risk_level.value,
            p.stats.open_tasks,
            p.stats.overdue_tasks,
            p.stats.due_next_7_days,
            f"{p.stats.percent_complete}%",
            format_time_ago(p.latest_comment.date, now) if p.latest_comment else "",
        )
        for p in projects
    ]
    return format_table("Проекты", rows, ("Project", "Risk", "Open", "Overdue", "Due 7d", "Done", "Last comment"))


def render_feed(comments: Sequence[Comment], now: int, limit: int = 20) -> str:
    rows = [
        (format_time_ago(c.date, now), c.user.username, c.task_name or "", c.comment_text[:80])
        for c in comments[:limit]
    ]
    return format_table("Последние комментарии", rows, ("When", "Author", "Task", "Comment"))


def render_tasks(projects: Sequence[Project], mode: str, now: int) -> str:
    rows = [
        (p.name, t.name, t.status.status, format_time_ago(t.date_updated, now))
        for p in projects
        for t in filter_tasks(p.tasks, mode, now)
    ]
    return format_table(f"Задачи ({mode})", rows, ("Project", "Task", "Status", "Updated"))


def render_weekly(projects: Sequence[Project]) -> str:
    rows = [(p.name, len(weekly_comments(p))) for p in projects]
    rows = [row for row in rows if row[1]]
    return format_table("Комментарии за неделю", rows, ("Project", "Comments"))


def render_home(state: DashboardState) -> str:
    overall = summarize(state.projects)
    lines: List[str] = [
        f"Задач: {overall.total_tasks}, выполнено: {overall.completion_rate}%, "
        f"просрочено: {overall.overdue_tasks}, проектов с высоким риском: {overall.high_risk_count}",
    ]
    rows = [
        (item.space.name, item.stats.total_tasks, f"{item.stats.completion_rate}%", item.stats.overdue_tasks)
        for item in space_overviews(state.projects, state.spaces)
    ]
    lines.append(format_table("Пространства", rows, ("Space", "Tasks", "Done", "Overdue")))
    leaders = [(p.name, p.stats.overdue_tasks) for p in overdue_leaderboard(state.projects)]
    lines.append(format_table("Просроченные задачи", leaders, ("Project", "Overdue")))
    return "\n\n".join(lines)


def render_state(state: DashboardState, now: int) -> str:
    parts: List[str] = []
    if state.error:
        parts.append(f"ОШИБКА: {state.error}")
    if state.from_cache:
        stamp = state.last_updated.isoformat() if state.last_updated else "неизвестно"
        parts.append(f"(данные из кэша от {stamp})")
    if state.view == "home":
        parts.append(render_home(state))
    visible = filter_projects(state.projects, state.search_term, state.status_filter)
    parts.append(render_projects(visible, now))
    if state.comments:
        parts.append(render_feed(state.comments, now))
    return "\n\n".join(parts)


@app.command("dashboard")
def dashboard(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Путь к YAML конфигурации"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True, help="Уровень логирования"),
    watch: bool = typer.Option(False, "--watch", help="Обновлять данные периодически до прерывания"),
) -> None:
    """Общий обзор всех пространств: сначала кэш, затем обновление из сети."""
    configure_logging(verbosity)
    service, store = build_service(config_path)
    try:
        pending = service.start(background=True)
        if pending is not None:
            typer.echo(render_state(service.state, _now_ms()))
            pending.result()
        typer.echo(render_state(service.state, _now_ms()))
        if watch:
            stop = threading.Event()
            try:
                service.run_periodic(stop, on_refresh=lambda state: typer.echo(render_state(state, _now_ms())))
            except KeyboardInterrupt:
                stop.set()
    finally:
        service.close()
        store.close()


@app.command("space")
def space(
    space_id: str = typer.Argument(..., help="Идентификатор пространства ClickUp"),
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
    skip_ai: bool = typer.Option(False, "--skip-ai", help="Не формировать AI-сводку"),
    search: str = typer.Option("", "--search", help="Фильтр по имени проекта"),
    status: str = typer.Option("all", "--status", help="all, at_risk или on_track"),
    tasks: Optional[str] = typer.Option(None, "--tasks", help="Показать задачи: all, open или overdue"),
) -> None:
    """Детальный режим пространства с комментариями и AI-сводкой."""
    if tasks is not None and tasks not in TASK_FILTERS:
        raise typer.BadParameter(f"ожидается одно из: {', '.join(TASK_FILTERS)}", param_hint="--tasks")
    configure_logging(verbosity)
    service, store = build_service(config_path)
    try:
        service.load_spaces()
        service.set_filters(search_term=search, status_filter=status)
        service.select_space(space_id, skip_ai=skip_ai)
        state = service.state
        now = _now_ms()
        visible = filter_projects(state.projects, state.search_term, state.status_filter)
        typer.echo(render_state(state, now))
        typer.echo(render_weekly(visible))
        if tasks is not None:
            typer.echo(render_tasks(visible, tasks, now))
        if state.analysis is not None:
            typer.echo(json.dumps(ClickUpMapper.dump_analysis(state.analysis), indent=2, ensure_ascii=False))
    finally:
        service.close()
        store.close()


@app.command("spaces")
def spaces(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Выводит список пространств команды."""
    configure_logging(verbosity)
    config = AppConfig.load(config_path)
    client = ClickUpClient(config.clickup, config.sync)
    mapper = ClickUpMapper()
    rows = [(item.id, item.name) for item in map(mapper.map_space, client.fetch_spaces())]
    typer.echo(format_table("ClickUp spaces", rows, ("ID", "Name")))


@app.command("cache")
def cache(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    clear: bool = typer.Option(False, "--clear", help="Очистить кэш"),
) -> None:
    """Показывает сохранённый снимок без обращения к сети."""
    config = AppConfig.load(config_path)
    store = SnapshotStore(config.cache_db)
    try:
        if clear:
            store.clear()
            typer.echo("Кэш очищен")
            return
        snapshot = store.load()
        if snapshot is None:
            typer.echo("Кэш пуст")
            return
        state = DashboardState(
            spaces=tuple(snapshot.spaces),
            projects=tuple(snapshot.projects),
            comments=tuple(snapshot.comments),
            last_updated=snapshot.last_updated,
            from_cache=True,
        )
        typer.echo(render_state(state, _now_ms()))
    finally:
        store.close()


@app.command("verify")
def verify(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Проверяет соединение с ClickUp API и базовую конфигурацию."""
    configure_logging(verbosity)
    config = AppConfig.load(config_path)
    client = ClickUpClient(config.clickup, config.sync)
    count = client.verify()
    typer.echo(f"Соединение успешно, пространств: {count}")


if __name__ == "__main__":
    app()
