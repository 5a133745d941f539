from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any

import pytest
import requests

from clickup_dashboard.clients import ClickUpAPIError
from clickup_dashboard.models import AIAnalysis
from clickup_dashboard.services import state as st
from clickup_dashboard.services.dashboard import DashboardService
from clickup_dashboard.services.snapshot_store import SnapshotStore

from conftest import DAY, NOW, comment_payload, task_payload

SPACES = [{"id": "S1", "name": "Operations"}, {"id": "S2", "name": "TS Sales Inc."}]
ANALYSIS = AIAnalysis(summary="fine", top_risks=["late"], actions=["ping"], email_draft="Hi")


class FakeClient:
    def __init__(self, tasks=None, comments=None):
        self.tasks = tasks if tasks is not None else []
        self.comments = comments or {}
        self.task_calls: list[Any] = []
        self.fail_with: Exception | None = None
        self.spaces_error: Exception | None = None

    def fetch_spaces(self):
        if self.spaces_error is not None:
            raise self.spaces_error
        return SPACES

    def fetch_team_tasks(self, space_id=None):
        self.task_calls.append(space_id)
        if self.fail_with is not None:
            raise self.fail_with
        return [t for t in self.tasks if space_id is None or t["space"]["id"] == space_id]

    def fetch_task_comments(self, task_id):
        return self.comments.get(task_id, [])


class FakeSummarizer:
    def __init__(self):
        self.calls: list[tuple[list, list]] = []

    def __call__(self, projects, comments):
        self.calls.append((list(projects), list(comments)))
        return ANALYSIS


class DeferredExecutor:
    """Откладывает фоновую задачу до явного вызова ``run_pending``."""

    def __init__(self):
        self.pending: list[tuple[Future, Any, tuple]] = []

    def submit(self, fn, *args):
        future: Future = Future()
        self.pending.append((future, fn, args))
        return future

    def run_pending(self):
        for future, fn, args in self.pending:
            future.set_result(fn(*args))
        self.pending = []

    def shutdown(self, wait=True):
        self.run_pending()


TASKS = [
    task_payload("t1", updated=NOW - DAY),
    task_payload("t2", due=NOW - DAY),
    task_payload("t3", folder=("F2", "Weekly Report"), space_id="S2"),
    task_payload("t4", folder=("F3", "Warehouse"), space_id="S2"),
]
COMMENTS = {"t1": [comment_payload("c1", NOW - 1000, text="done")]}


@pytest.fixture
def client():
    return FakeClient(TASKS, COMMENTS)


@pytest.fixture
def store(tmp_path):
    store = SnapshotStore(tmp_path / "cache.sqlite")
    yield store
    store.close()


@pytest.fixture
def summarizer():
    return FakeSummarizer()


@pytest.fixture
def executor():
    return DeferredExecutor()


@pytest.fixture
def service(config, client, store, summarizer, executor):
    return DashboardService(config, client, store, summarizer=summarizer, clock=lambda: NOW / 1000, executor=executor)


def test_start_without_cache_loads_synchronously(service, store):
    assert service.start() is None

    state = service.state
    assert [s.id for s in state.spaces] == ["S1", "S2"]
    assert {p.name for p in state.projects} == {"Ops", "Weekly Report"}
    assert not st.is_busy(state)
    assert state.from_cache is False

    snapshot = store.load()
    assert snapshot.comments == []
    assert [p.id for p in snapshot.projects] == [p.id for p in state.projects]


def test_start_with_cache_shows_snapshot_then_refreshes(service, store, client, executor):
    client.tasks = [task_payload("old")]
    service.start()
    cached = service.state.projects
    client.tasks = TASKS

    future = service.start()

    assert isinstance(future, Future)
    assert service.state.from_cache is True
    assert service.state.projects == cached

    executor.run_pending()
    future.result()
    assert service.state.from_cache is False
    assert {t.id for p in service.state.projects for t in p.tasks} == {"t1", "t2", "t3"}


def test_home_refresh_applies_visibility_rules(service):
    service.load_spaces()
    projects = service.refresh_home()

    assert "Warehouse" not in [p.name for p in projects]
    assert all(not p.recent_comments for p in projects)


def test_space_refresh_enriches_persists_and_summarizes(service, client, store, summarizer):
    service.load_spaces()
    projects = service.select_space("S1")

    assert client.task_calls == ["S1"]
    [project] = projects
    assert project.latest_comment.id == "c1"
    assert project.latest_comment.task_name == "Task t1"

    state = service.state
    assert state.view == st.SPACE
    assert [c.id for c in state.comments] == ["c1"]
    assert state.analysis == ANALYSIS
    assert len(summarizer.calls) == 1
    assert store.load().comments == list(state.comments)


def test_skip_ai_keeps_previous_analysis(service, summarizer):
    service.load_spaces()
    service.select_space("S1")

    service.refresh_space("S1", skip_ai=True)

    assert len(summarizer.calls) == 1
    assert service.state.analysis == ANALYSIS


def test_periodic_refresh_in_space_view_skips_summary(service, client, summarizer):
    service.load_spaces()
    service.select_space("S1", skip_ai=True)

    service.periodic_refresh()

    assert client.task_calls == ["S1", "S1"]
    assert summarizer.calls == []


def test_manual_refresh_in_space_view_runs_summary(service, summarizer):
    service.load_spaces()
    service.select_space("S1", skip_ai=True)

    service.manual_refresh()

    assert len(summarizer.calls) == 1


def test_open_project_switches_to_its_space(service, summarizer):
    projects = service.start() or service.state.projects
    ops = next(p for p in projects if p.name == "Ops")

    service.open_project(ops)

    assert service.state.selected_space_id == "S1"
    assert st.selected_project(service.state).id == ops.id
    assert summarizer.calls == []


def test_space_failure_sets_banner_and_keeps_projects(service, client):
    service.load_spaces()
    service.select_space("S1", skip_ai=True)
    before = service.state.projects

    client.fail_with = ClickUpAPIError("boom", status_code=500)
    service.refresh_space("S1")

    assert service.state.error == "boom"
    assert service.state.projects == before
    assert not st.is_busy(service.state)


def test_background_home_failure_is_silent(service, client):
    service.start()
    client.fail_with = requests.ConnectionError("offline")

    service.periodic_refresh()

    assert service.state.error is None
    assert service.state.projects


def test_foreground_home_failure_sets_banner(service, client):
    service.load_spaces()
    client.fail_with = requests.ConnectionError("offline")

    service.navigate_home()

    assert service.state.error == "offline"


def test_spaces_failure_uses_default_message(service, client):
    client.spaces_error = ClickUpAPIError("")

    assert service.load_spaces() is False
    assert service.state.error == "Failed to initialize app"


def test_run_periodic_stops_on_event(service, client):
    stop = threading.Event()
    stop.set()
    service.run_periodic(stop, interval=0)
    assert client.task_calls == []

    stop.clear()
    seen = []

    def on_refresh(state):
        seen.append(state)
        stop.set()

    service.run_periodic(stop, interval=0, on_refresh=on_refresh)

    assert client.task_calls == [None]
    assert len(seen) == 1


def test_malformed_comment_author_does_not_stall_space_refresh(service, client):
    client.comments = {"t1": [dict(comment_payload("c1", NOW - 1000), user="someone")]}
    service.load_spaces()

    [project] = service.select_space("S1", skip_ai=True)

    assert project.latest_comment.user.username == "Unknown"
    assert not st.is_busy(service.state)
    assert service.state.error is None
