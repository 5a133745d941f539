from __future__ import annotations

from datetime import datetime, timezone

import pytest

from clickup_dashboard.models import AIAnalysis, Project, Snapshot, Space
from clickup_dashboard.services import state as st

MOMENT = datetime(2024, 1, 2, tzinfo=timezone.utc)
PROJECT = Project(id="F1", name="Ops", folder_name="Ops", space_id="S1")


def test_cache_loaded_marks_state_as_stale():
    snapshot = Snapshot(spaces=[Space(id="S1", name="Ops")], projects=[PROJECT], comments=[], last_updated=MOMENT)

    state = st.cache_loaded(st.DashboardState(), snapshot)

    assert state.from_cache is True
    assert state.projects == (PROJECT,)
    assert state.last_updated == MOMENT
    assert not st.is_busy(state)


def test_foreground_load_cycle():
    state = st.load_started(st.DashboardState(error="old"))
    assert state.loading and state.tasks_loading
    assert state.error is None

    state = st.tasks_loaded(state, [PROJECT], MOMENT)
    assert not state.tasks_loading and state.loading
    assert state.from_cache is False

    state = st.load_finished(state, MOMENT)
    assert not st.is_busy(state)
    assert state.last_updated == MOMENT


def test_background_load_does_not_show_spinner():
    state = st.load_started(st.DashboardState(), background=True)
    assert not st.is_busy(state)


def test_analysis_reset_only_when_requested():
    analysis = AIAnalysis(summary="x")
    state = st.DashboardState(analysis=analysis)

    assert st.load_started(state).analysis is analysis
    assert st.load_started(state, reset_analysis=True).analysis is None


def test_failure_keeps_previous_data_and_sets_banner():
    state = st.tasks_loaded(st.DashboardState(), [PROJECT])
    state = st.comments_started(st.analysis_started(state))

    state = st.load_failed(state, "boom")

    assert state.error == "boom"
    assert state.projects == (PROJECT,)
    assert not st.is_busy(state)


def test_navigation_and_selection():
    state = st.select_space(st.DashboardState(), "S1")
    assert (state.view, state.selected_space_id) == (st.SPACE, "S1")

    state = st.tasks_loaded(state, [PROJECT])
    state = st.select_project(state, "F1")
    assert st.selected_project(state) is PROJECT
    assert st.selected_project(st.close_project(state)) is None

    state = st.navigate_home(state)
    assert (state.view, state.selected_space_id, state.selected_project_id) == (st.HOME, None, None)


def test_filters():
    state = st.set_filters(st.DashboardState(), search_term="ops", status_filter="at_risk")
    assert (state.search_term, state.status_filter) == ("ops", "at_risk")
    assert st.set_filters(state, search_term="").status_filter == "at_risk"
    with pytest.raises(ValueError):
        st.set_filters(state, status_filter="bogus")
