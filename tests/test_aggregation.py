from __future__ import annotations

import random

import pytest

from clickup_dashboard.models import ProjectStats, RiskLevel
from clickup_dashboard.services.aggregation import (
    classify_risk,
    is_task_closed,
    percent_complete,
    process_tasks_into_projects,
)
from clickup_dashboard.services.mapper import ClickUpMapper

from conftest import DAY, NOW, task_payload

mapper = ClickUpMapper()


def _tasks(*payloads):
    return mapper.map_tasks(list(payloads))


def test_folder_scenario_counts_and_high_risk():
    tasks = _tasks(
        task_payload("1", status_type="closed", status_name="done"),
        task_payload("2", status_type="open", due=NOW - 2 * DAY),
    )

    projects = process_tasks_into_projects(tasks, now=NOW)

    assert len(projects) == 1
    project = projects[0]
    assert project.id == "F1"
    assert project.name == "Ops"
    assert project.folder_name == "Ops"
    assert project.space_id == "S1"
    assert project.stats == ProjectStats(
        total_tasks=2,
        open_tasks=1,
        completed_tasks=1,
        overdue_tasks=1,
        due_next_7_days=0,
        percent_complete=50,
    )
    assert project.risk_level is RiskLevel.HIGH


def test_task_without_folder_groups_by_list_with_suffix():
    tasks = _tasks(task_payload("1", folder=None, list_id="L7", list_name="Inbox"))

    [project] = process_tasks_into_projects(tasks, now=NOW)

    assert project.id == "L7"
    assert project.name == "Inbox (List)"
    assert project.folder_name == "No Folder"


def test_tasks_without_list_are_skipped():
    tasks = _tasks(task_payload("1", list_id=None), task_payload("2"))

    [project] = process_tasks_into_projects(tasks, now=NOW)

    assert [t.id for t in project.tasks] == ["2"]


@pytest.mark.parametrize(
    "status_type,status_name,closed",
    [
        ("closed", "whatever", True),
        ("custom", "Complete", True),
        ("custom", "CLOSED", True),
        ("open", "in progress", False),
        ("custom", "completed", False),
    ],
)
def test_closed_detection(status_type, status_name, closed):
    [task] = _tasks(task_payload("1", status_type=status_type, status_name=status_name))
    assert is_task_closed(task) is closed


def test_due_soon_window_is_inclusive_and_overdue_is_disjoint():
    tasks = _tasks(
        task_payload("now", due=NOW),
        task_payload("edge", due=NOW + 7 * DAY),
        task_payload("later", due=NOW + 7 * DAY + 1),
        task_payload("past", due=NOW - 1),
        task_payload("closed-past", due=NOW - DAY, status_type="closed"),
        task_payload("bad", due=None),
    )
    tasks[-1].due_date = "not-a-number"

    [project] = process_tasks_into_projects(tasks, now=NOW)

    assert project.stats.due_next_7_days == 2
    assert project.stats.overdue_tasks == 1
    assert project.stats.open_tasks == 5
    assert project.stats.completed_tasks == 1


def test_medium_risk_when_due_soon_and_mostly_open():
    tasks = _tasks(task_payload("1", due=NOW + DAY), task_payload("2"), task_payload("3", status_type="closed"))

    [project] = process_tasks_into_projects(tasks, now=NOW)

    assert project.stats.percent_complete == 33
    assert project.risk_level is RiskLevel.MEDIUM


def test_low_risk_when_half_complete_even_with_due_soon():
    tasks = _tasks(task_payload("1", due=NOW + DAY), task_payload("2", status_type="closed"))

    [project] = process_tasks_into_projects(tasks, now=NOW)

    assert project.stats.percent_complete == 50
    assert project.risk_level is RiskLevel.LOW


def test_projects_sorted_by_risk_then_open_tasks():
    tasks = _tasks(
        task_payload("a1", folder=("A", "Low small")),
        task_payload("b1", folder=("B", "Low big")),
        task_payload("b2", folder=("B", "Low big")),
        task_payload("c1", folder=("C", "Medium"), due=NOW + DAY),
        task_payload("d1", folder=("D", "High"), due=NOW - DAY),
    )

    projects = process_tasks_into_projects(tasks, now=NOW)

    # "Low big" и "Low small" без сроков: риск Low, сортировка по числу открытых задач
    assert [p.name for p in projects] == ["High", "Medium", "Low big", "Low small"]


def test_grouping_does_not_depend_on_order():
    payloads = [task_payload(str(i), folder=("F1" if i % 2 else "F2", f"Folder {i % 2}")) for i in range(10)]
    shuffled = list(payloads)
    random.Random(42).shuffle(shuffled)

    first = process_tasks_into_projects(_tasks(*payloads), now=NOW)
    second = process_tasks_into_projects(_tasks(*shuffled), now=NOW)

    assert {p.id: sorted(t.id for t in p.tasks) for p in first} == {
        p.id: sorted(t.id for t in p.tasks) for p in second
    }


def test_stats_invariants_hold_for_random_task_sets():
    rng = random.Random(7)
    for _ in range(50):
        payloads = [
            task_payload(
                str(i),
                folder=(f"F{rng.randint(0, 3)}", "folder"),
                status_type=rng.choice(["open", "custom", "closed"]),
                due=rng.choice([None, NOW - DAY, NOW + DAY, NOW + 30 * DAY]),
            )
            for i in range(rng.randint(0, 20))
        ]
        for project in process_tasks_into_projects(_tasks(*payloads), now=NOW):
            stats = project.stats
            assert stats.open_tasks + stats.completed_tasks == stats.total_tasks
            assert stats.overdue_tasks + stats.due_next_7_days <= stats.open_tasks
            assert stats.percent_complete == percent_complete(stats.completed_tasks, stats.total_tasks)
            assert project.risk_level is classify_risk(stats)


def test_percent_complete_rounds_half_up_and_handles_empty():
    assert percent_complete(0, 0) == 0
    assert percent_complete(1, 8) == 13
    assert percent_complete(2, 3) == 67


def test_empty_input_gives_no_projects():
    assert process_tasks_into_projects([], now=NOW) == []
