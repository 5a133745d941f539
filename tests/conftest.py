from __future__ import annotations

import json
from typing import Any, Callable

import pytest
import requests

from clickup_dashboard.config import AppConfig

NOW = 1_700_000_000_000
DAY = 24 * 60 * 60 * 1000


def make_response(status: int = 200, body: Any = None, text: str | None = None, url: str = "http://test") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = "utf-8"
    if text is None:
        text = json.dumps(body if body is not None else {})
    response._content = text.encode("utf-8")
    return response


class FakeSession:
    """Отдаёт заранее заданные ответы (или выбрасывает исключения) по очереди."""

    def __init__(self, *responses: Any, handler: Callable[..., Any] | None = None):
        self.headers: dict[str, str] = {}
        self.responses = list(responses)
        self.handler = handler
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append((method, url, kwargs))
        if self.handler is not None:
            item = self.handler(method, url, **kwargs)
        else:
            item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def task_payload(
    task_id: str,
    *,
    list_id: str | None = "L1",
    list_name: str = "Backlog",
    folder: tuple[str, str] | None = ("F1", "Ops"),
    status_type: str = "open",
    status_name: str = "to do",
    due: int | None = None,
    updated: int | str | None = NOW,
    space_id: str = "S1",
    name: str | None = None,
) -> dict[str, Any]:
    return {
        "id": task_id,
        "name": name or f"Task {task_id}",
        "status": {"status": status_name, "type": status_type, "color": "#000", "orderindex": 0},
        "orderindex": "1",
        "date_created": str(NOW - 90 * DAY),
        "date_updated": str(updated) if updated is not None else None,
        "date_closed": None,
        "due_date": str(due) if due is not None else None,
        "start_date": None,
        "list": {"id": list_id, "name": list_name, "access": True} if list_id else None,
        "folder": {"id": folder[0], "name": folder[1], "hidden": False} if folder else {"hidden": True},
        "space": {"id": space_id},
        "url": f"https://app.clickup.com/t/{task_id}",
        "assignees": [],
    }


def comment_payload(comment_id: str, date: int, text: str = "hello", username: str = "alice") -> dict[str, Any]:
    return {
        "id": comment_id,
        "comment": [{"text": text}],
        "comment_text": text,
        "user": {"id": 1, "username": username, "color": "#fff", "profilePicture": None},
        "resolved": False,
        "date": str(date),
    }


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig.model_validate(
        {
            "clickup": {"api_token": "pk_test", "team_id": "T1", "base_url": "https://api.test/v2"},
            "gemini": {"api_key": "key"},
            "sync": {"task_base_delay": 0.0, "comment_base_delay": 0.0, "comment_chunk_delay": 0.0},
            "cache_db": str(tmp_path / "cache.sqlite"),
        }
    )
