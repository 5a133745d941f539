"""HTTP-клиент для ClickUp API."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional

import requests

from clickup_dashboard.clients.errors import ClickUpAPIError, ProxyResponseError
from clickup_dashboard.clients.retry import request_with_retry
from clickup_dashboard.config import ClickUpCredentials, SyncOptions

LOGGER = logging.getLogger(__name__)

HTML_MARKER = "<!doctype html"
REQUEST_TIMEOUT = 30


def reject_html_body(response: requests.Response) -> None:
    """Проверяет, что шлюз не подсунул HTML-страницу ошибки со статусом 200.

    Тело смотрится только если оно не разбирается как JSON.
    """
    try:
        response.json()
    except ValueError:
        if HTML_MARKER in response.text.lower():
            raise ProxyResponseError(
                f"Получен HTML вместо JSON (ошибка прокси) при запросе {response.url}",
                status_code=response.status_code,
            )


class ClickUpClient:
    """Клиент ClickUp API: пространства, задачи команды и комментарии."""

    def __init__(
        self,
        config: ClickUpCredentials,
        options: Optional[SyncOptions] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._options = options or SyncOptions()
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": "clickup-dashboard/0.1",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Authorization": config.api_token,
            }
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    @property
    def team_id(self) -> str:
        return self._config.team_id

    def authenticate(self) -> None:
        """Проверяет наличие токена и команды в конфигурации."""
        if not self._config.api_token:
            raise ClickUpAPIError("Необходимо задать clickup.api_token в конфигурации")
        if not self._config.team_id:
            raise ClickUpAPIError("Необходимо задать clickup.team_id в конфигурации")

    # region low-level helpers
    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        retries: int = 3,
        base_delay: float = 1.0,
        **kwargs,
    ) -> requests.Response:
        return request_with_retry(
            self._session,
            method,
            self._url(endpoint),
            retries=retries,
            base_delay=base_delay,
            sleep=self._sleep,
            timeout=REQUEST_TIMEOUT,
            **kwargs,
        )

    @staticmethod
    def _raise_for_status(response: requests.Response, what: str) -> None:
        if not response.ok:
            raise ClickUpAPIError(
                f"Ошибка ClickUp API ({what}): {response.status_code} {response.text}",
                status_code=response.status_code,
            )

    # endregion

    def fetch_spaces(self) -> List[Dict]:
        """Возвращает все неархивные пространства команды. Ошибки пробрасываются."""
        self.authenticate()
        try:
            response = self._request(
                "GET",
                f"/team/{self.team_id}/space",
                params={"archived": "false"},
            )
            self._raise_for_status(response, "Spaces")
            payload = response.json()
        except (ClickUpAPIError, requests.RequestException, ValueError):
            LOGGER.exception("Не удалось получить пространства команды %s", self.team_id)
            raise
        spaces = payload.get("spaces") if isinstance(payload, dict) else None
        return spaces if isinstance(spaces, list) else []

    def verify(self) -> int:
        """Проверяет соединение и возвращает число доступных пространств."""
        spaces = self.fetch_spaces()
        LOGGER.info("Соединение с ClickUp успешно, пространств: %s", len(spaces))
        return len(spaces)

    def list_tasks(self, page: int, space_id: Optional[str] = None) -> Optional[List[Dict]]:
        """Возвращает страницу задач команды или ``None``, если ответ без списка задач."""
        params: Dict[str, object] = {
            "include_closed": "true",
            "subtasks": "true",
            "page": page,
        }
        if space_id:
            params["space_ids[]"] = space_id
        response = self._request(
            "GET",
            f"/team/{self.team_id}/task",
            params=params,
            retries=self._options.task_retries,
            base_delay=self._options.task_base_delay,
            check=reject_html_body,
        )
        self._raise_for_status(response, f"Tasks page {page}")
        try:
            payload = response.json()
        except ValueError:
            reject_html_body(response)
            raise
        tasks = payload.get("tasks") if isinstance(payload, dict) else None
        return tasks if isinstance(tasks, list) else None

    def fetch_team_tasks(self, space_id: Optional[str] = None) -> List[Dict]:
        """Выгружает все задачи команды (включая закрытые и подзадачи) постранично.

        Если сбой произошёл после хотя бы одной успешной страницы, возвращается
        уже накопленный результат. Ошибка первой страницы пробрасывается.
        """
        self.authenticate()
        page_size = self._options.page_size
        all_tasks: List[Dict] = []
        page = 0
        while page < self._options.max_pages:
            try:
                tasks = self.list_tasks(page, space_id=space_id)
            except (ClickUpAPIError, requests.RequestException, ValueError) as exc:
                if page == 0:
                    LOGGER.error("Не удалось получить первую страницу задач: %s", exc)
                    raise
                LOGGER.warning(
                    "Загрузка задач остановлена на странице %s из-за ошибки (%s), получено %s задач",
                    page,
                    exc,
                    len(all_tasks),
                )
                break
            if tasks is None:
                break
            all_tasks.extend(tasks)
            if len(tasks) < page_size:
                break
            page += 1
        else:
            LOGGER.warning("Достигнут предел в %s страниц задач", self._options.max_pages)
        LOGGER.info("Получено задач: %s (пространство %s)", len(all_tasks), space_id or "все")
        return all_tasks

    def fetch_task_comments(self, task_id: str) -> List[Dict]:
        """Комментарии задачи. Любая ошибка даёт пустой список."""
        try:
            response = self._request(
                "GET",
                f"/task/{task_id}/comment",
                retries=self._options.comment_retries,
                base_delay=self._options.comment_base_delay,
            )
            if not response.ok:
                LOGGER.debug("Комментарии задачи %s недоступны: %s", task_id, response.status_code)
                return []
            payload = response.json()
        except (ClickUpAPIError, requests.RequestException, ValueError) as exc:
            LOGGER.debug("Не удалось получить комментарии задачи %s: %s", task_id, exc)
            return []
        comments = payload.get("comments") if isinstance(payload, dict) else None
        return comments if isinstance(comments, list) else []


__all__ = ["ClickUpClient", "reject_html_body"]
