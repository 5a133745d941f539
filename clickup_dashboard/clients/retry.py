"""Повторные HTTP-запросы с экспоненциальной задержкой."""
from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

import requests

from clickup_dashboard.clients.errors import TransientFetchError

LOGGER = logging.getLogger(__name__)

BACKOFF_FACTOR = 1.5
MAX_JITTER = 0.5


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def backoff_delay(attempt: int, base_delay: float, *, jitter: bool = True) -> float:
    """Задержка перед следующей попыткой: base × 1.5^attempt плюс случайные 0–500 мс."""
    delay = base_delay * BACKOFF_FACTOR**attempt
    if jitter:
        delay += random.uniform(0, MAX_JITTER)
    return delay


def request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    *,
    retries: int = 3,
    base_delay: float = 1.0,
    check: Optional[Callable[[requests.Response], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> requests.Response:
    """Выполняет запрос, повторяя его при временных сбоях.

    Успешный ответ и клиентские ошибки (4xx, кроме 429) возвращаются сразу.
    429, 5xx, сетевые ошибки и ``TransientFetchError`` из ``check``
    повторяются не более ``retries`` раз; после исчерпания попыток
    выбрасывается последняя ошибка.
    """
    if retries < 1:
        raise ValueError("retries должно быть не меньше 1")
    for attempt in range(retries):
        try:
            response = session.request(method, url, **kwargs)
            if is_retryable_status(response.status_code):
                raise TransientFetchError(
                    f"Временная ошибка {response.status_code} при запросе {method} {url}",
                    status_code=response.status_code,
                )
            if response.ok and check is not None:
                check(response)
            return response
        except (TransientFetchError, requests.RequestException) as exc:
            if attempt == retries - 1:
                raise
            delay = backoff_delay(attempt, base_delay)
            LOGGER.debug(
                "Попытка %s/%s для %s не удалась (%s), повтор через %.2f с",
                attempt + 1,
                retries,
                url,
                exc,
                delay,
            )
            sleep(delay)
    raise TransientFetchError(f"Исчерпаны попытки запроса {method} {url}")


__all__ = ["backoff_delay", "is_retryable_status", "request_with_retry"]
