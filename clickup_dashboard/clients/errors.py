"""Ошибки обращения к ClickUp API."""
from __future__ import annotations

from typing import Optional


class ClickUpAPIError(RuntimeError):
    """Исключение при ошибке ClickUp API."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientFetchError(ClickUpAPIError):
    """Временный сбой (429, 5xx, сеть), запрос можно повторить."""


class ProxyResponseError(TransientFetchError):
    """Прокси вернул HTML-страницу ошибки вместо JSON."""


__all__ = ["ClickUpAPIError", "ProxyResponseError", "TransientFetchError"]
