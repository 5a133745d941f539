"""HTTP-клиент для Gemini REST API."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

import requests

from clickup_dashboard.config import GeminiSettings


class SummaryServiceError(RuntimeError):
    """Ошибка сервиса генерации сводки."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class GeminiClient:
    """Минимальный клиент Gemini generateContent с JSON-ответом."""

    def __init__(self, config: GeminiSettings, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": "clickup-dashboard/0.1",
                "Content-Type": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        response = self._session.request(method, url, timeout=60, **kwargs)
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            raise SummaryServiceError(
                f"Ошибка Gemini {response.status_code}: {response.text}",
                status_code=response.status_code,
                payload=payload if isinstance(payload, dict) else {},
            )
        return response

    def generate_json(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        """Отправляет промпт и возвращает разобранный JSON-ответ модели."""
        if not self._config.api_key:
            raise SummaryServiceError("Необходимо задать gemini.api_key в конфигурации")
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        response = self._request(
            "POST",
            f"/models/{self._config.model}:generateContent",
            params={"key": self._config.api_key},
            json=body,
        )
        text = self._extract_text(response.json())
        if not text:
            raise SummaryServiceError("Пустой ответ модели")
        result = json.loads(text)
        if not isinstance(result, dict):
            raise SummaryServiceError("Ответ модели не является JSON-объектом")
        return result

    @staticmethod
    def _extract_text(payload: Any) -> str:
        if not isinstance(payload, dict):
            raise SummaryServiceError("Ответ Gemini не является JSON-объектом")
        candidates = payload.get("candidates") or []
        if not isinstance(candidates, list):
            raise SummaryServiceError("Неожиданный формат candidates в ответе Gemini")
        for candidate in candidates:
            content = candidate.get("content") if isinstance(candidate, dict) else None
            if not isinstance(content, dict):
                continue
            parts = content.get("parts")
            if not isinstance(parts, list):
                continue
            text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))
            if text:
                return text
        return ""


__all__ = ["GeminiClient", "SummaryServiceError"]
