"""Загрузка и валидация конфигурации приложения."""
from __future__ import annotations

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_CLICKUP_URL = "https://api.clickup.com/api/v2"
DEFAULT_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta"


class ClickUpCredentials(BaseModel):
    """Настройки подключения к ClickUp."""

    base_url: str = Field(
        DEFAULT_CLICKUP_URL,
        description="Базовый URL API ClickUp (напрямую, через прокси или через собственный backend)",
    )
    api_token: str = Field(..., description="Персональный токен ClickUp, передаётся в заголовке Authorization")
    team_id: str = Field(..., description="Идентификатор команды (workspace) ClickUp")

    @field_validator("team_id", mode="before")
    @classmethod
    def _team_id_str(cls, value: object) -> str:
        return str(value)


class GeminiSettings(BaseModel):
    """Настройки AI-сводки."""

    enabled: bool = Field(True, description="Формировать ли AI-сводку для детального режима")
    api_key: str = Field("", description="Ключ Gemini API")
    model: str = Field("gemini-2.5-flash", description="Модель Gemini")
    base_url: str = Field(DEFAULT_GEMINI_URL, description="Базовый URL Gemini REST API")
    comment_limit: int = Field(50, description="Сколько последних комментариев передавать в запрос")


class SyncOptions(BaseModel):
    """Параметры загрузки данных."""

    page_size: int = Field(100, description="Фиксированный размер страницы задач ClickUp")
    max_pages: int = Field(50, description="Предельное число страниц задач за одну загрузку")
    task_retries: int = Field(4, description="Число попыток для страницы задач")
    task_base_delay: float = Field(1.0, description="Базовая задержка между попытками для задач, сек")
    comment_retries: int = Field(2, description="Число попыток для комментариев")
    comment_base_delay: float = Field(0.5, description="Базовая задержка между попытками для комментариев, сек")
    comment_chunk_size: int = Field(6, description="Сколько комментариев запрашивать одновременно")
    comment_chunk_delay: float = Field(0.05, description="Пауза между пачками запросов комментариев, сек")
    comment_lookback_days: int = Field(30, description="За сколько дней брать обновлённые задачи для комментариев")
    refresh_interval: float = Field(300.0, description="Период фонового обновления, сек")
    show_progress: bool = Field(False, description="Показывать ли прогресс загрузки комментариев")


class VisibilityRuleConfig(BaseModel):
    """Ограничение видимости проектов для конкретного пространства."""

    exact_names: List[str] = Field(default_factory=list, description="Точные имена пространства (после trim)")
    name_contains: List[str] = Field(default_factory=list, description="Фрагменты имени пространства без учёта регистра")
    project_keywords: List[str] = Field(..., description="Показывать только проекты, имя которых содержит одно из слов")


def _default_visibility() -> List[VisibilityRuleConfig]:
    return [
        VisibilityRuleConfig(
            exact_names=["TS Sales Inc."],
            name_contains=["ts sales"],
            project_keywords=["report", "email request", "accounting", "shipment tracking"],
        )
    ]


class AppConfig(BaseModel):
    """Корневая конфигурация приложения."""

    clickup: ClickUpCredentials
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    sync: SyncOptions = Field(default_factory=SyncOptions)
    visibility: List[VisibilityRuleConfig] = Field(default_factory=_default_visibility)
    cache_db: Path = Field(Path(".dashboard_cache.sqlite"), description="Путь к SQLite-кэшу снимков")

    @field_validator("cache_db", mode="before")
    @classmethod
    def _cache_db_path(cls, value: Path | str) -> Path:
        return Path(value)

    @classmethod
    def load(cls, path: Path | str) -> "AppConfig":
        """Загружает конфигурацию из YAML-файла."""
        path = Path(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ValueError(f"Конфигурация {path} некорректна: {exc}") from exc

    def ensure_runtime_dirs(self) -> None:
        """Создаёт недостающие служебные каталоги."""
        self.cache_db.parent.mkdir(parents=True, exist_ok=True)


__all__ = [
    "AppConfig",
    "ClickUpCredentials",
    "GeminiSettings",
    "SyncOptions",
    "VisibilityRuleConfig",
]
