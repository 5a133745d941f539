"""Локальный кэш снимков дашборда."""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from dateutil import parser

from clickup_dashboard.models import Comment, Project, Snapshot, Space
from clickup_dashboard.services.mapper import ClickUpMapper

LOGGER = logging.getLogger(__name__)

CACHE_KEYS = {
    "spaces": "vsp_cache_spaces",
    "projects": "vsp_cache_projects",
    "comments": "vsp_cache_comments",
    "last_updated": "vsp_cache_last_updated",
}


class SnapshotStore:
    """Обёртка над SQLite: четыре независимых ключа со значениями в JSON.

    Сохранение выполняется по принципу best effort, схема снимка не версионируется.
    """

    def __init__(self, path: Path | str, mapper: Optional[ClickUpMapper] = None) -> None:
        self._path = Path(path)
        self._mapper = mapper or ClickUpMapper()
        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self._conn.close()

    # region schema
    def _init_schema(self) -> None:
        with closing(self._conn.cursor()) as cursor:
            cursor.executescript(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    saved_at TEXT
                );
                """
            )
            self._conn.commit()

    # endregion

    # region helpers
    def _set_many(self, entries: Dict[str, str]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._conn:
            self._conn.executemany(
                "INSERT INTO cache_entries (key, value, saved_at) VALUES (?, ?, ?)\n"
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, saved_at = excluded.saved_at",
                [(key, value, now) for key, value in entries.items()],
            )

    def _get(self, key: str) -> Optional[str]:
        row = self._conn.execute("SELECT value FROM cache_entries WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def _get_json(self, key: str) -> Any:
        raw = self._get(key)
        return json.loads(raw) if raw is not None else None

    # endregion

    def save(
        self,
        spaces: Sequence[Space],
        projects: Sequence[Project],
        comments: Sequence[Comment],
        moment: Optional[datetime] = None,
    ) -> bool:
        """Сохраняет снимок. Ошибка записи логируется, прежний кэш остаётся."""
        moment = moment or datetime.now(timezone.utc)
        try:
            entries = {
                CACHE_KEYS["spaces"]: json.dumps([self._mapper.dump_space(s) for s in spaces], ensure_ascii=False),
                CACHE_KEYS["projects"]: json.dumps([self._mapper.dump_project(p) for p in projects], ensure_ascii=False),
                CACHE_KEYS["comments"]: json.dumps([self._mapper.dump_comment(c) for c in comments], ensure_ascii=False),
                CACHE_KEYS["last_updated"]: json.dumps(moment.isoformat()),
            }
            self._set_many(entries)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            LOGGER.warning("Не удалось сохранить кэш (вероятно, переполнено хранилище): %s", exc)
            return False
        LOGGER.debug("Снимок сохранён в кэш %s", self._path)
        return True

    def load(self) -> Optional[Snapshot]:
        """Читает снимок; отсутствие или ошибка разбора равносильны пустому кэшу."""
        try:
            raw_spaces = self._get_json(CACHE_KEYS["spaces"])
            raw_projects = self._get_json(CACHE_KEYS["projects"])
            if not isinstance(raw_spaces, list) or not isinstance(raw_projects, list):
                return None
            raw_comments = self._get_json(CACHE_KEYS["comments"])
            raw_moment = self._get_json(CACHE_KEYS["last_updated"])
            spaces: List[Space] = [self._mapper.map_space(item) for item in raw_spaces]
            projects: List[Project] = [self._mapper.map_project(item) for item in raw_projects]
            comments: List[Comment] = [
                self._mapper.map_comment(item) for item in raw_comments or [] if isinstance(item, dict)
            ]
            last_updated = parser.isoparse(raw_moment) if isinstance(raw_moment, str) else None
        except (sqlite3.Error, AttributeError, KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Не удалось разобрать кэш: %s", exc)
            return None
        return Snapshot(spaces=spaces, projects=projects, comments=comments, last_updated=last_updated)

    def clear(self) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM cache_entries")


__all__ = ["CACHE_KEYS", "SnapshotStore"]
