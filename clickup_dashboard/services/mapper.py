"""Маппинг между JSON ClickUp/кэша и внутренними моделями."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from clickup_dashboard.models import (
    AIAnalysis,
    Comment,
    Folder,
    Member,
    Project,
    ProjectStats,
    RiskLevel,
    Space,
    Status,
    Task,
    TaskList,
)


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ClickUpMapper:
    """Конвертация данных между API и внутренними моделями.

    Формат ``dump_*`` повторяет формат ClickUp API, поэтому одни и те же
    ``map_*`` читают и ответы API, и сохранённый снимок.
    """

    # region ClickUp payloads
    def map_status(self, payload: Optional[Dict]) -> Status:
        payload = payload if isinstance(payload, dict) else {}
        return Status(
            status=str(payload.get("status") or ""),
            type=str(payload.get("type") or ""),
            color=str(payload.get("color") or ""),
            orderindex=_int_or_none(payload.get("orderindex")) or 0,
        )

    def map_member(self, payload: Optional[Dict]) -> Member:
        payload = payload if isinstance(payload, dict) else {}
        return Member(
            id=_int_or_none(payload.get("id")),
            username=str(payload.get("username") or payload.get("email") or "Unknown"),
            color=str(payload.get("color") or ""),
            profile_picture=payload.get("profilePicture"),
        )

    def map_space(self, payload: Dict) -> Space:
        return Space(
            id=str(payload.get("id")),
            name=str(payload.get("name") or ""),
            private=bool(payload.get("private", False)),
            statuses=[self.map_status(item) for item in payload.get("statuses") or []],
            multiple_assignees=bool(payload.get("multiple_assignees", False)),
        )

    def map_comment(self, payload: Dict) -> Comment:
        raw_body = payload.get("comment")
        return Comment(
            id=str(payload.get("id")),
            comment=list(raw_body) if isinstance(raw_body, list) else [],
            comment_text=str(payload.get("comment_text") or ""),
            user=self.map_member(payload.get("user")),
            resolved=bool(payload.get("resolved", False)),
            date=str(payload.get("date") or ""),
            task_id=_str_or_none(payload.get("task_id")),
            task_name=_str_or_none(payload.get("task_name")),
        )

    def map_task(self, payload: Dict) -> Task:
        task_list = payload.get("list")
        folder = payload.get("folder")
        space = payload.get("space") or {}
        comments = payload.get("comments")
        return Task(
            id=str(payload.get("id")),
            name=str(payload.get("name") or ""),
            status=self.map_status(payload.get("status")),
            date_created=_str_or_none(payload.get("date_created")),
            date_updated=_str_or_none(payload.get("date_updated")),
            date_closed=_str_or_none(payload.get("date_closed")),
            due_date=_str_or_none(payload.get("due_date")),
            start_date=_str_or_none(payload.get("start_date")),
            task_list=(
                TaskList(
                    id=str(task_list["id"]),
                    name=str(task_list.get("name") or ""),
                    access=bool(task_list.get("access", True)),
                )
                if isinstance(task_list, dict) and task_list.get("id")
                else None
            ),
            folder=(
                Folder(
                    id=str(folder["id"]),
                    name=str(folder.get("name") or ""),
                    hidden=bool(folder.get("hidden", False)),
                )
                if isinstance(folder, dict) and folder.get("id")
                else None
            ),
            space_id=_str_or_none(space.get("id")) if isinstance(space, dict) else None,
            orderindex=_str_or_none(payload.get("orderindex")),
            url=str(payload.get("url") or ""),
            assignees=[self.map_member(item) for item in payload.get("assignees") or []],
            comments=[self.map_comment(item) for item in comments] if isinstance(comments, list) else None,
        )

    # endregion

    # region cache payloads
    def map_project(self, payload: Dict) -> Project:
        stats = payload.get("stats") or {}
        latest = payload.get("latest_comment")
        return Project(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            folder_name=_str_or_none(payload.get("folder_name")),
            space_id=str(payload.get("space_id") or ""),
            tasks=[self.map_task(item) for item in payload.get("tasks") or []],
            stats=ProjectStats(
                total_tasks=int(stats.get("total_tasks", 0)),
                open_tasks=int(stats.get("open_tasks", 0)),
                completed_tasks=int(stats.get("completed_tasks", 0)),
                overdue_tasks=int(stats.get("overdue_tasks", 0)),
                due_next_7_days=int(stats.get("due_next_7_days", 0)),
                percent_complete=int(stats.get("percent_complete", 0)),
            ),
            risk_level=RiskLevel(payload.get("risk_level", RiskLevel.LOW.value)),
            recent_comments=[self.map_comment(item) for item in payload.get("recent_comments") or []],
            latest_comment=self.map_comment(latest) if isinstance(latest, dict) else None,
        )

    def map_analysis(self, payload: Dict) -> AIAnalysis:
        return AIAnalysis(
            summary=str(payload.get("summary") or ""),
            top_risks=[str(item) for item in payload.get("topRisks") or []],
            actions=[str(item) for item in payload.get("actions") or []],
            email_draft=str(payload.get("emailDraft") or ""),
        )

    # endregion

    # region dumps
    @staticmethod
    def dump_status(status: Status) -> Dict:
        return {
            "status": status.status,
            "type": status.type,
            "color": status.color,
            "orderindex": status.orderindex,
        }

    @staticmethod
    def dump_member(member: Member) -> Dict:
        return {
            "id": member.id,
            "username": member.username,
            "color": member.color,
            "profilePicture": member.profile_picture,
        }

    def dump_space(self, space: Space) -> Dict:
        return {
            "id": space.id,
            "name": space.name,
            "private": space.private,
            "statuses": [self.dump_status(item) for item in space.statuses],
            "multiple_assignees": space.multiple_assignees,
        }

    def dump_comment(self, comment: Comment) -> Dict:
        payload: Dict[str, Any] = {
            "id": comment.id,
            "comment": comment.comment,
            "comment_text": comment.comment_text,
            "user": self.dump_member(comment.user),
            "resolved": comment.resolved,
            "date": comment.date,
        }
        if comment.task_id is not None:
            payload["task_id"] = comment.task_id
        if comment.task_name is not None:
            payload["task_name"] = comment.task_name
        return payload

    def dump_task(self, task: Task) -> Dict:
        payload: Dict[str, Any] = {
            "id": task.id,
            "name": task.name,
            "status": self.dump_status(task.status),
            "orderindex": task.orderindex,
            "date_created": task.date_created,
            "date_updated": task.date_updated,
            "date_closed": task.date_closed,
            "due_date": task.due_date,
            "start_date": task.start_date,
            "list": (
                {"id": task.task_list.id, "name": task.task_list.name, "access": task.task_list.access}
                if task.task_list
                else None
            ),
            "folder": (
                {"id": task.folder.id, "name": task.folder.name, "hidden": task.folder.hidden}
                if task.folder
                else None
            ),
            "space": {"id": task.space_id},
            "url": task.url,
            "assignees": [self.dump_member(item) for item in task.assignees],
        }
        if task.comments is not None:
            payload["comments"] = [self.dump_comment(item) for item in task.comments]
        return payload

    def dump_project(self, project: Project) -> Dict:
        stats = project.stats
        return {
            "id": project.id,
            "name": project.name,
            "folder_name": project.folder_name,
            "space_id": project.space_id,
            "tasks": [self.dump_task(item) for item in project.tasks],
            "stats": {
                "total_tasks": stats.total_tasks,
                "open_tasks": stats.open_tasks,
                "completed_tasks": stats.completed_tasks,
                "overdue_tasks": stats.overdue_tasks,
                "due_next_7_days": stats.due_next_7_days,
                "percent_complete": stats.percent_complete,
            },
            "risk_level": project.risk_level.value,
            "recent_comments": [self.dump_comment(item) for item in project.recent_comments],
            "latest_comment": self.dump_comment(project.latest_comment) if project.latest_comment else None,
        }

    @staticmethod
    def dump_analysis(analysis: AIAnalysis) -> Dict:
        return {
            "summary": analysis.summary,
            "topRisks": list(analysis.top_risks),
            "actions": list(analysis.actions),
            "emailDraft": analysis.email_draft,
        }

    # endregion

    def map_tasks(self, payloads: List[Dict]) -> List[Task]:
        return [self.map_task(item) for item in payloads if isinstance(item, dict)]


__all__ = ["ClickUpMapper"]
