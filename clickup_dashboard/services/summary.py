"""AI-сводка по проектам и последним комментариям."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Protocol, Sequence

import requests

from clickup_dashboard.clients.gemini import SummaryServiceError
from clickup_dashboard.models import AIAnalysis, Comment, Project

LOGGER = logging.getLogger(__name__)

EMBEDDED_JSON = re.compile(r"\{[\s\S]*\}")
QUOTA_STATUS_CODES = {429, 503}
QUOTA_MARKERS = ("429", "RESOURCE_EXHAUSTED", "quota")

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING"},
        "topRisks": {"type": "ARRAY", "items": {"type": "STRING"}},
        "actions": {"type": "ARRAY", "items": {"type": "STRING"}},
        "emailDraft": {"type": "STRING"},
    },
}

NO_DATA_ANALYSIS = AIAnalysis(
    summary="No project data or comments available to analyze.",
    top_risks=[],
    actions=["Connect a ClickUp workspace with tasks to get started."],
    email_draft="No data available for email draft.",
)

QUOTA_ANALYSIS = AIAnalysis(
    summary=(
        "Quota Exceeded. The AI service is temporarily unavailable due to high traffic. "
        "Please try again in a minute."
    ),
    top_risks=[],
    actions=["Wait 60 seconds", "Click Sync Data manually"],
    email_draft="Draft generation paused due to rate limits.",
)

ERROR_ANALYSIS = AIAnalysis(
    summary="Unable to generate summary at this time due to a technical error.",
    top_risks=[],
    actions=["Check network connection", "Verify API keys"],
    email_draft="Error generating draft.",
)


class JsonGenerator(Protocol):
    def generate_json(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        ...


def _is_quota_payload(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    error = payload.get("error")
    if not isinstance(error, dict):
        return False
    return error.get("code") == 429 or error.get("status") == "RESOURCE_EXHAUSTED"


def is_quota_error(exc: BaseException) -> bool:
    """Определяет исчерпание квоты: по статусу, по структуре ошибки или по JSON внутри сообщения."""
    if getattr(exc, "status_code", None) in QUOTA_STATUS_CODES:
        return True
    if _is_quota_payload(getattr(exc, "payload", None)):
        return True
    message = str(exc)
    if any(marker in message for marker in QUOTA_MARKERS):
        return True
    match = EMBEDDED_JSON.search(message)
    if match:
        try:
            return _is_quota_payload(json.loads(match.group(0)))
        except ValueError:
            return False
    return False


def fresh_copy(analysis: AIAnalysis) -> AIAnalysis:
    """Копия шаблонной сводки с собственными списками."""
    return replace(analysis, top_risks=list(analysis.top_risks), actions=list(analysis.actions))


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def normalize_analysis(raw: Any) -> AIAnalysis:
    """Подставляет значения по умолчанию вместо пустых или битых полей."""
    raw = raw if isinstance(raw, dict) else {}
    summary = raw.get("summary")
    email = raw.get("emailDraft")
    return AIAnalysis(
        summary=summary if isinstance(summary, str) and summary else "Summary generation incomplete.",
        top_risks=_string_list(raw.get("topRisks")),
        actions=_string_list(raw.get("actions")),
        email_draft=email if isinstance(email, str) and email else "Unable to generate email draft.",
    )


def _comment_line(comment: Comment) -> str:
    stamp = comment.timestamp
    day = datetime.fromtimestamp(stamp / 1000).strftime("%Y-%m-%d") if stamp is not None else "?"
    return f'[{day}] {comment.user.username} on task "{comment.task_name or ""}": "{comment.comment_text}"'


def build_prompt(projects: Sequence[Project], comments: Sequence[Comment], comment_limit: int = 50) -> str:
    narrative = "\n".join(_comment_line(comment) for comment in comments[:comment_limit])
    context = ", ".join(f"{project.name} (Risk: {project.risk_level.value})" for project in projects)
    return f"""
You are a Project Manager Assistant. Your goal is to write a weekly status summary based PRIMARILY on the team's latest comments.

CONTEXT:
Projects: {context}

LATEST TEAM COMMENTS:
{narrative or "No comments recorded this week."}

INSTRUCTIONS:
1. Summary: Synthesize the comments into a cohesive narrative grouped by project or topic. If there are no comments, state that there have been no written updates recorded this week.
2. Top Risks: Identify risks based on blockers or issues mentioned in the comments (e.g. "waiting for", "stuck", "error"). If none are mentioned, look at project risk levels.
3. Actions: Suggest follow-ups based on the comments.
4. Email Draft: Write a professional, concise status email to stakeholders highlighting key achievements.

Provide the output in JSON format.
"""


class DashboardSummarizer:
    """Вызывает модель и классифицирует ошибки; наружу ошибки не выходят."""

    def __init__(self, client: JsonGenerator, *, comment_limit: int = 50) -> None:
        self._client = client
        self._comment_limit = comment_limit

    def __call__(self, projects: Sequence[Project], comments: Sequence[Comment]) -> AIAnalysis:
        if not projects and not comments:
            return fresh_copy(NO_DATA_ANALYSIS)
        prompt = build_prompt(projects, comments, self._comment_limit)
        try:
            raw = self._client.generate_json(prompt, RESPONSE_SCHEMA)
        except (SummaryServiceError, requests.RequestException, ValueError) as exc:
            return self._fallback(exc)
        return normalize_analysis(raw)

    @staticmethod
    def _fallback(exc: Exception) -> AIAnalysis:
        if is_quota_error(exc):
            LOGGER.warning("Квота Gemini исчерпана, запрос сводки подавлен")
            return fresh_copy(QUOTA_ANALYSIS)
        LOGGER.error("Не удалось сформировать AI-сводку: %s", exc)
        return fresh_copy(ERROR_ANALYSIS)


__all__ = [
    "DashboardSummarizer",
    "ERROR_ANALYSIS",
    "NO_DATA_ANALYSIS",
    "QUOTA_ANALYSIS",
    "build_prompt",
    "fresh_copy",
    "is_quota_error",
    "normalize_analysis",
]
