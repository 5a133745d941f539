"""Правила видимости проектов для отдельных пространств."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from clickup_dashboard.config import VisibilityRuleConfig
from clickup_dashboard.models import Project, Space


@dataclass(frozen=True)
class VisibilityRule:
    """Для пространства с подходящим именем показываются только проекты с ключевыми словами."""

    exact_names: tuple[str, ...]
    name_contains: tuple[str, ...]
    project_keywords: tuple[str, ...]

    @classmethod
    def from_config(cls, config: VisibilityRuleConfig) -> "VisibilityRule":
        return cls(
            exact_names=tuple(config.exact_names),
            name_contains=tuple(item.lower() for item in config.name_contains),
            project_keywords=tuple(item.lower() for item in config.project_keywords),
        )

    def applies_to(self, space: Space) -> bool:
        name = space.name or ""
        if name.strip() in self.exact_names:
            return True
        lowered = name.lower()
        return any(fragment in lowered for fragment in self.name_contains)

    def allows(self, project: Project) -> bool:
        name = project.name.lower()
        return any(keyword in name for keyword in self.project_keywords)


def build_rules(configs: Iterable[VisibilityRuleConfig]) -> List[VisibilityRule]:
    return [VisibilityRule.from_config(item) for item in configs]


def _rule_for(space: Optional[Space], rules: Sequence[VisibilityRule]) -> Optional[VisibilityRule]:
    if space is None:
        return None
    return next((rule for rule in rules if rule.applies_to(space)), None)


def filter_projects_for_space(
    projects: Iterable[Project],
    space: Optional[Space],
    rules: Sequence[VisibilityRule],
) -> List[Project]:
    """Фильтр для детального режима одного пространства."""
    rule = _rule_for(space, rules)
    if rule is None:
        return list(projects)
    return [project for project in projects if rule.allows(project)]


def apply_visibility_rules(
    projects: Iterable[Project],
    spaces: Iterable[Space],
    rules: Sequence[VisibilityRule],
) -> List[Project]:
    """Фильтр для общего режима: пространство проекта ищется по ``space_id``."""
    by_id: Dict[str, Space] = {space.id: space for space in spaces}
    visible: List[Project] = []
    for project in projects:
        rule = _rule_for(by_id.get(project.space_id), rules)
        if rule is None or rule.allows(project):
            visible.append(project)
    return visible


__all__ = [
    "VisibilityRule",
    "apply_visibility_rules",
    "build_rules",
    "filter_projects_for_space",
]
