"""Дашборд состояния проектов ClickUp."""

__version__ = "0.1.0"
