"""Custom exceptions for core logic."""

from __future__ import annotations


class TemplateSyntaxError(Exception):
    """Raised when a template pattern cannot be compiled."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        position: int | None = None,
    ) -> None:
        super().__init__(message)
        self.pattern = pattern
        self.position = position


class ConfigError(ValueError):
    """Raised when an extractor configuration file is unreadable or invalid."""


class TemplateNotFoundError(KeyError):
    """Raised when a registry lookup names an unknown template."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown template: {self.name}"
