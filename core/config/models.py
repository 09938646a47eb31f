"""Data models for extractor configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.extract.models import DEFAULT_FALLBACK


class TemplateConfig(BaseModel):
    """One configured template; children use the same shape (or a bare pattern)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    pattern: str
    description: str | None = None
    repeated: bool = False
    defaults: dict[str, str] = Field(default_factory=dict)
    children: dict[str, TemplateConfig] = Field(default_factory=dict)

    @field_validator("children", mode="before")
    @classmethod
    def _expand_bare_patterns(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {
            name: {"pattern": child} if isinstance(child, str) else child
            for name, child in value.items()
        }


class ExtractorConfig(BaseModel):
    """Extractor configuration loaded from YAML."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    fallback: str = DEFAULT_FALLBACK
    templates: dict[str, TemplateConfig] = Field(default_factory=dict)


TemplateConfig.model_rebuild()
