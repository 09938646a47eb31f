"""Immutable registry of compiled templates built from extractor configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from core.config.models import ExtractorConfig, TemplateConfig
from core.extract.matcher import extract, extract_repeated
from core.extract.models import DEFAULT_FALLBACK, ExtractionResult
from core.extract.normalizers import NormalizerHandler
from core.templates.compiler import compile_template
from core.templates.models import Template
from core.utils.errors import TemplateNotFoundError, TemplateSyntaxError


@dataclass(frozen=True)
class RegisteredTemplate:
    """Compiled template plus how it should be run."""

    name: str
    template: Template
    repeated: bool = False
    description: str | None = None


class TemplateRegistry:
    """Read-only name -> compiled template lookup."""

    def __init__(
        self,
        entries: Mapping[str, RegisteredTemplate],
        fallback: str = DEFAULT_FALLBACK,
    ) -> None:
        self._entries = MappingProxyType(dict(entries))
        self._fallback = fallback

    @property
    def fallback(self) -> str:
        return self._fallback

    def get(self, name: str) -> RegisteredTemplate:
        try:
            return self._entries[name]
        except KeyError as exc:
            raise TemplateNotFoundError(name) from exc

    def names(self) -> list[str]:
        """Return registered template names in stable order."""

        return sorted(self._entries)

    def list_all(self) -> list[RegisteredTemplate]:
        return [self._entries[name] for name in self.names()]

    def run(
        self,
        name: str,
        source: str,
        normalizers: Mapping[str, NormalizerHandler] | None = None,
    ) -> list[ExtractionResult]:
        """Run one registered template; single templates yield a one-item list."""

        entry = self.get(name)
        if entry.repeated:
            return list(extract_repeated(entry.template, source, normalizers, self._fallback))
        return [extract(entry.template, source, normalizers, self._fallback)]


def build_registry(config: ExtractorConfig) -> TemplateRegistry:
    """Compile every configured template once.

    Raises:
        TemplateSyntaxError: a configured pattern is malformed; the message
            names the template key.
    """

    entries: dict[str, RegisteredTemplate] = {}
    for name, template_config in config.templates.items():
        try:
            template = _compile_config(template_config)
        except TemplateSyntaxError as exc:
            raise TemplateSyntaxError(
                f"Template '{name}': {exc}",
                pattern=exc.pattern,
                position=exc.position,
            ) from exc
        entries[name] = RegisteredTemplate(
            name=name,
            template=template,
            repeated=template_config.repeated,
            description=template_config.description,
        )
    return TemplateRegistry(entries, fallback=config.fallback)


def _compile_config(template_config: TemplateConfig) -> Template:
    children = {
        field_name: _compile_config(child)
        for field_name, child in template_config.children.items()
    }
    repeated_children = {
        field_name
        for field_name, child in template_config.children.items()
        if child.repeated
    }
    return compile_template(
        template_config.pattern,
        children=children,
        repeated_children=repeated_children,
        defaults=template_config.defaults,
    )
