"""Data models for compiled extraction templates."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class FieldKind(str, Enum):
    """Known placeholder value kinds."""

    NUMERIC = "NUMERIC"
    TEXT = "TEXT"
    CUSTOM = "CUSTOM"


_BUILTIN_KINDS = {FieldKind.NUMERIC.value, FieldKind.TEXT.value}


@dataclass(frozen=True)
class FieldType:
    """Tagged field type: a builtin kind or ``CUSTOM`` carrying its raw token."""

    kind: FieldKind
    tag: str

    @classmethod
    def from_token(cls, token: str) -> FieldType:
        if token in _BUILTIN_KINDS:
            return cls(kind=FieldKind(token), tag=token)
        return cls(kind=FieldKind.CUSTOM, tag=token)

    @property
    def is_custom(self) -> bool:
        return self.kind is FieldKind.CUSTOM


@dataclass(frozen=True)
class FieldDescriptor:
    """Parsed ``TYPE:NAME`` pair of one placeholder."""

    field_type: FieldType
    name: str


@dataclass(frozen=True)
class LiteralSegment:
    """Text matched verbatim against the source."""

    text: str


@dataclass(frozen=True)
class PlaceholderSegment:
    """A typed capture slot, optionally owning a nested template."""

    descriptor: FieldDescriptor
    child: Template | None = None
    repeat_child: bool = False
    default: str | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name


Segment = Union[LiteralSegment, PlaceholderSegment]


@dataclass(frozen=True)
class Template:
    """Compiled template.

    Rules:
    - segments are kept in pattern order
    - consecutive literals are merged by the compiler
    - placeholder names are unique within one template
    """

    segments: tuple[Segment, ...] = ()

    @property
    def placeholders(self) -> tuple[PlaceholderSegment, ...]:
        return tuple(
            segment for segment in self.segments if isinstance(segment, PlaceholderSegment)
        )

    @property
    def field_names(self) -> list[str]:
        return [placeholder.name for placeholder in self.placeholders]

    @property
    def leading_literal(self) -> LiteralSegment | None:
        if self.segments and isinstance(self.segments[0], LiteralSegment):
            return self.segments[0]
        return None

    def to_pattern(self) -> str:
        """Render the canonical pattern string (child templates are not included)."""

        parts: list[str] = []
        for segment in self.segments:
            if isinstance(segment, LiteralSegment):
                parts.append(segment.text)
            else:
                descriptor = segment.descriptor
                parts.append(f"{{{{{descriptor.field_type.tag}:{descriptor.name}}}}}")
        return "".join(parts)
