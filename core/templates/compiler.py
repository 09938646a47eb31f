"""Template compiler for ``{{TYPE:NAME}}`` extraction patterns."""

from __future__ import annotations

from collections.abc import Collection, Mapping

from core.templates.descriptor_parser import parse_field_descriptor
from core.templates.models import LiteralSegment, PlaceholderSegment, Segment, Template
from core.utils.errors import TemplateSyntaxError

_OPEN_MARKER = "{{"
_CLOSE_MARKER = "}}"


def compile_template(
    pattern: str,
    children: Mapping[str, Template | str] | None = None,
    repeated_children: Collection[str] = (),
    defaults: Mapping[str, str] | None = None,
) -> Template:
    """Compile a pattern string into an immutable template.

    Rules:
    - Placeholder format is exactly: {{TYPE:NAME}}
    - Everything outside placeholders is literal, whitespace included.
    - Single braces are literal; ``{{`` and ``}}`` are always markers.
    - Field names must be unique within one pattern.

    Args:
        pattern: Template pattern text.
        children: Optional child templates (or child patterns) keyed by field name.
        repeated_children: Field names whose child template runs as repeated rows.
        defaults: Optional per-field values used when a field is missing.

    Returns:
        Compiled template.

    Raises:
        TemplateSyntaxError: unterminated/stray/nested markers, invalid
            descriptors, duplicate names, or children/defaults for unknown fields.
    """

    child_map = dict(children or {})
    default_map = dict(defaults or {})
    segments: list[Segment] = []
    literal_chunks: list[str] = []
    seen_names: set[str] = set()
    cursor = 0

    while cursor < len(pattern):
        open_at = pattern.find(_OPEN_MARKER, cursor)
        close_at = pattern.find(_CLOSE_MARKER, cursor)

        if close_at != -1 and (open_at == -1 or close_at < open_at):
            raise TemplateSyntaxError(
                f"Unbalanced '{_CLOSE_MARKER}' at position {close_at}",
                pattern=pattern,
                position=close_at,
            )
        if open_at == -1:
            literal_chunks.append(pattern[cursor:])
            break

        literal_chunks.append(pattern[cursor:open_at])
        inner_start = open_at + len(_OPEN_MARKER)
        inner_end = pattern.find(_CLOSE_MARKER, inner_start)
        if inner_end == -1:
            raise TemplateSyntaxError(
                f"Unterminated placeholder starting at position {open_at}",
                pattern=pattern,
                position=open_at,
            )
        nested_at = pattern.find(_OPEN_MARKER, inner_start, inner_end)
        if nested_at != -1:
            raise TemplateSyntaxError(
                f"Nested '{_OPEN_MARKER}' at position {nested_at}",
                pattern=pattern,
                position=nested_at,
            )

        try:
            descriptor = parse_field_descriptor(pattern[inner_start:inner_end])
        except TemplateSyntaxError as exc:
            raise TemplateSyntaxError(str(exc), pattern=pattern, position=open_at) from exc

        if descriptor.name in seen_names:
            raise TemplateSyntaxError(
                f"Duplicate field name '{descriptor.name}'",
                pattern=pattern,
                position=open_at,
            )
        seen_names.add(descriptor.name)

        _flush_literal(segments, literal_chunks)
        child = child_map.pop(descriptor.name, None)
        segments.append(
            PlaceholderSegment(
                descriptor=descriptor,
                child=_compile_child(child),
                repeat_child=child is not None and descriptor.name in repeated_children,
                default=default_map.pop(descriptor.name, None),
            )
        )
        cursor = inner_end + len(_CLOSE_MARKER)

    _flush_literal(segments, literal_chunks)

    if child_map or default_map:
        unknown = ", ".join(sorted(set(child_map) | set(default_map)))
        raise TemplateSyntaxError(
            f"Children or defaults reference unknown fields: {unknown}", pattern=pattern
        )

    return Template(segments=tuple(segments))


def _flush_literal(segments: list[Segment], literal_chunks: list[str]) -> None:
    text = "".join(literal_chunks)
    literal_chunks.clear()
    if text:
        segments.append(LiteralSegment(text=text))


def _compile_child(child: Template | str | None) -> Template | None:
    if child is None or isinstance(child, Template):
        return child
    return compile_template(child)
