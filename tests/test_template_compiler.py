from __future__ import annotations

import pytest

from core.templates.compiler import compile_template
from core.templates.models import FieldKind, LiteralSegment, PlaceholderSegment, Template
from core.utils.errors import TemplateSyntaxError


def test_compile_literal_placeholder_literal() -> None:
    template = compile_template("<a>{{NUMERIC:X}}</a>")

    assert len(template.segments) == 3
    assert template.segments[0] == LiteralSegment(text="<a>")
    placeholder = template.segments[1]
    assert isinstance(placeholder, PlaceholderSegment)
    assert placeholder.name == "X"
    assert placeholder.descriptor.field_type.kind is FieldKind.NUMERIC
    assert template.segments[2] == LiteralSegment(text="</a>")
    assert template.field_names == ["X"]


def test_compile_keeps_whitespace_verbatim() -> None:
    template = compile_template("  <b> {{TEXT:A}} </b>\n")

    assert template.segments[0] == LiteralSegment(text="  <b> ")
    assert template.segments[-1] == LiteralSegment(text=" </b>\n")


def test_compile_pure_literal_template_is_valid() -> None:
    template = compile_template("just text")

    assert template.segments == (LiteralSegment(text="just text"),)
    assert template.placeholders == ()


def test_compile_empty_pattern_has_no_segments() -> None:
    assert compile_template("").segments == ()


def test_compile_single_braces_are_literal() -> None:
    template = compile_template("a{b}{{TEXT:X}}c}")

    assert template.segments[0] == LiteralSegment(text="a{b}")
    assert template.segments[2] == LiteralSegment(text="c}")


def test_compile_adjacent_placeholders_have_no_literal_between() -> None:
    template = compile_template("[{{TEXT:A}}{{TEXT:B}}]")

    kinds = [type(segment).__name__ for segment in template.segments]
    assert kinds == ["LiteralSegment", "PlaceholderSegment", "PlaceholderSegment", "LiteralSegment"]


def test_compile_is_deterministic() -> None:
    pattern = "<td>{{NUMERIC:A}}</td><td>{{DATE:B}}</td>"

    assert compile_template(pattern) == compile_template(pattern)


def test_compile_round_trip_through_canonical_pattern() -> None:
    template = compile_template("Name: {{TEXT:NAME}}, age {{NUMERIC:AGE}} ({{custom_tag:NOTE}})")

    recompiled = compile_template(template.to_pattern())

    assert recompiled.segments == template.segments
    assert recompiled.to_pattern() == template.to_pattern()


def test_compile_unterminated_placeholder_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="Unterminated") as exc_info:
        compile_template("{{NUMERIC:X")

    assert exc_info.value.position == 0
    assert exc_info.value.pattern == "{{NUMERIC:X"


def test_compile_stray_close_marker_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="Unbalanced") as exc_info:
        compile_template("abc}}{{TEXT:X}}")

    assert exc_info.value.position == 3


def test_compile_nested_open_marker_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="Nested"):
        compile_template("{{TEXT:{{TEXT:X}}")


def test_compile_missing_separator_reports_position() -> None:
    with pytest.raises(TemplateSyntaxError, match="missing ':'") as exc_info:
        compile_template("ab{{NUMERIC}}")

    assert exc_info.value.position == 2


def test_compile_duplicate_field_name_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="Duplicate field name 'X'"):
        compile_template("{{TEXT:X}}-{{NUMERIC:X}}")


def test_compile_attaches_child_templates_and_defaults() -> None:
    template = compile_template(
        "<ul>{{TEXT:LIST}}</ul><p>{{NUMERIC:COUNT}}</p>",
        children={"LIST": "<li>{{TEXT:ITEM}}</li>"},
        repeated_children={"LIST"},
        defaults={"COUNT": "0"},
    )

    list_segment, count_segment = template.placeholders
    assert isinstance(list_segment.child, Template)
    assert list_segment.child.field_names == ["ITEM"]
    assert list_segment.repeat_child is True
    assert count_segment.child is None
    assert count_segment.default == "0"


def test_compile_child_for_unknown_field_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="unknown fields: OTHER"):
        compile_template("<a>{{TEXT:X}}</a>", children={"OTHER": "{{TEXT:Y}}"})


def test_compile_malformed_child_pattern_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="Unterminated"):
        compile_template("<a>{{TEXT:X}}</a>", children={"X": "<b>{{TEXT:Y"})
