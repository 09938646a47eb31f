from __future__ import annotations

from collections.abc import Iterator

from core.extract.matcher import extract_repeated
from core.templates.compiler import compile_template
from core.templates.models import (
    FieldDescriptor,
    FieldType,
    LiteralSegment,
    PlaceholderSegment,
    Template,
)


def test_repeated_rows_in_document_order() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    rows = list(extract_repeated(template, "<li>a</li><li>b</li><li>c</li>"))

    assert [row["ITEM"].value for row in rows] == ["a", "b", "c"]
    assert all(row["ITEM"].status == "found" for row in rows)


def test_repeated_is_lazy_and_not_restartable() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    rows = extract_repeated(template, "<li>a</li><li>b</li>")

    assert isinstance(rows, Iterator)
    assert next(rows)["ITEM"].value == "a"
    assert [row["ITEM"].value for row in rows] == ["b"]
    assert list(rows) == []


def test_repeated_ignores_text_between_rows() -> None:
    template = compile_template("<tr><td>{{TEXT:NAME}}</td><td>{{NUMERIC:QTY}}</td></tr>")
    source = (
        "<table><tr><td>bolts</td><td>1,200</td></tr>\n"
        "<!-- sep --><tr><td>nuts</td><td>40</td></tr></table>"
    )

    rows = list(extract_repeated(template, source))

    assert [row.value_map() for row in rows] == [
        {"NAME": "bolts", "QTY": "1200"},
        {"NAME": "nuts", "QTY": "40"},
    ]


def test_repeated_without_matches_yields_nothing() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    assert list(extract_repeated(template, "<p>none</p>")) == []


def test_repeated_partial_last_row_is_reported() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    rows = list(extract_repeated(template, "<li>a</li><li>b"))

    assert [row["ITEM"].status for row in rows] == ["found", "missing"]


def test_repeated_row_starting_with_placeholder() -> None:
    template = compile_template("{{TEXT:VALUE}};")

    rows = list(extract_repeated(template, "a;b;"))

    assert [row["VALUE"].value for row in rows] == ["a", "b"]


def test_repeated_terminates_with_empty_anchors() -> None:
    placeholder = PlaceholderSegment(
        descriptor=FieldDescriptor(field_type=FieldType.from_token("TEXT"), name="X")
    )
    template = Template(segments=(LiteralSegment(""), placeholder, LiteralSegment("")))

    assert list(extract_repeated(template, "abcabc")) == []


def test_repeated_terminates_for_empty_template() -> None:
    assert list(extract_repeated(Template(), "anything")) == []


def test_repeated_uses_fallback_for_missing_fields() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    rows = list(extract_repeated(template, "<li></li><li>x</li>", fallback="?"))

    assert [row["ITEM"].value for row in rows] == ["?", "x"]


def test_repeated_stops_after_row_that_loses_an_anchor() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    rows = list(extract_repeated(template, "<li>x" * 3))

    assert len(rows) == 1
    assert rows[0]["ITEM"].status == "missing"


def test_repeated_unclosed_rows_after_complete_rows() -> None:
    template = compile_template("<li>{{TEXT:ITEM}}</li>")

    rows = list(extract_repeated(template, "<li>a</li><li>b</li>" + "<li>x" * 50))

    assert [row["ITEM"].status for row in rows] == ["found", "found", "missing"]
