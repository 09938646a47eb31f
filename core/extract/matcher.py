"""Anchor matcher: walks a compiled template over source text with a forward-only cursor."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from core.extract.models import DEFAULT_FALLBACK, ExtractionResult, FieldResult
from core.extract.normalizers import (
    NormalizerHandler,
    NormalizerTable,
    build_normalizer_table,
    normalize,
)
from core.templates.models import LiteralSegment, PlaceholderSegment, Segment, Template

logger = logging.getLogger("anchorex.extract")


@dataclass(frozen=True)
class _MatchOutcome:
    result: ExtractionResult
    end: int
    anchor_lost: bool = False


def extract(
    template: Template,
    source: str,
    normalizers: Mapping[str, NormalizerHandler] | None = None,
    fallback: str = DEFAULT_FALLBACK,
) -> ExtractionResult:
    """Extract every placeholder of ``template`` from ``source``.

    Rules:
    - Literals are searched from the cursor and consumed on match.
    - A placeholder spans from the cursor to the next literal's match start;
      the last placeholder spans to the end of source.
    - A placeholder that cannot be bound leaves the cursor unchanged.
    - A literal that cannot be found marks every later placeholder missing.
    - The cursor never moves backwards, so the Nth placeholder sharing an
      anchor binds the Nth occurrence.

    Args:
        template: Compiled template.
        source: Text to extract from (never modified).
        normalizers: Optional handlers keyed by field type tag.
        fallback: Value used for fields that cannot be located.

    Returns:
        ExtractionResult with one entry per placeholder, in template order.
    """

    table = build_normalizer_table(normalizers)
    return _match(template, source, 0, table, fallback).result


def extract_repeated(
    row_template: Template,
    source: str,
    normalizers: Mapping[str, NormalizerHandler] | None = None,
    fallback: str = DEFAULT_FALLBACK,
) -> Iterator[ExtractionResult]:
    """Lazily extract consecutive rows of ``row_template`` from ``source``.

    Each row starts where the previous one ended. Iteration stops once the
    row's leading literal is absent from the remaining text, a row loses one
    of its later anchors (that partial row is still yielded), or a row makes
    no forward progress.
    """

    table = build_normalizer_table(normalizers)
    return _iter_rows(row_template, source, table, fallback)


def _iter_rows(
    template: Template,
    source: str,
    table: NormalizerTable,
    fallback: str,
) -> Iterator[ExtractionResult]:
    leading = template.leading_literal
    cursor = 0
    while True:
        if leading is not None and source.find(leading.text, cursor) == -1:
            return
        outcome = _match(template, source, cursor, table, fallback)
        if outcome.end <= cursor:
            return
        yield outcome.result
        if outcome.anchor_lost:
            # later rows only search a shorter suffix for the same anchor
            return
        cursor = outcome.end


def _match(
    template: Template,
    source: str,
    start: int,
    table: NormalizerTable,
    fallback: str,
) -> _MatchOutcome:
    segments = template.segments
    cursor = start
    anchor_lost = False
    entries: dict[str, FieldResult] = {}

    for index, segment in enumerate(segments):
        if isinstance(segment, LiteralSegment):
            if anchor_lost:
                continue
            found_at = source.find(segment.text, cursor)
            if found_at == -1:
                logger.debug("anchor %r not found after offset %d", segment.text, cursor)
                anchor_lost = True
                continue
            cursor = found_at + len(segment.text)
            continue

        span = ""
        if not anchor_lost:
            span, cursor = _bind_span(segments, index, source, cursor)
        entries[segment.name] = _resolve_field(segment, span, table, fallback)

    return _MatchOutcome(
        result=ExtractionResult(entries=entries), end=cursor, anchor_lost=anchor_lost
    )


def _bind_span(
    segments: tuple[Segment, ...],
    index: int,
    source: str,
    cursor: int,
) -> tuple[str, int]:
    """Return (raw span, new cursor) for the placeholder at ``index``."""

    if index + 1 == len(segments):
        return source[cursor:], len(source)

    following = segments[index + 1]
    if not isinstance(following, LiteralSegment):
        # adjacent placeholders: no boundary to stop at
        return "", cursor

    anchor_at = source.find(following.text, cursor)
    if anchor_at <= cursor:
        return "", cursor
    return source[cursor:anchor_at], anchor_at


def _resolve_field(
    segment: PlaceholderSegment,
    span: str,
    table: NormalizerTable,
    fallback: str,
) -> FieldResult:
    result = normalize(segment.descriptor.field_type, span, table, fallback)
    value = result.value
    status = result.status
    if status == "missing" and segment.default is not None:
        value = segment.default
        status = "fallback_applied"

    if segment.child is None:
        return FieldResult(value=value, status=status)

    if segment.repeat_child:
        rows = list(_iter_rows(segment.child, span, table, fallback))
        return FieldResult(value=value, status=status, rows=rows)

    nested = _match(segment.child, span, 0, table, fallback).result
    return FieldResult(value=value, status=status, nested=nested)
