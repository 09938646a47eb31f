"""Human-readable extraction summary rendering for CLI output."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator

from core.extract.models import ExtractionResult, FieldResult

_MAX_ROWS_SHOWN = 5
_MAX_VALUE_CHARS = 60


def count_statuses(rows: list[ExtractionResult]) -> dict[str, int]:
    """Count field statuses across rows, nested fields included."""

    counter: Counter[str] = Counter()
    for row in rows:
        for _, item in _walk(row, ""):
            counter[item.status] += 1
    return {status: counter[status] for status in sorted(counter)}


def render_extraction_summary(
    rows: list[ExtractionResult],
    *,
    template_label: str,
    repeated: bool,
) -> str:
    """Render one-screen human-readable extraction summary."""

    lines: list[str] = []
    lines.append("extract_summary:")
    lines.append(f"template={template_label} repeated={str(repeated).lower()} rows={len(rows)}")

    counts = count_statuses(rows)
    if counts:
        lines.append("statuses: " + ", ".join(f"{key}={value}" for key, value in counts.items()))
    else:
        lines.append("statuses: none")

    for index, row in enumerate(rows[:_MAX_ROWS_SHOWN]):
        lines.append(f"row[{index}]:")
        for name, item in _walk(row, ""):
            lines.append(f"  {name} [{item.status}] {_shorten(item.value)}")
    if len(rows) > _MAX_ROWS_SHOWN:
        lines.append(f"... {len(rows) - _MAX_ROWS_SHOWN} more rows")

    return "\n".join(lines)


def _walk(result: ExtractionResult, prefix: str) -> Iterator[tuple[str, FieldResult]]:
    for name, item in result.entries.items():
        path = f"{prefix}{name}"
        yield path, item
        if item.nested is not None:
            yield from _walk(item.nested, f"{path}.")
        for index, row in enumerate(item.rows or []):
            yield from _walk(row, f"{path}[{index}].")


def _shorten(value: str) -> str:
    flat = " ".join(value.split())
    if len(flat) > _MAX_VALUE_CHARS:
        flat = flat[: _MAX_VALUE_CHARS - 3] + "..."
    return repr(flat)
