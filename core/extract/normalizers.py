"""Per-type normalization of raw extracted spans."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from core.extract.models import FieldResult
from core.templates.models import FieldKind, FieldType

NormalizerHandler = Callable[[str], str]

logger = logging.getLogger("anchorex.extract")

_NUMERIC_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_GROUPING_SEPARATORS = (",",)


class NormalizationMismatch(ValueError):
    """Raised by a handler when the span does not fit its type.

    ``value`` carries the best-effort cleaned text kept in the result.
    """

    def __init__(self, message: str, *, value: str) -> None:
        super().__init__(message)
        self.value = value


def normalize_numeric(raw: str) -> str:
    cleaned = raw.strip()
    for separator in _GROUPING_SEPARATORS:
        cleaned = cleaned.replace(separator, "")
    if not _NUMERIC_RE.fullmatch(cleaned):
        raise NormalizationMismatch(f"not a numeric literal: {cleaned!r}", value=cleaned)
    return cleaned


def normalize_text(raw: str) -> str:
    return raw.strip()


_BUILTIN_HANDLERS: Mapping[str, NormalizerHandler] = MappingProxyType(
    {
        FieldKind.NUMERIC.value: normalize_numeric,
        FieldKind.TEXT.value: normalize_text,
    }
)


@dataclass(frozen=True)
class NormalizerTable:
    """Resolved handler table keyed by field type tag."""

    handlers: Mapping[str, NormalizerHandler] = field(
        default_factory=lambda: _BUILTIN_HANDLERS
    )

    def resolve(self, field_type: FieldType) -> NormalizerHandler | None:
        return self.handlers.get(field_type.tag)


def build_normalizer_table(
    overrides: Mapping[str, NormalizerHandler] | None = None,
) -> NormalizerTable:
    """Merge caller handlers over the builtin NUMERIC/TEXT handlers."""

    if not overrides:
        return NormalizerTable()
    merged = dict(_BUILTIN_HANDLERS)
    merged.update(overrides)
    return NormalizerTable(handlers=MappingProxyType(merged))


def normalize(
    field_type: FieldType,
    raw: str,
    table: NormalizerTable,
    fallback: str,
) -> FieldResult:
    """Normalize one raw span.

    Rules:
    - empty span -> fallback value, status missing (no handler call)
    - no handler for a CUSTOM tag -> raw passthrough, status found
    - handler raising ValueError -> best-effort value, status type_mismatch
    - handler failing any other way -> raw value, status type_mismatch; the
      failure is logged and the remaining fields are still extracted
    """

    if not raw:
        return FieldResult(value=fallback, status="missing")

    handler = table.resolve(field_type)
    if handler is None:
        return FieldResult(value=raw, status="found")

    try:
        value = handler(raw)
    except NormalizationMismatch as exc:
        return FieldResult(value=exc.value, status="type_mismatch")
    except ValueError:
        return FieldResult(value=raw, status="type_mismatch")
    except Exception:  # noqa: BLE001
        logger.warning("normalizer for %s failed", field_type.tag, exc_info=True)
        return FieldResult(value=raw, status="type_mismatch")
    return FieldResult(value=value, status="found")
