"""Extraction result models."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FieldStatus = Literal["found", "missing", "fallback_applied", "type_mismatch"]

DEFAULT_FALLBACK = "N/A"


class FieldResult(BaseModel):
    """Value and status of one extracted placeholder."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    value: str
    status: FieldStatus
    nested: ExtractionResult | None = None
    rows: list[ExtractionResult] | None = None


class ExtractionResult(BaseModel):
    """Ordered field name -> result mapping for one extraction call.

    Rules:
    - one entry per template placeholder, in template order
    - ok == (no entry is missing or type_mismatch)
    """

    model_config = ConfigDict(extra="forbid")

    entries: dict[str, FieldResult] = Field(default_factory=dict)

    def __getitem__(self, name: str) -> FieldResult:
        return self.entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def names(self) -> Iterator[str]:
        return iter(self.entries)

    def value_map(self) -> dict[str, str]:
        return {name: item.value for name, item in self.entries.items()}

    def names_with_status(self, *statuses: FieldStatus) -> list[str]:
        return [name for name, item in self.entries.items() if item.status in statuses]

    @property
    def ok(self) -> bool:
        return not self.names_with_status("missing", "type_mismatch")


FieldResult.model_rebuild()
ExtractionResult.model_rebuild()
