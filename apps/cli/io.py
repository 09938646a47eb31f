"""CLI I/O helpers for source reading and atomic output writing."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any

from core.extract.models import ExtractionResult


def read_source_text(path: Path) -> str:
    """Read a retrieved document body as UTF-8 text."""

    return path.read_text(encoding="utf-8")


def build_result_payload(
    rows: list[ExtractionResult],
    *,
    template_name: str | None,
    pattern: str,
    repeated: bool,
    status_counts: dict[str, int],
) -> dict[str, Any]:
    """Build the JSON document written for one extract run."""

    return {
        "template": template_name,
        "pattern": pattern,
        "repeated": repeated,
        "rows": [row.model_dump(mode="json", exclude_none=True) for row in rows],
        "summary": {"row_count": len(rows), "statuses": status_counts},
    }


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write JSON payload atomically using a temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
        except Exception:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise

    tmp_path.replace(path)


def dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
