"""Typer CLI entrypoint for anchorex."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, cast

import typer

from apps.cli.format_human import count_statuses, render_extraction_summary
from apps.cli.io import build_result_payload, dump_json, read_source_text, write_json_atomic
from core.config.loader import load_config
from core.extract.matcher import extract, extract_repeated
from core.extract.models import DEFAULT_FALLBACK, ExtractionResult
from core.templates.compiler import compile_template
from core.templates.models import LiteralSegment, Template
from core.templates.registry import TemplateRegistry, build_registry
from core.utils.errors import ConfigError, TemplateNotFoundError, TemplateSyntaxError

app = typer.Typer(help="Anchor-based template extraction CLI", rich_markup_mode=None)
ReportMode = Literal["human", "json", "both"]


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("compile")
def compile_command(
    pattern: Annotated[str, typer.Option(..., help="Template pattern to compile.")],
) -> None:
    """Compile a pattern and print its canonical form and segments."""

    try:
        template = compile_template(pattern)
    except TemplateSyntaxError as exc:
        typer.echo(f"ERROR: template syntax: {exc}")
        raise typer.Exit(code=3) from exc

    typer.echo(f"pattern: {template.to_pattern()}")
    for segment in template.segments:
        if isinstance(segment, LiteralSegment):
            typer.echo(f"  literal {segment.text!r}")
        else:
            typer.echo(
                f"  placeholder {segment.name} type={segment.descriptor.field_type.tag}"
                f" kind={segment.descriptor.field_type.kind.value}"
            )
    typer.echo(f"INFO: {len(template.placeholders)} placeholders")


@app.command("templates")
def templates_command(
    config: Annotated[
        Path | None,
        typer.Option(exists=True, dir_okay=False, file_okay=True, help="Extractor YAML config."),
    ] = None,
) -> None:
    """List templates registered in the extractor config."""

    registry = _load_registry_or_exit(config, fallback=None)
    for entry in registry.list_all():
        fields = ",".join(entry.template.field_names) or "-"
        line = f"{entry.name} repeated={str(entry.repeated).lower()} fields={fields}"
        if entry.description:
            line += f" # {entry.description}"
        typer.echo(line)


@app.command("extract")
def extract_command(
    source: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    pattern: Annotated[str | None, typer.Option(help="Inline template pattern.")] = None,
    template: Annotated[str | None, typer.Option(help="Registered template name.")] = None,
    config: Annotated[
        Path | None,
        typer.Option(exists=True, dir_okay=False, file_okay=True, help="Extractor YAML config."),
    ] = None,
    repeated: Annotated[
        bool, typer.Option("--repeated", help="Extract repeated rows with an inline pattern.")
    ] = False,
    fallback: Annotated[
        str | None, typer.Option(help="Value used for fields that cannot be located.")
    ] = None,
    out: Annotated[Path | None, typer.Option(help="Write the JSON result to this file.")] = None,
    report: Annotated[str, typer.Option()] = "human",
    require_all: Annotated[
        bool,
        typer.Option("--require-all", help="Exit 2 when any field is missing or mismatched."),
    ] = False,
) -> None:
    """Extract fields from one source document."""

    normalized_report = report.lower().strip()
    if normalized_report not in {"human", "json", "both"}:
        typer.echo("ERROR: --report must be one of: human, json, both.")
        raise typer.Exit(code=1)
    report_typed = cast(ReportMode, normalized_report)

    if (pattern is None) == (template is None):
        typer.echo("ERROR: exactly one of --pattern or --template is required.")
        raise typer.Exit(code=1)
    if repeated and template is not None:
        typer.echo("ERROR: --repeated applies to --pattern only; registered templates set it.")
        raise typer.Exit(code=1)

    try:
        source_text = read_source_text(source)
    except (OSError, UnicodeDecodeError) as exc:
        typer.echo(f"ERROR: cannot read source: {exc}")
        raise typer.Exit(code=1) from exc

    rows: list[ExtractionResult]
    if pattern is not None:
        try:
            compiled = compile_template(pattern)
        except TemplateSyntaxError as exc:
            typer.echo(f"ERROR: template syntax: {exc}")
            raise typer.Exit(code=3) from exc
        rows = _run_inline(compiled, source_text, repeated, fallback or DEFAULT_FALLBACK)
        template_label = "inline"
        canonical = compiled.to_pattern()
    else:
        registry = _load_registry_or_exit(config, fallback=fallback)
        try:
            entry = registry.get(cast(str, template))
        except TemplateNotFoundError as exc:
            typer.echo(f"ERROR: {exc}")
            raise typer.Exit(code=1) from exc
        rows = registry.run(entry.name, source_text)
        repeated = entry.repeated
        template_label = entry.name
        canonical = entry.template.to_pattern()

    status_counts = count_statuses(rows)
    payload = build_result_payload(
        rows,
        template_name=None if pattern is not None else template_label,
        pattern=canonical,
        repeated=repeated,
        status_counts=status_counts,
    )

    if report_typed in {"human", "both"}:
        typer.echo(
            render_extraction_summary(rows, template_label=template_label, repeated=repeated)
        )
    if report_typed in {"json", "both"}:
        typer.echo(dump_json(payload))

    if out is not None:
        try:
            write_json_atomic(out, payload)
        except OSError as exc:
            typer.echo(f"ERROR: write output failed: {exc}")
            raise typer.Exit(code=1) from exc
        typer.echo(f"INFO: wrote result to {out}")

    if require_all and (not rows or not all(row.ok for row in rows)):
        typer.echo("ERROR: missing or mismatched fields")
        raise typer.Exit(code=2)

    typer.echo("INFO: success")


def _run_inline(
    compiled: Template, source_text: str, repeated: bool, fallback: str
) -> list[ExtractionResult]:
    if repeated:
        return list(extract_repeated(compiled, source_text, fallback=fallback))
    return [extract(compiled, source_text, fallback=fallback)]


def _load_registry_or_exit(config: Path | None, *, fallback: str | None) -> TemplateRegistry:
    try:
        extractor_config = load_config(config)
    except ConfigError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    if fallback is not None:
        extractor_config = extractor_config.model_copy(update={"fallback": fallback})

    try:
        return build_registry(extractor_config)
    except TemplateSyntaxError as exc:
        typer.echo(f"ERROR: template syntax: {exc}")
        raise typer.Exit(code=3) from exc


def main() -> None:
    """Poetry script entrypoint."""

    app()


if __name__ == "__main__":
    main()
