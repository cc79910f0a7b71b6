from __future__ import annotations

import json
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Optional

import typer

from template_scheduler.core.derive.derive_template import derive_template, template_to_dict
from template_scheduler.core.errors import (
    ScheduleError,
    TemplateLoadError,
    TemplateValidationError,
)
from template_scheduler.core.expand.expand_schedule import dump_yaml, expand_schedule, materialize_service
from template_scheduler.core.expand.template_config import TemplateConfigError, load_and_merge
from template_scheduler.core.io.load_template import load_document, load_template
from template_scheduler.core.lint.lint_template import lint_template
from template_scheduler.core.parse.parse_duration import format_duration
from template_scheduler.core.preview.preview_schedule import coerce_anchor, preview_rows, preview_schedule
from template_scheduler.core.template.template_graph import TemplateGraph
from template_scheduler.core.validate.validate_duration import parse_and_validate
from template_scheduler.core.validate.validate_template import validate_template

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def _callback() -> None:
    """Service template scheduler CLI."""
    return


@app.command("parse")
def parse(
    text: str = typer.Argument(..., help="Relative offset, e.g. '2 weeks' or 'same day'"),
) -> None:
    """Parse a relative offset and print its day count."""
    duration, error = parse_and_validate(text, path="text")
    if error is not None or duration is None:
        _print_errors([error] if error else [])
        raise typer.Exit(code=2)
    typer.echo(f"OK: {duration.days} days ({format_duration(duration.days)})")


@app.command("templates")
def templates(
    template_file: str | None = typer.Option(
        None,
        "--template-file",
        help="Optional YAML file to add/override templates",
    ),
) -> None:
    """List available service templates."""
    templates_map = _load_library(template_file, file=None)

    typer.echo("Templates:")
    for name in sorted(templates_map.keys()):
        doc = templates_map[name]
        milestones = doc.get("milestones") or []
        names = [m.get("name", "?") for m in milestones if isinstance(m, dict)]
        typer.echo(f"- {name}: {', '.join(names)}")


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a template file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate and lint a template file."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    def _to_item(e: ScheduleError) -> dict:
        if isinstance(e, TemplateLoadError):
            source = "load"
        elif e.code.startswith("L_"):
            source = "lint"
        else:
            source = "validate"
        return {
            "code": e.code,
            "message": e.message,
            "file": e.file,
            "path": e.path,
            "severity": "error",
            "source": source,
        }

    def _emit_json(ok: bool, *, exit_code: int, errors: list[ScheduleError], summary: dict | None) -> None:
        payload = {
            "tool": "scheduler",
            "command": "validate",
            "ok": ok,
            "error_count": len(errors),
            "errors": [_to_item(e) for e in errors],
            "summary": summary,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        template = load_template(path)
    except TemplateLoadError as e:
        if format == "json":
            _emit_json(False, exit_code=1, errors=[e], summary=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    graph, errors = validate_template(template)
    all_errors: list[ScheduleError] = list(errors)
    if graph is not None:
        all_errors.extend(lint_template(graph, file=template.get("__file__")))

    if all_errors or graph is None:
        if format == "json":
            _emit_json(False, exit_code=2, errors=all_errors, summary=None)
        _print_errors(all_errors)
        raise typer.Exit(code=2)

    summary = {
        "name": graph.name,
        "milestone_count": len(graph.milestones),
        "task_count": graph.task_count(),
    }
    if format == "json":
        _emit_json(True, exit_code=0, errors=[], summary=summary)
    typer.echo(f"OK: {graph.name} ({summary['milestone_count']} milestones, {summary['task_count']} tasks)")


@app.command("expand")
def expand(
    path: str | None = typer.Argument(None, help="Path to a template file (.yaml/.yml/.json)"),
    start: str = typer.Option(..., "--start", help="Service start date (YYYY-MM-DD)"),
    out: str = typer.Option(..., "--out", help="Path to write the service YAML"),
    template: str | None = typer.Option(None, "--template", help="Library template name (instead of PATH)"),
    template_file: str | None = typer.Option(
        None,
        "--template-file",
        help="Optional YAML file to add/override templates",
    ),
    name: str | None = typer.Option(None, "--name", help="Service name (defaults to template name)"),
) -> None:
    """Expand a template into a concrete service schedule."""
    graph, file = _resolve_graph(path, template, template_file)
    anchor = _parse_start(start, file)

    schedule, error = expand_schedule(graph, anchor)
    if error is not None or schedule is None:
        _print_errors([_with_file(error, file)] if error else [])
        raise typer.Exit(code=2)

    service = materialize_service(graph, schedule, service_name=name)
    _write_yaml(out, service)
    typer.echo(f"OK: wrote service to {out}")


@app.command("preview")
def preview(
    path: str | None = typer.Argument(None, help="Path to a template file (.yaml/.yml/.json)"),
    start: str = typer.Option(..., "--start", help="Service start date (YYYY-MM-DD)"),
    template: str | None = typer.Option(None, "--template", help="Library template name (instead of PATH)"),
    template_file: str | None = typer.Option(
        None,
        "--template-file",
        help="Optional YAML file to add/override templates",
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Print the dates a template would produce, without writing anything."""
    _check_format(format, "E_PREVIEW_UNKNOWN_FORMAT")
    graph, file = _resolve_graph(path, template, template_file)

    schedule, error = preview_schedule(graph, start)
    if error is not None or schedule is None:
        _print_errors([_with_file(error, file)] if error else [])
        raise typer.Exit(code=2)

    anchor = schedule.anchor_date
    rows = preview_rows(graph, schedule)
    if format == "json":
        payload = {
            "tool": "scheduler",
            "command": "preview",
            "ok": True,
            "start_date": anchor.isoformat(),
            "milestones": rows,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(f"{graph.name} from {anchor.isoformat()}")
    for row in rows:
        typer.echo(f"- {row['name']}: {row['start_date']} -> {row['due_date'] or 'TBD'}")
        for t in row["tasks"]:
            typer.echo(f"    - {t['title']}: {t['due_date'] or 'TBD'}")


@app.command("derive")
def derive(
    path: str = typer.Argument(..., help="Path to a service file (.yaml/.yml/.json)"),
    out: str = typer.Option(..., "--out", help="Path to write the template YAML"),
    name: str | None = typer.Option(None, "--name", help="Template name (defaults to service name)"),
) -> None:
    """Derive a reusable template from a concrete service's dates."""
    try:
        service = load_document(path)
    except TemplateLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    graph, errors = derive_template(service, name=name)
    if errors or graph is None:
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    _write_yaml(out, template_to_dict(graph))
    typer.echo(f"OK: wrote template to {out}")


def _resolve_graph(
    path: Optional[str], template: Optional[str], template_file: Optional[str]
) -> tuple[TemplateGraph, Optional[str]]:
    if (path is None) == (template is None):
        _print_errors(
            [
                TemplateValidationError(
                    code="E_TEMPLATE_SOURCE",
                    message="pass exactly one of PATH or --template",
                    file=None,
                    path="template",
                )
            ]
        )
        raise typer.Exit(code=2)

    if path is not None:
        try:
            doc = load_template(path)
        except TemplateLoadError as e:
            _print_errors([e])
            raise typer.Exit(code=1)
    else:
        templates_map = _load_library(template_file, file=None)
        if template not in templates_map:
            _print_errors(
                [
                    TemplateValidationError(
                        code="E_UNKNOWN_TEMPLATE",
                        message=f"unknown template: {template} (choose one of: {', '.join(sorted(templates_map.keys()))})",
                        file=template_file,
                        path="template",
                    )
                ]
            )
            raise typer.Exit(code=2)
        doc = dict(templates_map[template or ""])

    file = doc.get("__file__")
    graph, errors = validate_template(doc)
    if errors or graph is None:
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return graph, file


def _load_library(template_file: Optional[str], *, file: Optional[str]) -> dict[str, dict[str, Any]]:
    try:
        return load_and_merge(template_file)
    except FileNotFoundError:
        _print_errors(
            [
                TemplateLoadError(
                    code="E_TEMPLATE_FILE_NOT_FOUND",
                    message=f"template file not found: {template_file}",
                    file=file,
                    path="template_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except TemplateConfigError as e:
        _print_errors(
            [
                TemplateValidationError(
                    code="E_TEMPLATE_FILE_INVALID",
                    message=str(e),
                    file=file,
                    path="template_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _parse_start(start: str, file: Optional[str]) -> date:
    anchor = coerce_anchor(start)
    if anchor is None:
        _print_errors(
            [
                TemplateValidationError(
                    code="E_INVALID_START_DATE",
                    message=f"--start must be a YYYY-MM-DD date, got {start!r}",
                    file=file,
                    path="start",
                )
            ]
        )
        raise typer.Exit(code=2)
    return anchor


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        _print_errors(
            [
                TemplateValidationError(
                    code=code,
                    message=f"unknown format: {format} (choose one of: text, json)",
                    file=None,
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)


def _with_file(error: ScheduleError, file: Optional[str]) -> ScheduleError:
    if file is None or error.file:
        return error
    return replace(error, file=file)


def _write_yaml(path: str, doc: dict[str, Any]) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    dump_yaml(doc, str(p))


def _print_errors(errors: list[ScheduleError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="scheduler")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
