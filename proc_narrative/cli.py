"""Typer CLI for browsing templates and rendering narratives."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from config.settings import get_narrative_settings
from observability.logging_config import VERBOSITY_THRESHOLDS, NarrativeLogger
from proc_narrative.coder.code_assignment import (
    assign_codes,
    format_code_assignments,
    validate_code_compatibility,
)
from proc_narrative.common.exceptions import TemplateLibraryError
from proc_narrative.common.logger import level_for_verbosity, setup_logger
from proc_narrative.reporting.template_library import (
    AnyTemplate,
    TemplateLibrary,
    get_template_library,
    load_template_library,
)
from proc_narrative.reporting.template_processor import generate
from proc_narrative.reporting.validation import validate
from proc_schemas.templates import SharedTemplate

app = typer.Typer(help="Render procedure narratives from templates.")
console = Console()

_TEMPLATES_OPTION = typer.Option(None, "--templates", help="Template directory (defaults to settings).")


def _library(path: Optional[Path]) -> TemplateLibrary:
    try:
        return load_template_library(path) if path is not None else get_template_library()
    except TemplateLibraryError as exc:
        typer.secho(f"Could not load templates: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _template(library: TemplateLibrary, template_id: str) -> AnyTemplate:
    template = library.maybe_get(template_id)
    if template is None:
        typer.secho(f"Unknown template: {template_id}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)
    return template


def _load_values(path: Optional[Path]) -> dict[str, Any]:
    if path is None:
        return {}
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        typer.secho(f"{path} must contain a mapping of field values", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)
    return data


def _cli_logger(verbosity: str) -> NarrativeLogger:
    base = setup_logger("proc_narrative.cli", level_for_verbosity(verbosity))
    return NarrativeLogger(base, verbosity)


@app.command("templates")
def list_templates(
    template_type: Optional[str] = typer.Option(None, "--type", help="finding, action or shared"),
    templates_path: Optional[Path] = _TEMPLATES_OPTION,
) -> None:
    """List the templates in the library."""
    library = _library(templates_path)
    ids = library.by_type.get(template_type, []) if template_type else library.list_ids()

    table = Table(title="Templates", show_lines=False)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("Version", justify="right")
    table.add_column("Category")
    for template_id in ids:
        template = library.get(template_id)
        category = template.category if isinstance(template, SharedTemplate) else ""
        table.add_row(template.id, template.type, template.name, template.version, category)
    console.print(table)


@app.command()
def render(
    template_id: str,
    values_path: Optional[Path] = typer.Option(
        None, "--values", exists=True, readable=True, help="JSON or YAML file of field values."
    ),
    verbosity: str = typer.Option("off", "--verbosity", help="off, simple or verbose"),
    strict: bool = typer.Option(False, "--strict", help="Accept only single comparisons in conditions."),
    templates_path: Optional[Path] = _TEMPLATES_OPTION,
) -> None:
    """Render TEMPLATE_ID with the given field values."""
    if verbosity not in VERBOSITY_THRESHOLDS:
        typer.secho(f"Unknown verbosity: {verbosity}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)
    library = _library(templates_path)
    template = _template(library, template_id)
    if template.template is None:
        typer.secho(f"{template_id} has no template text", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)

    settings = get_narrative_settings().model_copy(
        update={"log_level": verbosity, "extended_conditions": not strict}
    )
    text = generate(
        template.template,
        _load_values(values_path),
        getattr(template, "variables", None),
        library.shared_pool(),
        settings=settings,
        logger=_cli_logger(verbosity),
    )
    typer.echo(text)


@app.command("validate")
def validate_command(
    template_id: str,
    values_path: Optional[Path] = typer.Option(
        None, "--values", exists=True, readable=True, help="JSON or YAML file of field values."
    ),
    templates_path: Optional[Path] = _TEMPLATES_OPTION,
) -> None:
    """Validate field values for TEMPLATE_ID; exits 1 when invalid."""
    library = _library(templates_path)
    template = _template(library, template_id)
    result = validate(
        getattr(template, "variables", None) or {},
        _load_values(values_path),
        library.shared_pool(),
        logger=_cli_logger("off"),
    )
    if result.is_valid:
        console.print("[green]Values are valid[/green]")
        return

    table = Table(title=f"Validation errors for {template_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Error", style="red")
    for field, message in result.errors.items():
        table.add_row(field, message)
    console.print(table)
    raise typer.Exit(code=1)


@app.command()
def codes(
    template_ids: List[str] = typer.Argument(..., help="Selected template ids, in report order."),
    include_secondary: bool = typer.Option(
        False, "--include-secondary", help="Fold later primary codes into the modifiers."
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    templates_path: Optional[Path] = _TEMPLATES_OPTION,
) -> None:
    """Show code assignments for the selected templates."""
    library = _library(templates_path)
    assignments = assign_codes([_template(library, template_id) for template_id in template_ids])
    compatibility = validate_code_compatibility(assignments)
    formatted = format_code_assignments(assignments, include_secondary_primaries=include_secondary)

    if json_output:
        payload = {
            "assignments": [assignment.model_dump() for assignment in assignments],
            "compatibility": compatibility.model_dump(),
            "formatted": formatted.model_dump(),
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    table = Table(title="Code assignments")
    table.add_column("Template", style="cyan")
    table.add_column("Primary")
    table.add_column("Modifiers")
    for assignment in assignments:
        table.add_row(assignment.source, assignment.primary, ", ".join(assignment.modifiers))
    console.print(table)
    console.print(f"Primary: [b]{formatted.primary}[/b]  Modifiers: {', '.join(formatted.modifiers) or '-'}")
    for conflict in compatibility.conflicts:
        console.print(f"[yellow]{conflict}[/yellow]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
