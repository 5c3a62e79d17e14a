#!/usr/bin/env python3
"""Skill validator CLI - validate skill and solution documents.

Usage:
    # Full skill pipeline
    skill-validator skill ./order-support.json

    # Schema-only check, JSON report
    skill-validator skill ./draft.yaml --quick --format json

    # Solution with connector context
    skill-validator solution ./solution.json --context ./deploy-context.json

    # Per-section summary
    skill-validator summary ./order-support.json

    # Print a canonical example
    skill-validator example skill
"""

import sys
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import yaml
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table
from pydantic import ValidationError

from contracts import Issue, ValidationContext
from validators import (
    validate_skill,
    quick_validate,
    validate_solution,
    get_validation_summary,
)
from samples import EXAMPLES, load_example
from config import settings


console = Console()

# Exit codes
EXIT_OK = 0
EXIT_INVALID = 1
EXIT_USAGE = 2

YAML_SUFFIXES = {".yaml", ".yml"}


class DocumentError(click.ClickException):
    """Unreadable input document; exits with the usage code."""
    exit_code = EXIT_USAGE

    def show(self, file=None) -> None:
        console.print(f"[red]Error:[/red] {self.message}")


def load_document(path: str) -> Dict[str, Any]:
    """Read a JSON or YAML document (by suffix).

    Raises:
        click.ClickException: If the file cannot be read or parsed, or is not a mapping
    """
    file = Path(path)
    try:
        text = file.read_text(encoding="utf-8")
        document = yaml.safe_load(text) if file.suffix.lower() in YAML_SUFFIXES else json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise DocumentError(f"Cannot read {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise DocumentError(f"{path} must contain a mapping at the top level")
    return document


def load_context(path: str) -> ValidationContext:
    """Read and type-check a deployment context document."""
    try:
        return ValidationContext.model_validate(load_document(path))
    except ValidationError as exc:
        raise DocumentError(f"Invalid context in {path}: {exc}") from exc


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def print_issues(title: str, issues: List[Issue], style: str) -> None:
    if not issues:
        return
    table = Table(title=f"{title} ({len(issues)})", show_header=True, header_style=f"bold {style}")
    table.add_column("Code")
    table.add_column("Path")
    table.add_column("Message")
    for issue in issues:
        message = escape(issue.message)
        if issue.suggestion:
            message += f"\n[dim]{escape(issue.suggestion)}[/dim]"
        table.add_row(issue.code, escape(issue.path), message)
    console.print(table)


def exit_code(errors: List[Issue], warnings: List[Issue], fail_on_warnings: bool) -> int:
    if errors:
        return EXIT_INVALID
    if warnings and fail_on_warnings:
        return EXIT_INVALID
    return EXIT_OK


format_option = click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["text", "json"]),
    default=None,
    help=f"Output format (default: {settings.output_format})"
)
fail_option = click.option(
    "--fail-on-warnings",
    is_flag=True,
    help="Exit with code 1 when warnings exist (default: SKILL_VALIDATOR_FAIL_ON_WARNINGS)"
)


@click.group()
@click.option(
    "--log-level",
    default=None,
    help=f"Log level for stderr (default: {settings.log_level})"
)
def main(log_level: Optional[str]):
    """Skill Validator: structural validation for skill and solution documents."""
    configure_logging(log_level or settings.log_level)


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--quick", is_flag=True, help="Schema-only check")
@format_option
@fail_option
def skill(file: str, quick: bool, output_format: Optional[str], fail_on_warnings: bool):
    """Validate a skill document."""
    document = load_document(file)
    output_format = output_format or settings.output_format
    fail_on_warnings = fail_on_warnings or settings.fail_on_warnings

    if quick:
        result = quick_validate(document)
        if output_format == "json":
            click.echo(result.model_dump_json(indent=2))
        else:
            status = "[green]Schema valid[/green]" if result.valid else "[red]Schema invalid[/red]"
            console.print(f"{status}  errors: {len(result.errors)}")
            print_issues("Errors", result.errors, "red")
        sys.exit(EXIT_OK if result.valid else EXIT_INVALID)

    result = validate_skill(document)
    if output_format == "json":
        click.echo(result.model_dump_json(indent=2))
    else:
        console.print(Panel.fit(
            f"[bold blue]{document.get('name') or document.get('id')}[/bold blue]\n"
            f"[dim]{document.get('id')}[/dim]",
            border_style="blue"
        ))
        valid = "[green]yes[/green]" if result.valid else "[red]no[/red]"
        ready = "[green]yes[/green]" if result.ready_to_export else "[yellow]no[/yellow]"
        console.print(f"Valid: {valid}  Ready to export: {ready}")
        console.print(f"Errors: {len(result.errors)}  Warnings: {len(result.warnings)}")
        print_issues("Errors", result.errors, "red")
        print_issues("Warnings", result.warnings, "yellow")
        incomplete = [name for name, done in result.completeness.items() if not done]
        if incomplete:
            console.print(f"[dim]Incomplete sections:[/dim] {', '.join(incomplete)}")

    sys.exit(exit_code(result.errors, result.warnings, fail_on_warnings))


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option(
    "--context", "-c", "context_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Deployment context (skills, connectors, mcp_store) enabling connector checks"
)
@format_option
@fail_option
def solution(file: str, context_file: Optional[str], output_format: Optional[str], fail_on_warnings: bool):
    """Validate a solution document."""
    document = load_document(file)
    context = load_context(context_file) if context_file else None
    output_format = output_format or settings.output_format
    fail_on_warnings = fail_on_warnings or settings.fail_on_warnings

    result = validate_solution(document, context)
    if output_format == "json":
        click.echo(result.model_dump_json(indent=2))
    else:
        console.print(Panel.fit(
            f"[bold blue]{document.get('name') or document.get('id')}[/bold blue]\n"
            f"[dim]{result.summary.skills} skills, {result.summary.handoffs} handoffs, "
            f"{result.summary.grants} grants[/dim]",
            border_style="blue"
        ))
        valid = "[green]yes[/green]" if result.valid else "[red]no[/red]"
        console.print(f"Valid: {valid}")
        console.print(f"Errors: {len(result.errors)}  Warnings: {len(result.warnings)}")
        print_issues("Errors", result.errors, "red")
        print_issues("Warnings", result.warnings, "yellow")

    sys.exit(exit_code(result.errors, result.warnings, fail_on_warnings))


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@format_option
def summary(file: str, output_format: Optional[str]):
    """Show per-section progress for a skill document."""
    document = load_document(file)
    result = get_validation_summary(document)

    if (output_format or settings.output_format) == "json":
        click.echo(result.model_dump_json(indent=2))
        return

    table = Table(title="Validation Summary", show_header=True, header_style="bold magenta")
    table.add_column("Section")
    table.add_column("Complete")
    for name, section in result.sections.items():
        table.add_row(name, "[green]yes[/green]" if section.get("complete") else "[red]no[/red]")
    console.print(table)
    console.print(f"Progress: {result.progress}%")
    console.print(f"Errors: {result.error_count}  Warnings: {result.warning_count}")
    console.print(f"Ready to export: {'yes' if result.ready_to_export else 'no'}")


@main.command()
@click.argument("name", type=click.Choice(sorted(EXAMPLES)))
def example(name: str):
    """Print a canonical example document as JSON."""
    click.echo(json.dumps(load_example(name), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
