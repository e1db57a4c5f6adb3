"""
Contextspec CLI - Command-line interface for inspecting context specifications.

Prints the categories and natural language descriptions generated for each
fixture, and the execution strategy selected for each test method.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from contextspec.config import ConfigLoader, set_config
from contextspec.discovery import ExecutionStrategy, FixtureReport, build_report, discover
from contextspec.exceptions import ContextSpecError
from contextspec.log import configure_logging

app = typer.Typer(
    name="contextspec",
    help="Context specifications for pytest - inspect descriptions and prerequisites",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        from contextspec import __version__

        console.print(f"[bold blue]Contextspec[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: str = typer.Option(None, "--config", "-c", help="Path to a YAML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log debug events"),
) -> None:
    """Contextspec - Context specifications for pytest."""
    if config:
        try:
            set_config(ConfigLoader.from_yaml(config))
        except (FileNotFoundError, ContextSpecError) as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e
    if verbose:
        configure_logging(level="DEBUG", fmt="console", stream=True)


def _load_reports(path: str) -> list[FixtureReport]:
    target_path = Path(path)

    if not target_path.exists():
        console.print(f"[red]Error:[/red] Path not found: {path}")
        raise typer.Exit(1)

    try:
        fixtures = discover(target_path)
    except Exception as e:
        console.print(f"[red]Error:[/red] Failed to import specifications: {e}")
        raise typer.Exit(1) from e

    return [build_report(fixture) for fixture in fixtures]


@app.command()
def describe(
    path: str = typer.Argument(..., help="Path to a test module or directory"),
    format_: str = typer.Option(
        "console", "--format", "-f", help="Output format: console, json, yaml"
    ),
    output: str = typer.Option(None, "--output", "-o", help="Output file for json/yaml results"),
) -> None:
    """
    Print categories and descriptions of every context specification.

    Descriptions are built from the fixture inheritance chain, the same text
    the pytest plugin attaches to each collected test.
    """
    reports = _load_reports(path)

    if format_ in ("json", "yaml"):
        data = [report.to_dict() for report in reports]
        text = (
            json.dumps(data, indent=2)
            if format_ == "json"
            else yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        )
        if output:
            Path(output).write_text(text)
            console.print(f"[green]✓[/green] Output written to {output}")
        else:
            console.print(text)
        return

    if not reports:
        console.print("[yellow]No context specifications found[/yellow]")
        return

    console.print(
        Panel(f"[bold]Describing:[/bold] {path}", title="Contextspec", border_style="blue")
    )
    _display_description_tree(reports)


@app.command()
def classify(
    path: str = typer.Argument(..., help="Path to a test module or directory"),
) -> None:
    """
    Show the execution strategy selected for each test method.

    Tests are either standard (failures of prerequisites are re-labelled) or
    exception resilient (expected exceptions raised by Because are tolerated).
    """
    reports = _load_reports(path)

    if not reports:
        console.print("[yellow]No context specifications found[/yellow]")
        return

    table = Table(title="Test Method Classification")
    table.add_column("Fixture", style="cyan")
    table.add_column("Method")
    table.add_column("Strategy")
    table.add_column("Prerequisite", justify="center")

    strategy_styles = {
        ExecutionStrategy.STANDARD: "green",
        ExecutionStrategy.RESILIENT: "yellow",
        ExecutionStrategy.NOT_ORCHESTRATED: "dim",
    }

    for report in reports:
        for method in report.methods:
            style = strategy_styles.get(method.strategy, "white")
            table.add_row(
                report.name,
                method.name,
                f"[{style}]{method.strategy}[/{style}]",
                "✓" if method.is_prerequisite else "",
            )

    console.print(table)


@app.command("init-config")
def init_config(
    output: str = typer.Option(
        "contextspec.yaml", "--output", "-o", help="Where to write the configuration"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a sample contextspec configuration file."""
    target = Path(output)
    if target.exists() and not force:
        console.print(f"[red]Error:[/red] {output} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    target.write_text(ConfigLoader.generate_sample_config())
    console.print(f"[green]✓[/green] Configuration written to {output}")


def _display_description_tree(reports: list[FixtureReport]) -> None:
    """Display fixtures grouped by category as a tree."""
    by_category: dict[str, list[FixtureReport]] = {}
    for report in reports:
        for name in report.categories or ["Uncategorized"]:
            by_category.setdefault(name, []).append(report)

    root = Tree("[bold]Context Specifications[/bold]")
    for name, category_reports in by_category.items():
        branch = root.add(f"[bold magenta]{name}[/bold magenta]")
        for report in category_reports:
            fixture_branch = branch.add(
                f"[cyan]{report.name}[/cyan] [dim]{report.description}[/dim]"
            )
            for method in report.methods:
                if name not in method.metadata.categories and report.categories:
                    continue
                marker = " [yellow](prerequisite)[/yellow]" if method.is_prerequisite else ""
                fixture_branch.add(method.metadata.description.strip() + marker)

    console.print(root)


if __name__ == "__main__":
    app()
