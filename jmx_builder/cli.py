"""Command-line interface for JMX Builder.

This module provides a Click-based CLI for converting simplified XML test
descriptions into JMeter JMX test plans and for validating JMX files.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from jmx_builder import __version__
from jmx_builder.core.jmx_validator import JMXValidator
from jmx_builder.core.plan_assembler import JMXBuilder
from jmx_builder.core.plan_data import BuildResult, DiagnosticKind
from jmx_builder.core.settings import load_settings
from jmx_builder.exceptions import JMXBuilderException

console = Console()

DIAGNOSTIC_STYLES = {
    DiagnosticKind.STRUCTURAL_DEFAULT: "yellow",
    DiagnosticKind.UNUSABLE_RECORD: "red",
    DiagnosticKind.RESOURCE_UNAVAILABLE: "red",
    DiagnosticKind.PARSE_FAILURE: "red",
}


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="jmx-builder")
def cli():
    """JMX Builder - Generate JMeter test plans from simple XML test descriptions.

    Write HTTP requests, loops, throughput controllers, timers, assertions
    and CSV-driven data sets in a compact XML file and expand it into a
    complete JMeter .jmx plan.
    """
    pass


@cli.command()
@click.option(
    "--inputfile",
    "-i",
    required=True,
    help="Simplified XML test description",
    type=click.Path(),
)
@click.option(
    "--outputfile",
    "-o",
    required=True,
    help="JMX file to create",
    type=click.Path(),
)
@click.option(
    "--config",
    help="YAML file with generator settings",
    type=click.Path(),
)
@click.option(
    "--export-report",
    type=click.Path(),
    help="Export the build result and the settings used to a JSON file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Log debug details while building",
)
def generate(
    inputfile: str,
    outputfile: str,
    config: Optional[str],
    export_report: Optional[str],
    verbose: bool,
):
    """Generate a JMeter JMX test plan from a test description.

    Problems inside the description (missing names, timers without a
    delay, includes that can't be found) do not stop the build; they
    are listed in the Diagnostics table.

    Example:
        jmx-builder generate -i mytest.xml -o new-jmeter-test.jmx
        jmx-builder generate -i mytest.xml -o out/test.jmx --config settings.yaml
    """
    _configure_logging(verbose)

    try:
        if not Path(inputfile).is_file():
            console.print(
                f"\n[bold red]Error:[/bold red] Failed to find needed --inputfile: \"{inputfile}\""
            )
            sys.exit(1)

        settings = load_settings(config)

        console.print(f"[bold]Generating JMX file:[/bold] {outputfile}")
        console.print(f"[dim]  Input: {inputfile}[/dim]\n")

        builder = JMXBuilder(settings)
        result = builder.build(inputfile, outputfile)

        _display_build_result(result)

        if export_report:
            report_path = Path(export_report)
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report = result.to_dict()
            report["settings"] = settings.to_dict()
            report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
            console.print(f"\n[dim]Report exported to:[/dim] {export_report}")

    except FileNotFoundError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    except JMXBuilderException as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        sys.exit(1)


def _display_build_result(result: BuildResult) -> None:
    """Print the success panel and, if any, the diagnostics table."""
    counts = result.counts
    panel = Panel(
        f"[bold green]✓ JMX file generated successfully![/bold green]\n\n"
        f"[cyan]File:[/cyan] {result.jmx_path}\n"
        f"[cyan]Samplers:[/cyan] {counts.get('samplers', 0)}\n"
        f"[cyan]Timers:[/cyan] {counts.get('timers', 0)}\n"
        f"[cyan]Assertions:[/cyan] {counts.get('assertions', 0)}\n"
        f"[cyan]Extractors:[/cyan] {counts.get('extractors', 0)}\n"
        f"[cyan]Loops / Controllers:[/cyan] "
        f"{counts.get('loops', 0)} / {counts.get('controllers', 0)}\n"
        f"[cyan]CSV Data Sets:[/cyan] {counts.get('csv_data_sets', 0)}\n"
        f"[cyan]Thread Groups:[/cyan] {counts.get('thread_groups', 0)}\n\n"
        f"[dim]Next step: Open in JMeter GUI or run headless[/dim]",
        title="Generation Complete",
        border_style="green",
    )
    console.print(panel)

    if not result.diagnostics:
        return

    table = Table(title="Diagnostics", show_header=True)
    table.add_column("Kind", style="bold")
    table.add_column("Location", style="dim")
    table.add_column("Message")

    for diagnostic in result.diagnostics:
        style = DIAGNOSTIC_STYLES[diagnostic.kind]
        location = diagnostic.source or "<input>"
        if diagnostic.line:
            location = f"{location}:{diagnostic.line}"
        table.add_row(f"[{style}]{diagnostic.kind.value}[/{style}]", location, diagnostic.message)

    console.print()
    console.print(table)


@cli.command()
@click.argument("jmx_path", type=click.Path(exists=True))
def validate(jmx_path: str):
    """Validate JMX test plan structure and configuration.

    Checks the JMX file for required elements, element/hashTree pairing,
    valid thread group configuration, and provides recommendations for
    improvements.

    Example:
        jmx-builder validate test.jmx
    """
    try:
        console.print(f"\n[bold]Validating JMX file:[/bold] {jmx_path}\n")

        validator = JMXValidator()
        result = validator.validate(jmx_path)

        if result["valid"]:
            console.print(
                Panel(
                    "[bold green]✓ JMX file is valid![/bold green]",
                    border_style="green",
                )
            )
        else:
            console.print(
                Panel(
                    f"[bold red]✗ JMX file has {len(result['issues'])} issue(s)[/bold red]",
                    border_style="red",
                )
            )

            console.print("\n[bold red]Issues Found:[/bold red]")
            for i, issue in enumerate(result["issues"], 1):
                console.print(f"  {i}. {issue}")

        if result["recommendations"]:
            console.print("\n[bold yellow]Recommendations:[/bold yellow]")
            for i, rec in enumerate(result["recommendations"], 1):
                console.print(f"  {i}. {rec}")

        console.print()

        if not result["valid"]:
            sys.exit(1)

    except FileNotFoundError:
        console.print(f"\n[bold red]Error:[/bold red] File not found: {jmx_path}")
        sys.exit(1)
    except JMXBuilderException as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        sys.exit(1)


def main():
    """Entry point for CLI application."""
    cli()


if __name__ == "__main__":
    main()
