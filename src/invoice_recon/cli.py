"""
Command-line interface for the invoice reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.engine import FIXED_SCHEMA_MODE, GENERIC_MODE, ReconciliationEngine
from .models.records import ColumnMapping, ReconciliationResult, ReconciliationSummary
from .parsers.invoice_parser import InvoiceRecordParser, parse_generic_file
from .parsers.tabular_reader import TabularReader
from .reports.excel_generator import ExcelReportGenerator
from .utils.logging_config import setup_logging

console = Console()

MAX_PREVIEW_ROWS = 20


@click.group()
@click.version_option(version=__version__)
def main():
    """Invoice reconciliation between two CSV or spreadsheet sources."""
    pass


@main.command()
@click.argument("left_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("right_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Reconcile and show summary without generating report"
)
def reconcile(
    left_file: Path,
    right_file: Path,
    config: Optional[Path],
    output: Optional[Path],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile two invoice lists in the fixed six-field layout.

    LEFT_FILE: first source (CSV or spreadsheet)
    RIGHT_FILE: second source (CSV or spreadsheet)
    """
    try:
        recon_config = load_config(config)
        _setup_logging(recon_config, verbose)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"Reading {left_file.name}...", total=None)
            left = InvoiceRecordParser(recon_config, side="left").parse_file(left_file)
            progress.update(task, completed=True)

            task = progress.add_task(f"Reading {right_file.name}...", total=None)
            right = InvoiceRecordParser(recon_config, side="right").parse_file(right_file)
            progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            start_time = datetime.now()
            engine = ReconciliationEngine(recon_config)
            result = engine.reconcile_invoices(left, right)
            processing_time = (datetime.now() - start_time).total_seconds()
            progress.update(task, completed=True)

        summary = engine.generate_summary(
            result,
            total_left=len(left),
            total_right=len(right),
            left_name=left_file.name,
            right_name=right_file.name,
            mode=FIXED_SCHEMA_MODE,
            processing_time=processing_time,
        )

        _display_summary(summary, recon_config)
        _display_differences(result, recon_config)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        report_path = ExcelReportGenerator(recon_config).generate_report(
            summary=summary,
            result=result,
            output_path=output or _default_output(recon_config),
        )
        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("left_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("right_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-m",
    "--map",
    "mapping_specs",
    multiple=True,
    required=True,
    help="Column pair LEFT=RIGHT (repeatable); a single name maps a shared column",
)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--sum-column", help="Left column to total in the report")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Reconcile and show summary without generating report"
)
def compare(
    left_file: Path,
    right_file: Path,
    mapping_specs: tuple[str, ...],
    config: Optional[Path],
    output: Optional[Path],
    sum_column: Optional[str],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile two tables with arbitrary columns.

    LEFT_FILE: first source (CSV or spreadsheet)
    RIGHT_FILE: second source (CSV or spreadsheet)
    """
    try:
        mappings = [ColumnMapping.parse(spec) for spec in mapping_specs]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--map") from e

    try:
        recon_config = load_config(config)
        _setup_logging(recon_config, verbose)

        left_table, left = parse_generic_file(left_file, recon_config)
        right_table, right = parse_generic_file(right_file, recon_config)

        for side, table, columns in (
            ("left", left_table, [m.left_column for m in mappings]),
            ("right", right_table, [m.right_column for m in mappings]),
        ):
            unknown = [c for c in columns if c not in table.headers]
            if unknown:
                console.print(
                    f"[yellow]Warning: {side} file has no column(s) "
                    f"{', '.join(unknown)}; they read as empty[/yellow]"
                )

        start_time = datetime.now()
        engine = ReconciliationEngine(recon_config)
        result = engine.reconcile_generic(left, right, mappings)
        processing_time = (datetime.now() - start_time).total_seconds()

        summary = engine.generate_summary(
            result,
            total_left=len(left),
            total_right=len(right),
            left_name=left_file.name,
            right_name=right_file.name,
            mode=GENERIC_MODE,
            processing_time=processing_time,
        )

        _display_summary(summary, recon_config)
        _display_differences(result, recon_config)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        report_path = ExcelReportGenerator(recon_config).generate_report(
            summary=summary,
            result=result,
            output_path=output or _default_output(recon_config),
            mappings=mappings,
            sum_column=sum_column,
        )
        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def inspect(source_file: Path, config: Optional[Path]):
    """
    Show the columns and first rows of a source file.

    SOURCE_FILE: CSV or spreadsheet to inspect
    """
    try:
        table = TabularReader(load_config(config)).read(source_file)
    except Exception as e:
        console.print(f"[red]Error reading file: {escape(str(e))}[/red]")
        sys.exit(1)

    preview = Table(title=f"{source_file.name}: {len(table.rows)} rows")
    for header in table.headers:
        preview.add_column(escape(header))
    for row in table.rows[:MAX_PREVIEW_ROWS]:
        preview.add_row(*(escape(row.get(h, "")) for h in table.headers))

    console.print(preview)

    if len(table.rows) > MAX_PREVIEW_ROWS:
        console.print(f"\n... and {len(table.rows) - MAX_PREVIEW_ROWS} more rows")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _setup_logging(config: ReconConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else config.logging.level
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(level, log_file=log_file, log_format=config.logging.format)


def _default_output(config: ReconConfig) -> Path:
    now = datetime.now()
    return Path(
        config.output.excel.filename_template.format(
            date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")
        )
    )


def _display_summary(summary: ReconciliationSummary, config: ReconConfig) -> None:
    """Display reconciliation summary in console."""
    left_label = config.input.left.label
    right_label = config.input.right.label

    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row(f"Total {left_label} Records", str(summary.total_left))
    table.add_row(f"Total {right_label} Records", str(summary.total_right))
    table.add_row("Identical", str(summary.identical_count))
    table.add_row("Value Differences", str(summary.value_difference_count))
    if summary.mode == FIXED_SCHEMA_MODE:
        table.add_row("Counterparty Differences", str(summary.counterparty_difference_count))
    table.add_row(f"Only in {left_label}", str(summary.left_only_count))
    table.add_row(f"Only in {right_label}", str(summary.right_only_count))
    table.add_row(f"{left_label} Match Rate", f"{summary.match_rate_left:.1f}%")
    table.add_row(f"{right_label} Match Rate", f"{summary.match_rate_right:.1f}%")
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


def _display_differences(result: ReconciliationResult, config: ReconConfig) -> None:
    """List the first matched pairs that disagree."""
    pairs = result.value_differences + result.counterparty_differences
    if not pairs:
        return

    left_label = config.input.left.label
    right_label = config.input.right.label

    table = Table(title="Differences")
    table.add_column(f"{left_label} Row", justify="right")
    table.add_column(f"{right_label} Row", justify="right")
    table.add_column("Kind")
    table.add_column("Differences")

    for pair in pairs[:MAX_PREVIEW_ROWS]:
        table.add_row(
            str(pair.left.row_number),
            str(pair.right.row_number),
            pair.kind.value,
            escape(pair.describe_differences(left_label, right_label, sep="\n")),
        )

    console.print(table)

    if len(pairs) > MAX_PREVIEW_ROWS:
        console.print(f"\n... and {len(pairs) - MAX_PREVIEW_ROWS} more pairs with differences")


if __name__ == "__main__":
    main()
