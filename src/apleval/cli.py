"""Command-line interface for apleval.

Usage:
    apleval query "<apl>"                       Execute a query and print the result table
    apleval compare "<expected>" "<actual>"     Execute both queries and score the results
    apleval schema <dataset>                    Print a dataset's fields
    apleval score cases.yml outputs.yml         Score recorded model outputs
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
import dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .cases import load_cases, load_outputs, score_outputs
from .compare import compare_queries
from .config import AxiomConfig, load_config
from .errors import CaseFileError, ConfigurationError
from .evals import default_evaluators
from .executor import QueryExecutor
from .models import QueryResult
from .monitoring import enable_monitoring
from .normalize import extract_query
from .schema import SchemaCache

dotenv.load_dotenv()
console = Console()


def _require_config() -> AxiomConfig:
    try:
        return load_config(required=True)
    except ConfigurationError as e:
        click.secho(f"ERROR: {e}", fg="red", err=True)
        raise SystemExit(1) from None


def _score_style(score: float) -> str:
    return "green" if score == 1 else "yellow" if score >= 0.5 else "bright_red"


def _print_result(result: QueryResult, limit: int) -> None:
    if not result.success:
        console.print(f"[bright_red]Query failed:[/bright_red] {result.error}")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold white")
    for column in result.columns or []:
        table.add_column(column)
    for row in result.rows()[:limit]:
        table.add_row(*("" if cell is None else str(cell) for cell in row.values()))

    console.print(table)
    shown = min(limit, result.row_count)
    console.print(f"[dim]{shown} of {result.row_count} row(s), {result.elapsed_ms} ms[/dim]")


@click.group()
@click.option(
    "--logfire/--no-logfire", "logfire_enabled", default=None, help="Send traces to Logfire"
)
def main(logfire_enabled: Optional[bool]):
    """Evaluate SPL to APL translations by executing and comparing query results."""
    if logfire_enabled is not False:
        enable_monitoring(logfire_enabled, service_name="apleval")


@main.command()
@click.argument("apl")
@click.option("--start", "start_time", help="Window start (ISO 8601)")
@click.option("--end", "end_time", help="Window end (ISO 8601)")
@click.option("--limit", default=20, show_default=True, help="Rows to print")
def query(apl: str, start_time: Optional[str], end_time: Optional[str], limit: int):
    """Execute an APL query."""
    executor = QueryExecutor(_require_config())
    result = asyncio.run(
        executor.execute(extract_query(apl), start_time=start_time, end_time=end_time)
    )
    _print_result(result, limit)
    if not result.success:
        raise SystemExit(1)


@main.command()
@click.argument("expected")
@click.argument("actual")
@click.option("--start", "start_time", help="Window start (ISO 8601)")
@click.option("--end", "end_time", help="Window end (ISO 8601)")
@click.option("--timeout", type=float, help="Deadline per query in seconds")
@click.option("--min-score", type=click.FloatRange(0, 1), help="Exit 1 below this score")
def compare(
    expected: str,
    actual: str,
    start_time: Optional[str],
    end_time: Optional[str],
    timeout: Optional[float],
    min_score: Optional[float],
):
    """Execute EXPECTED and ACTUAL over the same window and score their results."""
    executor = QueryExecutor(_require_config())
    outcome = asyncio.run(
        compare_queries(
            expected,
            actual,
            executor=executor,
            start_time=start_time,
            end_time=end_time,
            timeout=timeout,
        )
    )

    style = _score_style(outcome.score)
    grid = Table.grid(padding=(0, 3))
    grid.add_column(style="bold white")
    grid.add_column()
    grid.add_row("Score", f"[{style}]{outcome.score:.3f}[/{style}]")
    grid.add_row("Reason", outcome.reason)
    console.print(Panel(grid, title="Result Equivalence", border_style="bright_cyan"))

    if min_score is not None and outcome.score < min_score:
        raise SystemExit(1)


@main.command()
@click.argument("dataset")
def schema(dataset: str):
    """Print the fields of DATASET."""
    cache = SchemaCache(QueryExecutor(_require_config()))
    found = asyncio.run(cache.get(dataset))
    if found is None:
        click.secho(f"ERROR: Schema for {dataset!r} is unavailable", fg="red", err=True)
        raise SystemExit(1)

    table = Table(title=f"[bold white]{dataset}[/bold white]", box=box.ROUNDED)
    table.add_column("Field", style="white bold", no_wrap=True)
    table.add_column("Type", style="grey70")
    for field in found.fields:
        table.add_row(field.name, field.type)
    console.print(table)


@main.command()
@click.argument("cases_file", type=click.Path(exists=True, path_type=Path))
@click.argument("outputs_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--execute/--no-execute",
    default=True,
    show_default=True,
    help="Run ResultEquivalence against the query endpoint",
)
@click.option("--timeout", type=float, help="Deadline per query in seconds")
@click.option("--reasons/--no-reasons", default=True, help="Show evaluator reasons")
def score(
    cases_file: Path,
    outputs_file: Path,
    execute: bool,
    timeout: Optional[float],
    reasons: bool,
):
    """Score recorded model outputs in OUTPUTS_FILE against CASES_FILE."""
    executor = QueryExecutor(_require_config()) if execute else None

    try:
        cases = load_cases(cases_file)
        outputs = load_outputs(outputs_file, cases)
    except CaseFileError as e:
        click.secho(f"ERROR: {e}", fg="red", err=True)
        raise SystemExit(1) from None

    if not outputs:
        click.secho("ERROR: No recorded outputs to score", fg="red", err=True)
        raise click.Abort()

    report = score_outputs(
        cases,
        outputs,
        name=cases_file.stem,
        evaluators=default_evaluators(execute=execute, timeout=timeout, executor=executor),
    )
    report.print(include_reasons=reasons)
    console.print(
        f"[dim]Scored {len(report.cases)} of {len(cases)} case(s) from {cases_file.name}[/dim]"
    )


if __name__ == "__main__":
    main()
