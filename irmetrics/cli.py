"""Typer CLI for irmetrics."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from irmetrics import __version__
from irmetrics.config import IrmConfig
from irmetrics.evaluation import MetricAverage, evaluate
from irmetrics.names import MetricSpecError, parse_metrics
from irmetrics.trec import TrecFormatError, annotate, read_trec_rels, read_trec_results

app = typer.Typer(
    name="irm",
    help="Evaluate search results with IR metrics.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("irmetrics")

MIT_LICENSE = """
MIT License

Copyright (c) 2018 irmetrics authors

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""


def version_callback(value: bool) -> None:
    """Display version and license information."""
    if value:
        console.print(f"[bold]irmetrics[/bold] version [cyan]{__version__}[/cyan]")
        console.print(MIT_LICENSE)
        raise typer.Exit()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.setLevel(level)


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)
    raise typer.Exit(1)


def _print_table(averages: list[MetricAverage], float_format: str) -> None:
    table = Table(title="Evaluation Results")
    table.add_column("Run", style="cyan")
    table.add_column("Iteration")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Queries", justify="right", style="dim")
    for avg in averages:
        table.add_row(
            avg.run_id,
            avg.iteration,
            avg.metric,
            format(avg.value, float_format),
            str(avg.num_queries),
        )
    console.print(table)


@app.command()
def evaluate_files(
    qrels: Path = typer.Argument(
        None, exists=True, dir_okay=False, readable=True,
        help="Query relevance data in TREC format",
    ),
    results: Path = typer.Argument(
        None, exists=True, dir_okay=False, readable=True,
        help="Query results in TREC format",
    ),
    metric: list[str] = typer.Option(
        None, "--metric", "-m",
        help="Metric to compute, e.g. P@10 or RBP:95 (repeatable; default: P@10..P@1000, RBP:95)",
    ),
    table: bool = typer.Option(False, "--table", help="Render a table instead of tab-separated lines"),
    float_format: str = typer.Option(None, "--float-format", help="Python format spec for values (default: g)"),
    config: Path = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False,
        help="Extra .irmrc file applied after ~/.irmrc and ./.irmrc",
    ),
    show_config: bool = typer.Option(False, "--show-config", help="Print the effective configuration and exit"),
    verbose: bool = typer.Option(False, "--verbose", help="Log progress to stderr"),
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and license",
    ),
) -> None:
    """Evaluate RESULTS against QRELS and print per-run metric averages."""
    cfg = IrmConfig.load(config)
    if metric:
        cfg.metrics = list(metric)
    if table:
        cfg.output.table = True
    if float_format is not None:
        cfg.output.float_format = float_format
    if verbose:
        cfg.log_level = "INFO"

    _setup_logging(cfg.log_level)

    if show_config:
        console.print_json(json.dumps(cfg.snapshot()))
        raise typer.Exit(0)

    if qrels is None or results is None:
        missing = "QRELS" if qrels is None else "RESULTS"
        raise typer.BadParameter("file is required unless --show-config is given", param_hint=f"'{missing}'")

    try:
        format(0.0, cfg.output.float_format)
    except ValueError:
        _fail(f"Invalid float format: {cfg.output.float_format}")

    try:
        metrics = parse_metrics(cfg.metrics)
        qrels_records = read_trec_rels(qrels)
        result_records = read_trec_results(results)
    except (MetricSpecError, TrecFormatError) as exc:
        logger.debug("Aborting", exc_info=True)
        _fail(str(exc))

    annotated = annotate(result_records, qrels_records)
    averages = evaluate(annotated, metrics)

    if cfg.output.table:
        _print_table(averages, cfg.output.float_format)
    else:
        for avg in averages:
            typer.echo(avg.to_row(cfg.output.float_format))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
