"""Main CLI entry point for vatcompletor."""

import logging
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme
from typer import Typer

from vatcompletor.strategies_core.autodiscover import autodiscover_strategies
from vatcompletor.strategies_core.models import CompletionInput, CompletionResult
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.strategies_core.runner import InvalidLineError, StrategyRunner
from vatcompletor.utils.config import load_config
from vatcompletor.utils.logging_config import configure_logging
from vatcompletor.utils.number import format_rate

custom_theme = Theme(
    {
        "fieldname": "cyan",
        "value": "magenta",
        "warning": "bold yellow",
        "error": "bold red",
    }
)
console = Console(theme=custom_theme)

app = Typer(
    help="""vatcompletor CLI - Complete the vat rates of invoice lines.

Reads the lines to complete, the possible vat rates and the vat to divide from
a YAML or JSON file and shows which strategy completed the lines and how.
"""
)

EXIT_INVALID_INPUT = 1
EXIT_NEEDS_REVIEW = 2


def _amount(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.4f}"


def show_result(result: CompletionResult):
    table = Table(title="Completed lines")
    table.add_column("Description", style="fieldname")
    table.add_column("Qty", justify="right")
    table.add_column("Unit price", justify="right")
    table.add_column("Unit price inc", justify="right")
    table.add_column("Vat rate", justify="right", style="value")
    table.add_column("Vat amount", justify="right")
    table.add_column("Source")
    for line in result.lines:
        table.add_row(
            line.description,
            str(line.quantity),
            _amount(line.unit_price),
            _amount(line.unit_price_inc),
            "" if line.vat_rate is None else f"{format_rate(line.vat_rate)}%",
            _amount(line.vat_amount),
            line.vat_rate_source.value,
        )
    console.print(table)
    console.print(
        Panel(
            result.description or "No lines to complete",
            title="Strategy used",
            border_style="yellow" if result.needs_review else "green",
        )
    )
    for warning in result.warnings:
        console.print(f"[warning]{warning}[/warning]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Complete invoice line vat rates."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@app.command(name="complete")
def complete(
    input_path: str = typer.Argument(..., help="YAML or JSON file with the completion input"),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML file with completor settings"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    strict: bool = typer.Option(
        False, "--strict", help="Exit with code 2 if the result needs manual review"
    ),
):
    """Run the strategies on the lines in INPUT_PATH."""
    try:
        with open(input_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        completion_input = CompletionInput.model_validate(data or {})
        runner = StrategyRunner(config=load_config(config_path))
        result = runner.run(completion_input)
    except (OSError, yaml.YAMLError, ValidationError, InvalidLineError) as e:
        console.print(f"[error]Invalid input {input_path}: {e}[/error]")
        raise typer.Exit(code=EXIT_INVALID_INPUT)

    if as_json:
        print(result.model_dump_json(indent=2))
    else:
        show_result(result)

    if strict and result.needs_review:
        raise typer.Exit(code=EXIT_NEEDS_REVIEW)


@app.command(name="strategies")
def list_strategies():
    """List the registered strategies in the order they are tried."""
    autodiscover_strategies()
    table = Table(title="Strategies")
    table.add_column("Try order", justify="right")
    table.add_column("Strategy", style="fieldname")
    for strategy_cls in StrategyRegistry.ordered_strategies():
        table.add_row(str(int(strategy_cls.try_order)), strategy_cls.name)
    console.print(table)


if __name__ == "__main__":
    app()
