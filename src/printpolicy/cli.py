"""
CLI entry point for printpolicy.

This module provides the Typer-based command-line interface. The rules
themselves run inside the print server's hooks; the CLI exists so site
administrators can check a configuration offline.

Commands:
    simulate    Run the pipelines against a scenario file
    config      Show the resolved options
    token       Decode a remembered-choice token

Architecture Note:
    The CLI is thin: it loads files, builds a RecordingHost
    and delegates to printpolicy.engine.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from printpolicy import __version__
from printpolicy.balance import HttpBalanceService
from printpolicy.choice import ChoiceToken, now_millis
from printpolicy.config import load_options, resolve_options
from printpolicy.engine import PRE_SELECTION, PipelineResult, RuleEngine
from printpolicy.errors import ChoiceTokenError, PrintPolicyError
from printpolicy.host import RecordingHost, load_scenario
from printpolicy.logging_config import setup_logging

# Initialize Typer app with metadata
app = typer.Typer(
    name="printpolicy",
    help="Apply and test site print policy rules.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

STAGES = ("pre", "post", "both")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]printpolicy[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    printpolicy - Site print policy rules for a print management server.
    """
    pass


@app.command()
def simulate(
    scenario_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the scenario YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to an options YAML file. Defaults apply when omitted.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    stage: Annotated[
        str,
        typer.Option(
            "--stage",
            "-s",
            help="Pipeline to run: pre, post or both.",
        ),
    ] = "both",
    balance_url: Annotated[
        Optional[str],
        typer.Option(
            "--balance-url",
            help="External balance service root URL.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Show rule outcomes and debug log lines.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug mode with full error tracebacks.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    Run the hook pipelines against a scenario and show what the host was asked to do.

    Exits with code 0 when the job proceeds and 1 when a rule stopped it.

    Example:
        $ printpolicy simulate job.yaml --config site.yaml --stage post
    """
    if stage not in STAGES:
        console.print(f"[red]Unknown stage {stage!r}; expected one of {', '.join(STAGES)}[/red]")
        raise typer.Exit(code=2)

    if verbose and not json_output:
        setup_logging(logging.DEBUG)

    try:
        config = load_options(config_path) if config_path else resolve_options()
        scenario = load_scenario(scenario_path)
    except (PrintPolicyError, ValidationError, OSError, yaml.YAMLError) as e:
        if json_output:
            _output_json_error("load_error", str(e), debug)
        else:
            console.print(f"[red]Error loading files: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)

    service = HttpBalanceService(balance_url) if balance_url else None
    engine = RuleEngine(config)
    results: list[tuple[PipelineResult, RecordingHost]] = []

    try:
        carried_cost = None
        if stage in ("pre", "both"):
            inputs, host = scenario.build(balance_service=service)
            results.append((engine.run_pre_selection(inputs, host), host))
            carried_cost = host.cost
        if stage in ("post", "both") and not (results and results[-1][0].stopped):
            # Post-selection sees the job as submission left it
            inputs, host = scenario.build(
                balance_service=service, cost=carried_cost, after_selection=True
            )
            results.append((engine.run_post_selection(inputs, host), host))
    except Exception as e:
        if json_output:
            _output_json_error("simulation_error", str(e), debug)
        else:
            console.print(f"[red]Simulation error: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)

    if json_output:
        print(json.dumps([_result_to_dict(r, h) for r, h in results], indent=2, default=str))
    else:
        for result, host in results:
            _display_result(result, host, verbose)

    stopped = any(r.stopped for r, _ in results)
    raise typer.Exit(code=1 if stopped else 0)


def _display_result(result: PipelineResult, host: RecordingHost, verbose: bool) -> None:
    """Display one pipeline run in a formatted way."""
    title = "Pre-selection" if result.stage == PRE_SELECTION else "Post-selection"
    if result.stopped:
        console.print(f"[red]✗[/red] {title}: [red]stopped by {result.stopped_by}[/red]")
    else:
        console.print(f"[green]✓[/green] {title}: [green]proceeds[/green]")
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Action", style="cyan")
    table.add_column("Details")

    for index, action in enumerate(host.actions, start=1):
        details = ", ".join(f"{k}={v}" for k, v in action.args.items())
        if len(details) > 80:
            details = details[:77] + "..."
        table.add_row(str(index), action.name, escape(details))

    if host.actions:
        console.print(table)
    else:
        console.print("[dim]No host actions.[/dim]")

    if verbose:
        console.print()
        for outcome in result.outcomes:
            marker = "[red]halt[/red]" if outcome.stop else "[dim]ok[/dim]"
            console.print(f"  {marker} {outcome.rule}: {escape(outcome.reason)}")

    accounts = ", ".join(result.state.accounts) or "(none)"
    console.print()
    console.print(f"[dim]Cost: {result.state.cost} | Personal accounts: {escape(accounts)}[/dim]")
    console.print()


def _result_to_dict(result: PipelineResult, host: RecordingHost) -> dict[str, Any]:
    return {
        "stage": result.stage,
        "stopped": result.stopped,
        "stopped_by": result.stopped_by,
        "accounts": list(result.state.accounts),
        "cost": str(result.state.cost),
        "outcomes": [
            {"rule": o.rule, "stop": o.stop, "reason": o.reason}
            for o in result.outcomes
        ],
        "actions": [{"name": a.name, "args": a.args} for a in host.actions],
        "job": host.summary(),
    }


def _output_json_error(error_type: str, message: str, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2))


@app.command("config")
def show_config(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to an options YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    Show the options after merging a config file onto the defaults.

    Example:
        $ printpolicy config --config site.yaml
    """
    try:
        config = load_options(config_path) if config_path else resolve_options()
    except PrintPolicyError as e:
        if json_output:
            print(json.dumps({"error": True, **e.to_dict()}, indent=2))
        else:
            console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    data = config.model_dump(by_alias=True, mode="json")
    if json_output:
        print(json.dumps(data, indent=2))
        return

    table = Table(show_header=True, header_style="bold", title="Resolved options")
    table.add_column("Option", style="cyan")
    table.add_column("Value")
    for key, value in _flatten(data):
        table.add_row(key, escape(json.dumps(value)))
    console.print(table)


def _flatten(data: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    rows: list[tuple[str, Any]] = []
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict) and value and key != "discountGroups":
            rows.extend(_flatten(value, f"{name}."))
        else:
            rows.append((name, value))
    return rows


@app.command()
def token(
    value: Annotated[
        str,
        typer.Argument(help="Token text, e.g. 'true|1735689600000'."),
    ],
) -> None:
    """
    Decode a remembered external-account choice.

    Exits with code 1 if the token is malformed or expired.

    Example:
        $ printpolicy token 'false|1735689600000'
    """
    try:
        parsed = ChoiceToken.parse_strict(value)
    except ChoiceTokenError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    choice = "pay now (external)" if parsed.value else "bill later"
    console.print(f"Choice:  [bold]{choice}[/bold]")
    console.print(f"Expires: {parsed.expires_at_ms}")
    if parsed.is_expired(now_millis()):
        console.print("[yellow]Expired - the user will be asked again.[/yellow]")
        raise typer.Exit(code=1)
    console.print("[green]Active[/green]")


if __name__ == "__main__":
    app()
