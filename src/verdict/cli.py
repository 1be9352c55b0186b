"""
CLI entry point for Verdict.

This module provides the Typer-based command-line interface for Verdict.

Commands:
    evaluate    Decide a request against a policy file
    validate    Check a policy file for errors and warnings
    algorithms  List the supported combining algorithms
    functions   List the built-in condition functions

Exit codes:
    0   The request was permitted (evaluate) or every policy is valid (validate)
    1   Any other decision, or at least one invalid policy
    2   A file could not be loaded or an option is invalid

Architecture Note:
    The CLI is thin: it loads files, delegates to Engine or the validator,
    and hands the result to the report module for display.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from verdict import __version__
from verdict.combining import is_supported, list_algorithms
from verdict.engine import Engine
from verdict.errors import VerdictError
from verdict.functions import FunctionRegistry
from verdict.log import configure_logging
from verdict.report import (
    decision_to_json,
    render_decision,
    render_validation_results,
    validation_to_json,
)
from verdict.schema import (
    Decision,
    EngineConfig,
    load_engine_config,
    load_policies,
    load_policy_entries,
    load_request,
)
from verdict.validator import validate_policies

EXIT_LOAD_ERROR = 2

app = typer.Typer(
    name="verdict",
    help="Decide access requests against attribute-based policies.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]verdict[/bold] version {__version__}")
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
    Verdict - attribute-based access control decisions.

    Evaluate requests against policies and check policy files.
    """
    pass


@app.command()
def evaluate(
    request_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the request YAML/JSON file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    policies_path: Annotated[
        Path,
        typer.Option(
            "--policies",
            "-p",
            help="Path to the policies YAML/JSON file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    algorithm: Annotated[
        Optional[str],
        typer.Option(
            "--algorithm",
            "-a",
            help="Combining algorithm (overrides the config file).",
        ),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to an engine configuration YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the decision in JSON format.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Show obligation and advice parameters, and info logs.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug logging and full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Decide a request against a set of policies.

    Exits 0 when the request is permitted and 1 for any other decision.

    Example:
        $ verdict evaluate request.yaml --policies policies.yaml --algorithm permit-overrides
    """
    if debug:
        configure_logging(logging.DEBUG)
    else:
        configure_logging(logging.INFO if verbose else logging.WARNING)

    if algorithm is not None and not is_supported(algorithm):
        names = ", ".join(a.name for a in list_algorithms())
        message = f"Unknown combining algorithm: {algorithm} (expected one of: {names})"
        _fail("invalid_algorithm", message, json_output, debug)

    try:
        config = load_engine_config(config_path) if config_path else EngineConfig()
        request = load_request(request_path)
        policies = load_policies(policies_path)
    except VerdictError as e:
        _fail("load_error", str(e), json_output, debug)

    if algorithm is not None:
        config = config.model_copy(update={"combining_algorithm": algorithm})

    if verbose and not json_output:
        console.print(f"[dim]Loaded {len(policies)} policies from {policies_path}[/dim]")
        console.print(f"[dim]Combining algorithm: {config.combining_algorithm}[/dim]")
        console.print()

    engine = Engine(config)
    decision = engine.evaluate_sync(request, policies)

    if json_output:
        print(decision_to_json(decision, request))
    else:
        render_decision(decision, console=console, request=request, verbose=verbose)

    raise typer.Exit(code=0 if decision.decision == Decision.PERMIT else 1)


@app.command()
def validate(
    policies_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the policies YAML/JSON file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    check_functions: Annotated[
        bool,
        typer.Option(
            "--check-functions",
            help="Report function conditions that name no built-in function.",
        ),
    ] = False,
) -> None:
    """
    Check policies for errors and warnings.

    Exits 0 when every policy is valid and 1 otherwise.

    Example:
        $ verdict validate policies.yaml --check-functions
    """
    try:
        entries = load_policy_entries(policies_path)
    except VerdictError as e:
        _fail("load_error", str(e), json_output, False)

    registry = FunctionRegistry() if check_functions else None
    results = validate_policies(entries, registry)

    if json_output:
        print(validation_to_json(results))
    else:
        render_validation_results(results, console=console)

    raise typer.Exit(code=0 if all(r.valid for r in results) else 1)


@app.command()
def algorithms(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """List the supported combining algorithms."""
    entries = list_algorithms()

    if json_output:
        print(json.dumps([{"name": a.name, "description": a.description} for a in entries], indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Algorithm", style="cyan")
    table.add_column("Rule")
    for entry in entries:
        table.add_row(entry.name, entry.description)
    console.print(table)


@app.command()
def functions(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """List the built-in condition functions."""
    names = FunctionRegistry().list_functions()

    if json_output:
        print(json.dumps(names, indent=2))
        return

    for name in names:
        console.print(f"  [cyan]{name}[/cyan]")
    console.print(f"\n[dim]{len(names)} built-in functions[/dim]")


def _fail(error_type: str, message: str, json_output: bool, debug: bool) -> NoReturn:
    """Report a load or usage error and exit with code 2."""
    if json_output:
        _output_json_error(error_type, message, debug)
    else:
        console.print(f"[red]Error: {message}[/red]")
        if debug:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
    raise typer.Exit(code=EXIT_LOAD_ERROR)


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


if __name__ == "__main__":
    app()
