"""
Console report generator for Verdict.

Renders authorization decisions and validation results in the terminal
with rich: a header panel with the decision, a table of matched policies,
then obligations, advice and errors.

Design Principles:
    - Decision at a glance: color and icon per decision value
    - Progressive detail: counts first, parameters only in verbose mode
"""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from verdict.schema import AuthorizationDecision, Decision, Effect, Request
from verdict.validator import PolicyValidationResult

# Decision styling
DECISION_STYLES: dict[Decision, tuple[str, str]] = {
    Decision.PERMIT: ("green", "✓"),
    Decision.DENY: ("red", "✗"),
    Decision.NOT_APPLICABLE: ("dim", "○"),
    Decision.INDETERMINATE: ("yellow", "?"),
}


def render_decision(
    decision: AuthorizationDecision,
    console: Console | None = None,
    request: Request | None = None,
    verbose: bool = False,
) -> None:
    """
    Print a decision.

    Args:
        decision: The decision to render
        console: Rich Console instance (creates one if not provided)
        request: The request, shown in the header when given
        verbose: Show obligation/advice parameters
    """
    if console is None:
        console = Console()

    _print_header(console, decision, request)
    console.print()

    details = decision.evaluation_details
    console.print(
        f"  [dim]Policies:[/dim] {details.applicable_policies}/{details.total_policies} applicable"
        f"  [dim]Time:[/dim] {details.evaluation_time_ms:.2f}ms"
    )
    console.print()

    if decision.matched_policies:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("Policy", style="cyan")
        table.add_column("Effect", width=8)
        table.add_column("Description", overflow="fold")
        for policy in decision.matched_policies:
            style = "green" if policy.effect == Effect.PERMIT else "red"
            table.add_row(
                policy.id,
                f"[{style}]{policy.effect.value}[/{style}]",
                policy.description or "",
            )
        console.print("[bold]Matched Policies[/bold]")
        console.print(table)
        console.print()

    _print_items(console, "Obligations", decision.obligations, verbose)
    _print_items(console, "Advice", decision.advice, verbose)

    if details.errors:
        console.print("[bold red]Errors[/bold red]")
        for error in details.errors:
            console.print(f"  [red]•[/red] {error}")


def _print_header(
    console: Console,
    decision: AuthorizationDecision,
    request: Request | None,
) -> None:
    style, icon = DECISION_STYLES[decision.decision]

    header = Text()
    header.append(" Decision ", style="bold")
    header.append(f"{decision.decision.value.upper()} {icon}", style=f"bold {style}")
    if request is not None:
        header.append(" │ ", style="dim")
        header.append(
            f"{request.subject.id} → {request.action.id} → {request.resource.id}",
            style="cyan",
        )

    console.print(Panel(header, expand=False))


def _print_items(console: Console, title: str, items: list[Any], verbose: bool) -> None:
    if not items:
        return
    console.print(f"[bold]{title}[/bold]")
    for item in items:
        line = f"  • {item.id} [dim]({item.type.value})[/dim]"
        if verbose and item.parameters:
            params = ", ".join(f"{k}={v}" for k, v in item.parameters.items())
            line += f" [dim]{params}[/dim]"
        console.print(line)
    console.print()


def render_validation_results(
    results: list[PolicyValidationResult],
    console: Console | None = None,
) -> None:
    """Print one line per policy, then its errors and warnings."""
    if console is None:
        console = Console()

    for result in results:
        if result.valid:
            console.print(f"[green]✓[/green] {result.policy_id}")
        else:
            console.print(f"[red]✗[/red] {result.policy_id}")
        for issue in result.errors:
            console.print(f"    [red]error[/red] [dim]{issue.type}[/dim] {issue.message}")
        for issue in result.warnings:
            console.print(f"    [yellow]warning[/yellow] [dim]{issue.type}[/dim] {issue.message}")

    invalid = sum(1 for r in results if not r.valid)
    console.print()
    console.print(f"{len(results)} policies checked, {invalid} invalid")
