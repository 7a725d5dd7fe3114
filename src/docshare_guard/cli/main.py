"""CLI entry point for docshare-guard.

Invoked as::

    docshare-guard [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m docshare_guard.cli.main

Commands
--------
- rules      Show the composed ability of a role
- check      Ask the matcher whether a role may act on an instance
- decide     Run the guard for a configured operation and request context
- validate   Load a guard config and report what it declares
- version    Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from docshare_guard.errors import GuardError
from docshare_guard.rules.model import Action, Principal, Subject

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("guard.yaml")

_ACTION_CHOICES = [a.value for a in Action]
_SUBJECT_CHOICES = [s.value for s in Subject]


def _parse_json(value: str | None, what: str) -> object:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid JSON for {what}:[/red] {exc}")
        sys.exit(2)


def _principal_from_options(
    role: str | None, user_id: str, permissions_json: str | None
) -> Principal | None:
    if role is None:
        return None
    stored = _parse_json(permissions_json, "--permissions")
    return Principal(id=user_id, role_name=role, stored_permissions=stored or [])


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="docshare-guard")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Docshare Guard CLI: inspect abilities and authorization decisions."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from docshare_guard import __version__

    console.print(
        Panel(
            f"[bold]docshare-guard[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Attribute-based access control for document sharing services.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


@cli.command(name="rules")
@click.option("--role", "-r", default=None, help="Role name; omit for an anonymous caller.")
@click.option("--user-id", "-u", default="anonymous", show_default=True, help="Principal id.")
@click.option(
    "--permissions",
    "-p",
    "permissions_json",
    default=None,
    help="Stored permissions as a JSON list.",
)
def rules_command(role: str | None, user_id: str, permissions_json: str | None) -> None:
    """Show every rule in the ability composed for a principal."""
    from docshare_guard.rules.builder import build_ability

    principal = _principal_from_options(role, user_id, permissions_json)
    ability = build_ability(principal)

    title = f"Ability for {role or 'anonymous'}" + (f" ({user_id})" if principal else "")
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Action", style="cyan")
    table.add_column("Subject", style="magenta")
    table.add_column("Conditions")
    for index, rule in enumerate(ability, start=1):
        conditions = ", ".join(f"{k}={v!r}" for k, v in rule.conditions.items())
        table.add_row(str(index), rule.action.value, rule.subject.value, conditions or "-")
    console.print(table)
    console.print(f"  Total rules: [cyan]{len(ability)}[/cyan]")


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.option("--action", "-a", required=True, type=click.Choice(_ACTION_CHOICES))
@click.option("--subject", "-s", required=True, type=click.Choice(_SUBJECT_CHOICES))
@click.option(
    "--instance",
    "-i",
    "instance_json",
    default=None,
    help='Resource attributes as JSON, e.g. \'{"uploaderId": "u1"}\'.',
)
@click.option("--role", "-r", default=None, help="Role name; omit for an anonymous caller.")
@click.option("--user-id", "-u", default="anonymous", show_default=True, help="Principal id.")
@click.option("--permissions", "-p", "permissions_json", default=None, help="Stored permissions as JSON.")
def check_command(
    action: str,
    subject: str,
    instance_json: str | None,
    role: str | None,
    user_id: str,
    permissions_json: str | None,
) -> None:
    """Check whether a principal may perform ACTION on SUBJECT."""
    from docshare_guard.rules.builder import build_ability
    from docshare_guard.rules.matcher import explain

    instance = _parse_json(instance_json, "--instance")
    if instance is not None and not isinstance(instance, dict):
        err_console.print("[red]--instance must be a JSON object.[/red]")
        sys.exit(2)

    ability = build_ability(_principal_from_options(role, user_id, permissions_json))
    matched = explain(ability, Action(action), Subject(subject), instance)  # type: ignore[arg-type]

    if matched is not None:
        console.print(Panel("[green]ALLOWED[/green]", title="Ability Check", border_style="blue"))
        console.print(f"  Matched rule: [bold]{matched}[/bold]")
    else:
        console.print(Panel("[red]DENIED[/red]", title="Ability Check", border_style="blue"))
    sys.exit(0 if matched is not None else 1)


# ---------------------------------------------------------------------------
# decide
# ---------------------------------------------------------------------------


@cli.command(name="decide")
@click.option("--operation", "-o", "operation_id", required=True, help="Registered operation id.")
@click.option(
    "--context",
    "-x",
    "context_json",
    default="{}",
    show_default=True,
    help='Request context as JSON: {"user": {...}, "params": {...}, "query": {...}, "body": {...}}.',
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(exists=True),
    help="Path to guard.yaml.",
)
def decide_command(operation_id: str, context_json: str, config_path: str) -> None:
    """Evaluate a configured operation against a request context."""
    from docshare_guard.config.loader import ConfigLoader, build_guard
    from docshare_guard.guard.decision import Decision
    from docshare_guard.guard.requirements import RequestContext

    raw_context = _parse_json(context_json, "--context")
    if not isinstance(raw_context, dict):
        err_console.print("[red]--context must be a JSON object.[/red]")
        sys.exit(2)

    try:
        config = ConfigLoader().load(Path(config_path))
        guard = build_guard(config, config_path=config_path)
        ctx = RequestContext.from_dict(raw_context)
    except (GuardError, ValueError, TypeError, OSError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    if operation_id not in guard.registry:
        err_console.print(
            f"[yellow]Warning:[/yellow] operation '{operation_id}' is not registered; treated as public."
        )

    result = guard.evaluate_operation(operation_id, ctx)
    styles = {
        Decision.ALLOWED: "[green]ALLOWED[/green]",
        Decision.DENIED_UNAUTHENTICATED: "[yellow]DENIED (unauthenticated)[/yellow]",
        Decision.DENIED_FORBIDDEN: "[red]DENIED (forbidden)[/red]",
    }
    console.print(Panel(styles[result.decision], title="Guard Decision", border_style="blue"))
    console.print(f"  Status: [cyan]{result.decision.status_code}[/cyan]")
    console.print(f"  Reason: {result.reason}")
    if result.failed_requirement is not None:
        console.print(f"  Failed requirement: [bold]{result.failed_requirement}[/bold]")
    sys.exit(0 if result else 1)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(exists=True),
    help="Path to guard.yaml.",
)
def validate_command(config_path: str) -> None:
    """Validate a guard config and list its protected operations."""
    from docshare_guard.config.loader import ConfigLoader, build_guard

    try:
        config = ConfigLoader().load(Path(config_path))
        guard = build_guard(config, config_path=config_path)
    except (GuardError, ValueError, OSError) as exc:
        err_console.print(Panel(f"[red]{exc}[/red]", title="Invalid Config", border_style="red"))
        sys.exit(1)

    registry = guard.registry
    table = Table(title="Protected Operations", box=box.SIMPLE)
    table.add_column("Operation", style="cyan")
    table.add_column("Roles", style="magenta")
    table.add_column("Requirements")
    for operation_id in registry.operations:
        requirements = "; ".join(str(r) for r in registry.requirements_for(operation_id))
        table.add_row(operation_id, ", ".join(registry.roles_for(operation_id)) or "-", requirements or "-")
    console.print(table)
    console.print(f"[green]Valid[/green] config: [bold]{config_path}[/bold] ({len(registry)} operations)")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
