"""
Command-line interface for SiteAudit.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.config import EngineConfig
from .core.exceptions import PolicyLoadError
from .core.logging_config import dump_tokens, get_logger, setup_logging
from .core.policy import Outcome, Policy
from .targets.base import Target

console = Console()
logger = get_logger(__name__)

PASSING_OUTCOMES = (Outcome.SUCCESS, Outcome.WARNING, Outcome.NOT_APPLICABLE)

OUTCOME_STYLES = {
    Outcome.SUCCESS: "green",
    Outcome.FAILURE: "red",
    Outcome.ERROR: "bold red",
    Outcome.NOT_APPLICABLE: "dim",
    Outcome.WARNING: "yellow",
}

app = typer.Typer(
    name="site-audit",
    help="Run health and compliance policies against remote sites.",
    no_args_is_help=True,
)


def version_callback(value: bool):
    if value:
        console.print(f"SiteAudit version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """SiteAudit command line."""


def load_target(path: Path) -> Target:
    """Load a target definition from a YAML or JSON file."""
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise PolicyLoadError(f"Cannot read target file {path}: {e}") from e
    if not isinstance(data, dict):
        raise PolicyLoadError(f"Target file {path} must contain a mapping")
    return Target.from_dict(data)


def parse_overrides(values: Optional[List[str]]) -> Dict[str, Any]:
    """Parse ``name=value`` pairs; values are read as YAML scalars."""
    overrides = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got '{item}'", param_hint="--set")
        overrides[name] = yaml.safe_load(value) if value else ""
    return overrides


@app.command("policy-info")
def policy_info(
    policy_file: Path = typer.Argument(..., help="Path to policy file (YAML or JSON)"),
):
    """Show information about a specific policy."""
    try:
        policy = Policy.from_file(policy_file)
    except PolicyLoadError as e:
        console.print(f"[red]Error loading policy: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    table = Table(title=escape(policy.title or policy.name), show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Name", escape(policy.name))
    table.add_row("Class", escape(policy.audit_class or "-"))
    table.add_row("Description", escape(policy.description or "-"))
    if policy.tags:
        table.add_row("Tags", escape(", ".join(policy.tags)))
    console.print(table)

    if policy.parameters:
        params = Table(title="Parameters")
        params.add_column("Name", style="cyan")
        params.add_column("Default")
        for name, value in policy.parameters.items():
            params.add_row(escape(name), escape(json.dumps(value, default=str)))
        console.print(params)

    if policy.depends:
        depends = Table(title="Dependencies")
        depends.add_column("Condition", style="cyan")
        depends.add_column("On fail")
        for dependency in policy.depends:
            depends.add_row(escape(str(dependency)), dependency.on_fail.value)
        console.print(depends)


@app.command()
def audit(
    policy_file: Path = typer.Argument(..., help="Path to policy file (YAML or JSON)"),
    target_file: Path = typer.Argument(..., help="Path to target file (YAML or JSON)"),
    remediate: bool = typer.Option(
        False, "--remediate", help="Attempt remediation when the audit fails"
    ),
    overrides: Optional[List[str]] = typer.Option(
        None, "--set", help="Override a policy parameter (name=value)"
    ),
    output_format: str = typer.Option("text", help="Output format: text, json"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Engine config file"),
    verbose: int = typer.Option(
        0, "-v", "--verbose", count=True, help="Increase verbosity (-v, -vv)"
    ),
):
    """Audit a target against one policy."""
    setup_logging(min(verbose, 2))

    config = EngineConfig.load_from_file(config_file)
    if verbose > config.verbosity:
        config = config.model_copy(update={"verbosity": verbose})

    try:
        policy = Policy.from_file(policy_file).with_parameters(parse_overrides(overrides))
        audit_class = policy.load_audit_class()
        target = load_target(target_file)
    except PolicyLoadError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        logger.error("%s", e)
        raise typer.Exit(1)

    with target:
        response = audit_class(target, config).execute(policy, remediate=remediate)

    if output_format == "json":
        typer.echo(json.dumps(response.to_dict(), indent=2, default=str))
    else:
        style = OUTCOME_STYLES[response.outcome]
        console.print(
            f"[bold]{escape(policy.title or policy.name)}[/bold]: "
            f"[{style}]{response.outcome.value.upper()}[/{style}]"
        )
        if response.exception:
            console.print(f"[red]{escape(str(response.exception))}[/red]")
        if verbose:
            console.print(escape(dump_tokens(response.tokens)))

    raise typer.Exit(0 if response.outcome in PASSING_OUTCOMES else 1)


def main():
    app()


if __name__ == "__main__":
    main()
