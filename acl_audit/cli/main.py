"""acl-audit command-line tool."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from acl_audit.cli import __version__
from acl_audit.cli.commands.identities import identities_command
from acl_audit.cli.commands.policies import policies_command
from acl_audit.cli.commands.report import report_command
from acl_audit.cli.utils.config import ConfigManager
from acl_audit.cli.utils.context import CLIContext
from acl_audit.cli.utils.output import OutputFormatter
from acl_audit.core.config import REQUIRED_ENV_VARS
from acl_audit.core.errors import AuditError, ConfigurationError

app = typer.Typer(
    name="acl-audit",
    help="Audit Azure DevOps Git repository permissions into flat reports",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    pretty_exceptions_enable=False,
)

console = Console()


def version_callback(value: bool):
    """Display version and exit."""
    if value:
        console.print(f"acl-audit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug logging",
    ),
    output_format: str = typer.Option(
        "table",
        "--output",
        "-o",
        help="Summary format: table, json, yaml",
    ),
    log_format: Optional[str] = typer.Option(
        None,
        "--log-format",
        help="Log format: console, json",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML or TOML configuration file",
    ),
):
    """
    acl-audit

    Extracts repository ACLs, resolves identities and group membership, and
    writes a deduplicated permission matrix.
    """
    try:
        config_manager = ConfigManager(config_file)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    ctx.obj = CLIContext(
        debug=debug,
        config=config_manager,
        formatter=OutputFormatter(output_format, console=console),
        console=console,
        log_format=log_format,
    )


app.command("report")(report_command)
app.command("policies")(policies_command)
app.command("identities")(identities_command)


@app.command("doctor")
def doctor_command(ctx: typer.Context):
    """
    Check configuration and connectivity to the organization.
    """
    cli_ctx: CLIContext = ctx.obj
    console.print("[bold]acl-audit doctor[/bold]\n")

    console.print("📋 Configuration:")
    config_path = cli_ctx.config.config_path
    if config_path is not None:
        console.print(f"  [green]✓[/green] Configuration file loaded: {config_path}")

    try:
        settings = cli_ctx.get_settings()
    except ConfigurationError as e:
        console.print(f"  [red]✗[/red] {e.message}")
        console.print("\n[bold]Summary:[/bold]")
        console.print("  [yellow]⚠[/yellow] Set the missing values, for example:")
        for env_var in REQUIRED_ENV_VARS.values():
            console.print(f"    [cyan]export {env_var}=...[/cyan]")
        raise typer.Exit(1)

    console.print(f"  [green]✓[/green] Organization: {settings.org_url}")
    console.print(f"  [green]✓[/green] Project: {settings.project}")
    console.print("  [green]✓[/green] Access token configured")

    console.print("\n🔌 Connectivity:")
    try:
        with cli_ctx.get_audit_service(settings) as service:
            project = service.verify()
            console.print(f"  [green]✓[/green] Authenticated; project id {project['id']}")
            repositories = service.list_resources()
            console.print(f"  [green]✓[/green] {len(repositories)} repositories visible")
    except AuditError as e:
        console.print(f"  [red]✗[/red] {e.message}")
        raise typer.Exit(1)

    console.print("\n[bold]Summary:[/bold]")
    console.print("  [green]✓[/green] Ready to run [cyan]acl-audit report[/cyan]")


if __name__ == "__main__":
    app()
