"""Identity catalog command."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from acl_audit.cli.utils.context import CLIContext
from acl_audit.core.errors import AuditError, AuthenticationError, ConfigurationError
from acl_audit.core.identity.models import IdentityKind

console = Console()

DEFAULT_CATALOG_PATH = Path("identity-cache.json")


def identities_command(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project name (overrides AZURE_DEVOPS_PROJECT)"),
    output_path: Optional[Path] = typer.Option(None, "--file", "-f", help="Catalog file to write (default: identity-cache.json)"),
):
    """
    Build the identity catalog used as the last resolution fallback.

    Example:
        acl-audit identities --file identity-cache.json
        acl-audit report --identity-catalog identity-cache.json
    """
    cli_ctx: CLIContext = ctx.obj

    try:
        settings = cli_ctx.get_settings(project=project)
        path = output_path or settings.identity_catalog_path or DEFAULT_CATALOG_PATH
        with cli_ctx.get_audit_service(settings) as service:
            catalog = service.build_identity_catalog()
        catalog.save(path)

    except (ConfigurationError, AuthenticationError) as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    except AuditError as e:
        cli_ctx.formatter.print_error(f"Identity catalog failed: {e.message}")
        raise typer.Exit(1)
    except OSError as e:
        cli_ctx.formatter.print_error(f"Could not write {path}: {e}")
        raise typer.Exit(1)

    cli_ctx.formatter.print_detail(
        {
            "identities": len(catalog),
            "groups": catalog.count(IdentityKind.GROUP),
            "users": catalog.count(IdentityKind.USER),
        },
        title="Identity Catalog",
    )
    cli_ctx.formatter.print_success(f"Identity catalog saved to {path}")
