"""Permission report command."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from acl_audit.cli.utils.context import CLIContext
from acl_audit.core.errors import AuditError, AuthenticationError, ConfigurationError
from acl_audit.core.resolution.models import REPORT_COLUMNS
from acl_audit.infrastructure.reports.writers import rows_for, write_report

console = Console()


def report_command(
    ctx: typer.Context,
    org_url: Optional[str] = typer.Option(None, "--org-url", help="Organization URL (overrides AZURE_DEVOPS_ORG_URL)"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project name (overrides AZURE_DEVOPS_PROJECT)"),
    output_path: Optional[Path] = typer.Option(None, "--file", "-f", help="Report file (.csv or .xlsx)"),
    report_format: Optional[str] = typer.Option(None, "--format", help="Report format: csv, xlsx"),
    include_branch_scope: Optional[bool] = typer.Option(
        None,
        "--branch-scope/--no-branch-scope",
        help="Audit the branch scope ahead of the repository scope",
    ),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to audit (default: each repository's default branch)"),
    repository_filter: Optional[str] = typer.Option(None, "--filter", help="Only audit repositories whose name contains this text"),
    identity_catalog_path: Optional[Path] = typer.Option(None, "--identity-catalog", help="Identity catalog JSON to use as a resolution fallback"),
    use_namespace_catalog: Optional[bool] = typer.Option(
        None,
        "--namespace-catalog/--canonical-catalog",
        help="Take permission names from the service's namespace definition",
    ),
    delay: Optional[float] = typer.Option(None, "--delay", help="Seconds to pause between repositories"),
):
    """
    Audit repository permissions and write the permission matrix.

    Example:
        acl-audit report
        acl-audit report --file permissions.xlsx --branch-scope --branch main
    """
    cli_ctx: CLIContext = ctx.obj

    try:
        settings = cli_ctx.get_settings(
            org_url=org_url,
            project=project,
            output_path=output_path,
            include_branch_scope=include_branch_scope,
            branch=branch,
            repository_filter=repository_filter,
            identity_catalog_path=identity_catalog_path,
            use_namespace_catalog=use_namespace_catalog,
            request_delay_seconds=delay,
        )
        with cli_ctx.get_audit_service(settings) as service:
            summary = service.run()

        count = write_report(
            settings.output_path,
            REPORT_COLUMNS,
            rows_for(summary.records),
            report_format=report_format,
            sheet_title="Repository Permissions",
        )

    except (ConfigurationError, AuthenticationError) as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    except AuditError as e:
        cli_ctx.formatter.print_error(f"Audit failed: {e.message}")
        raise typer.Exit(1)

    cli_ctx.formatter.print_detail(summary.to_dict(), title="Audit Summary")
    for report in summary.failed:
        cli_ctx.formatter.print_warning(f"{report.resource.name}: {report.error}")
    if cli_ctx.debug:
        for report in summary.reports:
            for warning in report.warnings:
                cli_ctx.formatter.print_warning(f"{report.resource.name}: {warning}")
    cli_ctx.formatter.print_success(f"Wrote {count} permission records to {settings.output_path}")
