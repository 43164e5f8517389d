"""Branch policy export command."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from acl_audit.cli.utils.context import CLIContext
from acl_audit.core.errors import AuditError, AuthenticationError, ConfigurationError
from acl_audit.core.policies import POLICY_COLUMNS, POLICY_PERMISSION_COLUMNS
from acl_audit.infrastructure.reports.writers import rows_for, write_report

console = Console()


def policies_command(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project name (overrides AZURE_DEVOPS_PROJECT)"),
    output_path: Optional[Path] = typer.Option(None, "--file", "-f", help="Policy report file (.csv or .xlsx)"),
    permissions_path: Optional[Path] = typer.Option(
        None, "--permissions-file", help="Report of who can change or bypass policies (.csv or .xlsx)"
    ),
    report_format: Optional[str] = typer.Option(None, "--format", help="Report format: csv, xlsx"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to match (default: each repository's default branch)"),
    repository_filter: Optional[str] = typer.Option(None, "--filter", help="Only include repositories whose name contains this text"),
    skip_permissions: bool = typer.Option(False, "--skip-permissions", help="Only export the policy configurations"),
    show: bool = typer.Option(False, "--show", help="Also print the policies"),
):
    """
    Export enabled branch policies and who can change or bypass them.

    Example:
        acl-audit policies --branch main --file branch-policies.xlsx
    """
    cli_ctx: CLIContext = ctx.obj

    try:
        settings = cli_ctx.get_settings(
            project=project,
            policies_output_path=output_path,
            policy_permissions_output_path=permissions_path,
            branch=branch,
            repository_filter=repository_filter,
        )
        with cli_ctx.get_audit_service(settings) as service:
            records = service.export_policies()
            summary = None if skip_permissions else service.audit_policy_permissions()

        count = write_report(
            settings.policies_output_path,
            POLICY_COLUMNS,
            rows_for(records),
            report_format=report_format,
            sheet_title="Branch Policies",
        )
        if summary is not None:
            permission_count = write_report(
                settings.policy_permissions_output_path,
                POLICY_PERMISSION_COLUMNS,
                rows_for(summary.records),
                report_format=report_format,
                sheet_title="Policy Permissions",
            )

    except (ConfigurationError, AuthenticationError) as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    except AuditError as e:
        cli_ctx.formatter.print_error(f"Policy export failed: {e.message}")
        raise typer.Exit(1)

    if show:
        cli_ctx.formatter.print_list(
            [r.to_row() for r in records],
            columns=["repository_name", "policy_type", "policy_id", "is_blocking"],
            title="Branch Policies",
        )
    cli_ctx.formatter.print_success(f"Wrote {count} branch policies to {settings.policies_output_path}")
    if summary is not None:
        for report in summary.failed:
            cli_ctx.formatter.print_warning(f"{report.resource.name}: {report.error}")
        cli_ctx.formatter.print_success(
            f"Wrote {permission_count} policy permission entries to {settings.policy_permissions_output_path}"
        )
