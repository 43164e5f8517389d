"""Console output for audit summaries and messages"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.table import Table

# Never echoed, even in a doctor listing
SECRET_KEYS = {"pat"}


class OutputFormat(Enum):
    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


def _title(key: str) -> str:
    return key.replace("_", " ").title()


class OutputFormatter:
    """Render summaries as a rich table, JSON or YAML.

    Unknown format names fall back to the table view.
    """

    def __init__(self, format_type: str = "table", console: Optional[Console] = None):
        self.console = console or Console()
        try:
            self.format = OutputFormat(format_type.lower())
        except ValueError:
            self.format = OutputFormat.TABLE

    @property
    def is_table(self) -> bool:
        return self.format == OutputFormat.TABLE

    def _dump(self, data: Any):
        if self.format == OutputFormat.JSON:
            self.console.print_json(json.dumps(data, default=str))
        else:
            self.console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))

    @staticmethod
    def _cell(value: Any) -> str:
        if value is None:
            return "[dim]-[/dim]"
        if isinstance(value, bool):
            return "[green]✓[/green]" if value else "[red]✗[/red]"
        return str(value)

    def print_list(
        self,
        items: List[Dict[str, Any]],
        columns: Optional[List[str]] = None,
        title: Optional[str] = None,
    ):
        """Print rows; ``columns`` defaults to the keys of the first row"""
        if not items:
            self.console.print("[dim]No items found[/dim]")
            return
        if not self.is_table:
            self._dump(items)
            return

        columns = columns or list(items[0].keys())
        table = Table(title=title)
        for column in columns:
            table.add_column(_title(column))
        for item in items:
            table.add_row(*(self._cell(item.get(column, "")) for column in columns))
        self.console.print(table)

    def print_detail(self, item: Dict[str, Any], title: Optional[str] = None):
        """Print one mapping as ``Key: value`` lines"""
        if not self.is_table:
            self._dump(item)
            return

        if title:
            self.console.print(f"[bold]{title}[/bold]\n")
        for key, value in item.items():
            if value is None:
                shown = "[dim]Not set[/dim]"
            elif isinstance(value, bool):
                shown = "[green]Yes[/green]" if value else "[red]No[/red]"
            elif key in SECRET_KEYS and value:
                shown = "***"
            elif isinstance(value, (list, dict)):
                shown = json.dumps(value, indent=2, default=str)
            else:
                shown = str(value)
            self.console.print(f"[cyan]{_title(key)}:[/cyan] {shown}")

    def _print_status(self, status: str, message: str, marker: str):
        if self.is_table:
            self.console.print(f"{marker} {message}")
        else:
            self._dump({"status": status, "message": message})

    def print_success(self, message: str):
        self._print_status("success", message, "[green]✓[/green]")

    def print_error(self, message: str):
        self._print_status("error", message, "[red]✗[/red]")

    def print_warning(self, message: str):
        self._print_status("warning", message, "[yellow]⚠[/yellow]")
