"""
Rich Terminal Output for the TAMS Bridge CLI

Tables, panels and styled messages for backends, connection status and
flow listings. Uses the Rich library for all formatting.
"""

from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..protocol import NormalizedResponse
from ..settings.models import BackendConfig


class OutputManager:
    """
    Manages rich terminal output for the TAMS Bridge CLI.

    Provides consistent styling for:
    - Status messages
    - Panels for connection status
    - Tables for backends, feature comparison and flows
    """

    def __init__(self, console: Console | None = None):
        """
        Initialize the output manager.

        Args:
            console: Rich Console instance (creates one if not provided)
        """
        self.console = console or Console()

    # ==================== Basic Output ====================

    def print(self, message: str = "", style: str | None = None) -> None:
        self.console.print(message, style=style)

    def print_header(self, title: str, subtitle: str | None = None) -> None:
        self.console.print()
        self.console.print(f"[bold blue]{title}[/bold blue]")
        if subtitle:
            self.console.print(f"[dim]{subtitle}[/dim]")
        self.console.print()

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]v[/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]x[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {escape(message)}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    # ==================== Panels ====================

    def status_panel(self, status: dict[str, Any], title: str = "Status") -> None:
        """
        Display a status panel.

        Args:
            status: Label to value mapping; booleans render as Yes/No
            title: Panel title
        """
        lines = []
        for key, value in status.items():
            if isinstance(value, bool):
                value_str = "[green]Yes[/green]" if value else "[red]No[/red]"
            elif value is None:
                value_str = "[dim]-[/dim]"
            else:
                value_str = escape(str(value))
            lines.append(f"[bold]{key}:[/bold] {value_str}")

        self.console.print(Panel("\n".join(lines), title=title, border_style="cyan"))

    # ==================== Tables ====================

    def backends_table(self, backends: list[BackendConfig], current_id: str | None = None) -> None:
        """
        Display catalog backends.

        Args:
            backends: Backends to list
            current_id: Id of the selected backend, marked with ``*``
        """
        table = Table(title="Backends")
        table.add_column("", width=1)
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("Type", style="yellow")
        table.add_column("Version", style="dim")
        table.add_column("URL", style="dim")

        for backend in backends:
            table.add_row(
                "[green]*[/green]" if backend.id == current_id else "",
                backend.id,
                backend.name,
                backend.backend_type.value,
                backend.version or "-",
                backend.base_url,
            )

        self.console.print(table)

    def comparison_table(self, rows: list[dict[str, Any]], backend_ids: list[str]) -> None:
        """Display the feature comparison matrix."""
        table = Table(title="Feature Comparison")
        table.add_column("Feature", style="cyan")
        for backend_id in backend_ids:
            table.add_column(backend_id, justify="center")

        for row in rows:
            table.add_row(
                row["feature"],
                *("[green]v[/green]" if row.get(b) else "[dim]-[/dim]" for b in backend_ids),
            )

        self.console.print(table)

    def flows_table(self, response: NormalizedResponse, title: str = "Flows") -> None:
        """
        Display a page of flows.

        Args:
            response: Normalized list response
            title: Table title
        """
        table = Table(title=title)
        table.add_column("ID", style="cyan")
        table.add_column("Label", style="white")
        table.add_column("Format", style="yellow")
        table.add_column("Source", style="dim")

        for flow in response.data:
            table.add_row(
                str(flow.get("id", "")),
                escape(str(flow.get("label") or "-")),
                str(flow.get("format") or "-"),
                str(flow.get("source_id") or "-"),
            )

        self.console.print(table)

    @contextmanager
    def spinner(self, message: str = "Working..."):
        """
        Display a spinner during an operation.

        Yields:
            Rich Status object
        """
        with self.console.status(message) as status:
            yield status
