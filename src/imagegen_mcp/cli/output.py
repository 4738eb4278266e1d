"""Rich rendering helpers shared by CLI commands."""

from __future__ import annotations

from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

console = Console()
# stdout belongs to the MCP stdio transport while serving.
err_console = Console(stderr=True)


def print_cli_error(message: str, hint: Optional[str] = None) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")
    if hint:
        err_console.print(f"  [dim]{hint}[/dim]")


def print_providers(providers: List[Dict[str, str]]) -> None:
    table = Table(title="Image providers", show_lines=False)
    table.add_column("Provider", style="bold")
    table.add_column("Name")
    table.add_column("Env var", style="dim")
    table.add_column("Configured")
    for row in providers:
        mark = "[green]✓[/green]" if row["configured"] else "[dim]-[/dim]"
        table.add_row(row["provider"], row["name"], row["env_var"], mark)
    console.print(table)


def print_models(models: Dict[str, Dict[str, str]]) -> None:
    for provider, catalog in models.items():
        table = Table(title=provider)
        table.add_column("Model", style="bold")
        table.add_column("Backend id", style="dim")
        for key, value in catalog.items():
            table.add_row(key, value)
        console.print(table)
