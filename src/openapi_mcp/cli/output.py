"""Console output helpers for the CLI."""

from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from openapi_mcp.openapi.models import BuildReport, OpenAPITool

console = Console()
err_console = Console(stderr=True)


def print_cli_error(message: str, hint: Optional[str] = None) -> None:
    err_console.print(f"[bold red]✗[/bold red] {message}")
    if hint:
        err_console.print(f"  [dim]{hint}[/dim]")


def print_tools(tools: Sequence[OpenAPITool], report: Optional[BuildReport] = None) -> None:
    table = Table(title=report.title if report and report.title else None, show_lines=False)
    table.add_column("Tool", style="bold #6366f1")
    table.add_column("Endpoint", style="dim")
    table.add_column("Arguments")
    table.add_column("Description", overflow="fold")

    for tool in tools:
        schema = tool.input_schema
        required = set(schema.get("required") or [])
        args = ", ".join(
            f"{name}*" if name in required else name for name in (schema.get("properties") or {})
        )
        table.add_row(tool.name, f"{tool.method.upper()} {tool.path}", args, tool.description)

    console.print(table)
    if report is not None:
        console.print(
            f"[dim]{report.registered_tools} tool(s) from {report.total_ops} operation(s), "
            f"{len(report.filtered)} filtered[/dim]"
        )
