from __future__ import annotations

import typer

from openapi_mcp import __version__
from openapi_mcp.cli.cmds import register_serve

_TYPER_HELP = """Expose an OpenAPI-described HTTP API as MCP tools.

**Quick start:**

* `openapi-mcp tools --spec ./openapi.json`: preview the tools
* `openapi-mcp serve --spec ./openapi.json`: serve them at /mcp
"""

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=_TYPER_HELP,
    rich_markup_mode="markdown",
)


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        typer.echo(f"openapi-mcp {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """openapi-mcp: OpenAPI operations as MCP tools."""


register_serve(app)


def main():
    app()


if __name__ == "__main__":
    main()
