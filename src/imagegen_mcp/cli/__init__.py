from __future__ import annotations

from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv

from imagegen_mcp import __version__
from imagegen_mcp.cli.cmds import register_discovery, register_server
from imagegen_mcp.cli.output import console

_TYPER_HELP = """
**imagegen-mcp**: MCP server for image generation across providers.

* `imagegen-mcp serve`: Run the MCP server (stdio by default)
* `imagegen-mcp providers`: List providers and their credentials
* `imagegen-mcp models`: List model catalogs
"""


def version_callback(value: Optional[bool]):
    if value:
        console.print(f"imagegen-mcp {__version__}")
        raise typer.Exit()


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=_TYPER_HELP,
    rich_markup_mode="markdown",
)


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """imagegen-mcp: multi-provider image generation over MCP."""
    # Credentials may live in a .env file next to where the server is launched.
    load_dotenv(find_dotenv(usecwd=True))


register_server(app)
register_discovery(app)


def main():
    app()


if __name__ == "__main__":
    main()
