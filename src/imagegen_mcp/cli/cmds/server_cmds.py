"""
CLI command that runs the MCP server.

Usage:
    imagegen-mcp serve                                # auto-detect providers
    imagegen-mcp serve --providers openai,stability   # explicit providers
    imagegen-mcp serve --models gpt-image-1 --models dall-e-3
    imagegen-mcp serve --transport streamable-http
"""

from __future__ import annotations

from typing import List, Optional

import typer

from imagegen_mcp.cli.output import print_cli_error
from imagegen_mcp.config import build_config
from imagegen_mcp.errors import ConfigurationError
from imagegen_mcp.logging import configure_logging, get_logger
from imagegen_mcp.registry import ProviderRegistry
from imagegen_mcp.server import SERVER_NAME, create_server

TRANSPORTS = ("stdio", "sse", "streamable-http")

logger = get_logger("cli")


def serve_cmd(
    providers: Optional[List[str]] = typer.Option(
        None,
        "--providers",
        "-p",
        help="Providers to enable (comma separated or repeated). Default: auto-detect",
    ),
    models: Optional[List[str]] = typer.Option(
        None,
        "--models",
        "-m",
        help="Model allow-list (comma separated or repeated)",
    ),
    default_provider: Optional[str] = typer.Option(
        None,
        "--default-provider",
        "-d",
        help="Provider used when a call names none",
    ),
    strict_models: bool = typer.Option(
        False,
        "--strict-models",
        help="Reject models that no enabled provider offers",
    ),
    transport: str = typer.Option(
        "stdio",
        "--transport",
        "-t",
        help="MCP transport: stdio, sse or streamable-http",
    ),
    name: str = typer.Option(SERVER_NAME, "--name", help="Server name announced to clients"),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (default: IMAGEGEN_MCP_LOG_LEVEL or INFO)",
    ),
):
    """Run the image generation MCP server."""
    try:
        configure_logging(log_level)
    except ValueError as e:
        print_cli_error(str(e), hint="Use DEBUG, INFO, WARNING or ERROR")
        raise typer.Exit(2)

    if transport not in TRANSPORTS:
        print_cli_error(
            f"Unknown transport: {transport}",
            hint=f"Supported: {', '.join(TRANSPORTS)}",
        )
        raise typer.Exit(2)

    try:
        config = build_config(
            providers, models, default_provider, strict_models=strict_models
        )
    except ValueError as e:
        print_cli_error(str(e))
        raise typer.Exit(2)

    try:
        registry = ProviderRegistry.from_config(config)
    except ConfigurationError as e:
        print_cli_error(
            e.message,
            hint="Set OPENAI_API_KEY, STABILITY_API_KEY, REPLICATE_API_TOKEN or HUGGINGFACE_API_KEY",
        )
        raise typer.Exit(1)

    server = create_server(registry, name=name)
    logger.info("Starting MCP server over %s", transport)
    server.run(transport=transport)


def register(parent: typer.Typer):
    """Register the serve command with the parent CLI app."""
    parent.command("serve", rich_help_panel="Server")(serve_cmd)
