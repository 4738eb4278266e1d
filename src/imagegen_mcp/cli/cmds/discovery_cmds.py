"""
CLI commands for provider and model discovery.

Usage:
    imagegen-mcp providers               # All providers and whether a key is set
    imagegen-mcp providers --configured  # Only configured providers
    imagegen-mcp models                  # Catalogs of configured providers
    imagegen-mcp models --provider openai
"""

from __future__ import annotations

import json
from typing import Dict, Optional

import typer

from imagegen_mcp.capabilities import (
    SUPPORTED_PROVIDERS,
    get_descriptor,
    is_provider_configured,
    list_configured_providers,
    list_models,
)
from imagegen_mcp.cli.output import print_cli_error, print_models, print_providers


def providers_cmd(
    configured: bool = typer.Option(
        False,
        "--configured",
        "-c",
        help="Only show providers with API keys configured",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
):
    """List supported image providers."""
    rows = []
    for name in SUPPORTED_PROVIDERS:
        is_configured = is_provider_configured(name)
        if configured and not is_configured:
            continue
        descriptor = get_descriptor(name)
        rows.append(
            {
                "provider": name,
                "name": descriptor.display_name,
                "env_var": descriptor.env_var,
                "configured": is_configured,
            }
        )

    if output_json:
        typer.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        print_cli_error(
            "No providers configured",
            hint="Set an API key environment variable (e.g., OPENAI_API_KEY)",
        )
        raise typer.Exit(1)
    print_providers(rows)


def models_cmd(
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Provider to list models for (default: all configured providers)",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
):
    """List the built-in model catalogs as provider/model keys."""
    if provider:
        if provider not in SUPPORTED_PROVIDERS:
            print_cli_error(
                f"Unknown provider: {provider}",
                hint=f"Supported: {', '.join(SUPPORTED_PROVIDERS)}",
            )
            raise typer.Exit(1)
        names = [provider]
    else:
        names = list_configured_providers()
        if not names:
            print_cli_error(
                "No configured providers found",
                hint="Set API key environment variables or pass --provider",
            )
            raise typer.Exit(1)

    result: Dict[str, Dict[str, str]] = {
        name: {f"{name}/{key}": value for key, value in list_models(name).items()}
        for name in names
    }
    if output_json:
        typer.echo(json.dumps(result, indent=2))
    else:
        print_models(result)


def register(parent: typer.Typer):
    """Register discovery commands with the parent CLI app."""
    parent.command("providers", rich_help_panel="Discovery")(providers_cmd)
    parent.command("models", rich_help_panel="Discovery")(models_cmd)
