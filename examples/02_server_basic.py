#!/usr/bin/env python
"""Run the Image MCP Server Programmatically.

Equivalent to ``imagegen-mcp serve --providers openai,stability``, but built
in code so the registry can be tuned (timeouts, base URLs) per provider.

Connect an MCP client over stdio:

    {"command": "python", "args": ["examples/02_server_basic.py"]}
"""

from dotenv import find_dotenv, load_dotenv

from imagegen_mcp import ProviderId, ProviderRegistry, ProviderSettings, build_config, create_server
from imagegen_mcp.logging import configure_logging


def main():
    load_dotenv(find_dotenv(usecwd=True))
    configure_logging()

    config = build_config(
        providers=["openai", "stability"],
        provider_settings={
            ProviderId.OPENAI: ProviderSettings(timeout=120),
            ProviderId.STABILITY: ProviderSettings(timeout=60),
        },
    )
    registry = ProviderRegistry.from_config(config)
    create_server(registry).run(transport="stdio")


if __name__ == "__main__":
    main()
