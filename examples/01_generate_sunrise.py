#!/usr/bin/env python
"""Generate and Edit Images Without an MCP Client.

This example demonstrates:
- Building a provider registry from environment credentials
- Text-to-image through the dispatcher
- Picking a provider implicitly with a provider/model string
- Editing the generated image
- Listing the exposed models

Set at least one of OPENAI_API_KEY, STABILITY_API_KEY, REPLICATE_API_TOKEN or
HUGGINGFACE_API_KEY before running.
"""

import asyncio
import tempfile
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from imagegen_mcp import ImageDispatcher, ProviderRegistry, build_config
from imagegen_mcp.logging import configure_logging

OUTPUT_DIR = Path(tempfile.gettempdir()) / "imagegen-mcp-examples"


# =============================================================================
# Example 1: Registry
# =============================================================================


def build_registry() -> ProviderRegistry:
    """Auto-detect providers from the environment."""
    print("=" * 60)
    print("1. Provider Registry")
    print("=" * 60)

    registry = ProviderRegistry.from_config(build_config())
    print(f"\n  Providers: {', '.join(p.value for p in registry.available_providers())}")
    print(f"  Default:   {registry.default_provider.value}")
    print(f"  Models:    {len(registry.list_models())}")
    return registry


# =============================================================================
# Example 2: Text to Image
# =============================================================================


async def generate_sunrise(dispatcher: ImageDispatcher) -> str:
    """Generate one image into the example output directory."""
    print("\n" + "=" * 60)
    print("2. Text to Image")
    print("=" * 60)

    model = None
    if "openai" in dispatcher.registry:
        model = "openai/dall-e-3"

    result = await dispatcher.text_to_image(
        "A beautiful sunrise over mountains with vibrant orange and pink colors",
        model=model,
        output_path=str(OUTPUT_DIR),
    )
    if not result.ok:
        print(f"\n  [!] {result.error}")
        return ""

    print(f"\n  [OK] {result.provider}/{result.model}")
    print(f"    Saved to: {result.file_path}")
    return result.file_path


# =============================================================================
# Example 3: Image to Image
# =============================================================================


async def edit_sunrise(dispatcher: ImageDispatcher, source: str) -> None:
    """Edit the generated image."""
    print("\n" + "=" * 60)
    print("3. Image to Image")
    print("=" * 60)

    result = await dispatcher.image_to_image(
        [source],
        "Add a hot air balloon drifting across the sky",
        output_path=str(OUTPUT_DIR / "edited.png"),
    )
    if result.ok:
        print(f"\n  [OK] Saved to: {result.file_path}")
    else:
        print(f"\n  [!] {result.error}")


async def main():
    load_dotenv(find_dotenv(usecwd=True))
    configure_logging("WARNING")

    dispatcher = ImageDispatcher(build_registry())
    source = await generate_sunrise(dispatcher)
    if source:
        await edit_sunrise(dispatcher, source)


if __name__ == "__main__":
    asyncio.run(main())
