"""MCP server exposing the image tools over a provider registry."""

import json
import logging
from typing import Annotated, Any, List, Optional, Union

from mcp.server.fastmcp import FastMCP, Image
from pydantic import Field

from imagegen_mcp.dispatch import DispatchResult, ImageDispatcher
from imagegen_mcp.registry import ProviderRegistry

log = logging.getLogger(__name__)

SERVER_NAME = "Multi-Provider Image Generation"

GENERATE_DESCRIPTION = (
    "Generate an image from a text prompt. Saves the image to disk and returns "
    "the file path. Use 'provider' to pick a backend or a 'provider/model' "
    "string in 'model' to pick one implicitly."
)
EDIT_DESCRIPTION = (
    "Edit or transform existing local images using a text prompt, with an "
    "optional mask. Saves the result to disk and returns the file path."
)


def _tool_output(result: DispatchResult, include_image: bool) -> Union[str, List[Any]]:
    if not result.ok or not include_image or result.image_bytes is None:
        return result.to_text()
    return [result.to_text(), Image(data=result.image_bytes, format=result.output_format)]


def create_server(registry: ProviderRegistry, *, name: str = SERVER_NAME) -> FastMCP:
    """Build a FastMCP server whose tools dispatch through ``registry``."""
    dispatcher = ImageDispatcher(registry)
    server = FastMCP(name)

    async def generate_image(
        prompt: Annotated[str, Field(description="Text prompt describing the image")],
        output_path: Annotated[
            Optional[str],
            Field(description="File path, or directory without extension, to save to"),
        ] = None,
        model: Annotated[
            Optional[str], Field(description="Model key, backend id, or provider/model")
        ] = None,
        provider: Annotated[
            Optional[str], Field(description="Provider id (openai, stability, replicate, huggingface)")
        ] = None,
        size: Annotated[Optional[str], Field(description="WIDTHxHEIGHT or 'auto'")] = None,
        style: Annotated[Optional[str], Field(description="Style (vivid/natural or a provider preset)")] = None,
        output_format: Annotated[Optional[str], Field(description="png, jpeg or webp")] = None,
        output_compression: Annotated[
            Optional[int], Field(description="Compression 0-100 for jpeg/webp", ge=0, le=100)
        ] = None,
        moderation: Annotated[Optional[str], Field(description="Moderation level: auto or low")] = None,
        background: Annotated[
            Optional[str], Field(description="Background: auto, transparent or opaque")
        ] = None,
        quality: Annotated[Optional[str], Field(description="Image quality")] = None,
        n: Annotated[int, Field(description="Number of images to generate", ge=1, le=10)] = 1,
        include_image: Annotated[
            bool, Field(description="Also return the image content")
        ] = False,
    ):
        result = await dispatcher.text_to_image(
            prompt,
            provider=provider,
            model=model,
            n=n,
            size=size,
            style=style,
            quality=quality,
            output_format=output_format,
            output_compression=output_compression,
            moderation=moderation,
            background=background,
            output_path=output_path,
            include_bytes=include_image,
        )
        return _tool_output(result, include_image)

    async def edit_image(
        images: Annotated[List[str], Field(description="Local paths of the images to edit")],
        prompt: Annotated[str, Field(description="Description of the desired edit")],
        output_path: Annotated[
            Optional[str],
            Field(description="File path, or directory without extension, to save to"),
        ] = None,
        mask: Annotated[
            Optional[str], Field(description="Local path of a mask image (transparent areas are edited)")
        ] = None,
        model: Annotated[
            Optional[str], Field(description="Model key, backend id, or provider/model")
        ] = None,
        provider: Annotated[Optional[str], Field(description="Provider id")] = None,
        size: Annotated[Optional[str], Field(description="WIDTHxHEIGHT or 'auto'")] = None,
        output_format: Annotated[Optional[str], Field(description="png, jpeg or webp")] = None,
        output_compression: Annotated[
            Optional[int], Field(description="Compression 0-100 for jpeg/webp", ge=0, le=100)
        ] = None,
        quality: Annotated[Optional[str], Field(description="Image quality")] = None,
        n: Annotated[int, Field(description="Number of images to generate", ge=1, le=10)] = 1,
        include_image: Annotated[
            bool, Field(description="Also return the image content")
        ] = False,
    ):
        result = await dispatcher.image_to_image(
            images,
            prompt,
            mask=mask,
            provider=provider,
            model=model,
            n=n,
            size=size,
            quality=quality,
            output_format=output_format,
            output_compression=output_compression,
            output_path=output_path,
            include_bytes=include_image,
        )
        return _tool_output(result, include_image)

    def list_providers() -> str:
        return json.dumps([p.value for p in registry.available_providers()])

    def list_models() -> str:
        return json.dumps(registry.list_models(), indent=2)

    def provider_stats() -> str:
        return json.dumps(registry.stats(), indent=2)

    server.add_tool(fn=generate_image, name="generate-image", description=GENERATE_DESCRIPTION)
    server.add_tool(fn=edit_image, name="edit-image", description=EDIT_DESCRIPTION)
    server.add_tool(
        fn=list_providers, name="list-providers", description="List the available image providers"
    )
    server.add_tool(
        fn=list_models,
        name="list-models",
        description="List available models as provider/model keys mapped to backend ids",
    )
    server.add_tool(
        fn=provider_stats,
        name="provider-stats",
        description="Describe each available provider, its models and operations",
    )
    log.info(
        "MCP server ready with providers: %s (default: %s)",
        ", ".join(p.value for p in registry.available_providers()),
        registry.default_provider.value,
    )
    return server


__all__ = ["create_server", "SERVER_NAME"]
