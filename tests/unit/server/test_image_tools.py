"""Tests for the MCP server exposing the image tools."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from mcp.server.fastmcp import FastMCP, Image

from conftest import StubBackend
from imagegen_mcp.capabilities import ProviderId
from imagegen_mcp.config import build_config
from imagegen_mcp.dispatch import DispatchResult
from imagegen_mcp.providers import OpenAIImageClient
from imagegen_mcp.registry import ProviderRegistry
from imagegen_mcp.server import SERVER_NAME, _tool_output, create_server

ENV = {"OPENAI_API_KEY": "sk-o", "STABILITY_API_KEY": "sk-s"}


def make_server(backend: StubBackend) -> FastMCP:
    registry = ProviderRegistry.from_config(
        build_config(["openai", "stability"]),
        env=ENV,
        factories={ProviderId.OPENAI: lambda c: OpenAIImageClient(c, transport=backend.transport)},
    )
    return create_server(registry)


def first_text(result) -> str:
    """Text of the first content block, across FastMCP call_tool return shapes."""
    if isinstance(result, tuple):
        result = result[0]
    return result[0].text


# =============================================================================
# Tool listing
# =============================================================================


class TestToolListing:
    @pytest.mark.asyncio
    async def test_tool_names(self, openai_backend: StubBackend) -> None:
        tools = await make_server(openai_backend).list_tools()
        assert {tool.name for tool in tools} == {
            "generate-image",
            "edit-image",
            "list-providers",
            "list-models",
            "provider-stats",
        }

    @pytest.mark.asyncio
    async def test_generate_schema(self, openai_backend: StubBackend) -> None:
        tools = {tool.name: tool for tool in await make_server(openai_backend).list_tools()}
        schema = tools["generate-image"].inputSchema
        assert schema["required"] == ["prompt"]
        for name in (
            "output_path",
            "model",
            "provider",
            "size",
            "style",
            "output_format",
            "output_compression",
            "moderation",
            "background",
            "quality",
            "n",
            "include_image",
        ):
            assert name in schema["properties"]
        assert schema["properties"]["prompt"]["description"] == "Text prompt describing the image"

    @pytest.mark.asyncio
    async def test_edit_schema(self, openai_backend: StubBackend) -> None:
        tools = {tool.name: tool for tool in await make_server(openai_backend).list_tools()}
        schema = tools["edit-image"].inputSchema
        assert set(schema["required"]) == {"images", "prompt"}
        assert schema["properties"]["images"]["type"] == "array"
        assert "mask" in schema["properties"]

    def test_server_name(self, openai_backend: StubBackend) -> None:
        assert make_server(openai_backend).name == SERVER_NAME


# =============================================================================
# Tool calls
# =============================================================================


class TestToolCalls:
    @pytest.mark.asyncio
    async def test_list_providers(self, openai_backend: StubBackend) -> None:
        result = await make_server(openai_backend).call_tool("list-providers", {})
        assert json.loads(first_text(result)) == ["openai", "stability"]

    @pytest.mark.asyncio
    async def test_list_models(self, openai_backend: StubBackend) -> None:
        result = await make_server(openai_backend).call_tool("list-models", {})
        models = json.loads(first_text(result))
        assert models["openai/dall-e-3"] == "dall-e-3"
        assert models["stability/sdxl-1.0"] == "stable-diffusion-xl-1024-v1-0"

    @pytest.mark.asyncio
    async def test_provider_stats(self, openai_backend: StubBackend) -> None:
        result = await make_server(openai_backend).call_tool("provider-stats", {})
        stats = json.loads(first_text(result))
        assert [s["provider"] for s in stats] == ["openai", "stability"]

    @pytest.mark.asyncio
    async def test_generate_returns_path(self, openai_backend: StubBackend, tmp_path: Path) -> None:
        target = tmp_path / "out.png"
        result = await make_server(openai_backend).call_tool(
            "generate-image",
            {"prompt": "a sunrise", "model": "openai/dall-e-3", "output_path": str(target)},
        )
        assert first_text(result) == str(target.resolve())
        assert target.stat().st_size > 0

    @pytest.mark.asyncio
    async def test_generate_error_is_text(self, openai_backend: StubBackend) -> None:
        result = await make_server(openai_backend).call_tool(
            "generate-image", {"prompt": "x", "model": "dall-e-3", "n": 2}
        )
        assert first_text(result) == "Error generating image: dall-e-3 model only supports n=1"
        assert openai_backend.call_count == 0


class TestToolOutput:
    def test_path_only(self) -> None:
        assert _tool_output(DispatchResult(file_path="/tmp/a.png"), include_image=False) == "/tmp/a.png"

    def test_with_image(self, png_bytes: bytes) -> None:
        output = _tool_output(
            DispatchResult(file_path="/tmp/a.png", image_bytes=png_bytes), include_image=True
        )
        assert output[0] == "/tmp/a.png"
        assert isinstance(output[1], Image)

    def test_error_never_has_image(self) -> None:
        result = DispatchResult(error="Error generating image: x")
        assert _tool_output(result, include_image=True) == "Error generating image: x"
