"""Tests for the OpenAI image client against a stub backend."""

from __future__ import annotations

import httpx
import pytest

from conftest import StubBackend
from imagegen_mcp.config import ProviderSettings
from imagegen_mcp.errors import ProviderError, ValidationError
from imagegen_mcp.providers import EditRequest, GenerationRequest, OpenAIImageClient, ProviderClientConfig


def make_client(backend: StubBackend, models=None, base_url=None, extra=None) -> OpenAIImageClient:
    settings = ProviderSettings(allowed_models=models, base_url=base_url, extra=extra or {})
    return OpenAIImageClient(
        ProviderClientConfig(api_key="sk-test", settings=settings),
        transport=backend.transport,
    )


# =============================================================================
# Parameter shaping
# =============================================================================


class TestGenerationParams:
    def test_gpt_image_defaults(self, openai_backend: StubBackend) -> None:
        params, extra = make_client(openai_backend).build_generation_params(GenerationRequest(prompt="a cat"))
        assert params == {
            "model": "gpt-image-1",
            "prompt": "a cat",
            "n": 1,
            "size": "1024x1024",
            "quality": "auto",
            "background": "auto",
            "moderation": "low",
            "output_format": "png",
        }
        assert extra == {}

    def test_gpt_image_compression_only_for_lossy_formats(self, openai_backend: StubBackend) -> None:
        client = make_client(openai_backend)
        jpeg, _ = client.build_generation_params(
            GenerationRequest(prompt="x", output_format="jpeg", output_compression=60)
        )
        png, _ = client.build_generation_params(
            GenerationRequest(prompt="x", output_format="png", output_compression=60)
        )
        assert jpeg["output_compression"] == 60
        assert "output_compression" not in png

    def test_dalle3_style_and_response_format(self, openai_backend: StubBackend) -> None:
        params, _ = make_client(openai_backend).build_generation_params(
            GenerationRequest(prompt="x", model="dall-e-3", quality="hd", style="natural")
        )
        assert params["response_format"] == "b64_json"
        assert params["style"] == "natural"
        assert params["quality"] == "hd"
        assert "background" not in params

    def test_dalle2_has_no_style(self, openai_backend: StubBackend) -> None:
        params, _ = make_client(openai_backend).build_generation_params(
            GenerationRequest(prompt="x", model="dall-e-2", size="512x512", style="vivid")
        )
        assert "style" not in params

    def test_extra_and_user_passed_through(self, openai_backend: StubBackend) -> None:
        params, extra = make_client(openai_backend).build_generation_params(
            GenerationRequest(prompt="x", user="u-1", extra={"seed": 3})
        )
        assert params["user"] == "u-1"
        assert extra == {"seed": 3}

    def test_settings_extra_sits_beneath_request_extra(self, openai_backend: StubBackend) -> None:
        client = make_client(openai_backend, extra={"seed": 1, "partial_images": 0})
        _, extra = client.build_generation_params(GenerationRequest(prompt="x", extra={"seed": 3}))
        assert extra == {"seed": 3, "partial_images": 0}


class TestGenerationConstraints:
    """Constraint violations are rejected before any network call."""

    def test_dalle3_single_image(self, openai_backend: StubBackend) -> None:
        with pytest.raises(ValidationError, match="only supports n=1"):
            make_client(openai_backend).build_generation_params(
                GenerationRequest(prompt="x", model="dall-e-3", n=2)
            )
        assert openai_backend.call_count == 0

    @pytest.mark.asyncio
    async def test_generate_rejects_without_calling(self, openai_backend: StubBackend) -> None:
        with pytest.raises(ValidationError):
            await make_client(openai_backend).generate(
                GenerationRequest(prompt="x", model="dall-e-3", n=2)
            )
        assert openai_backend.call_count == 0

    def test_size_whitelist(self, openai_backend: StubBackend) -> None:
        with pytest.raises(ValidationError, match="dall-e-3 only supports sizes"):
            make_client(openai_backend).build_generation_params(
                GenerationRequest(prompt="x", model="dall-e-3", size="512x512")
            )

    def test_transparent_background_needs_alpha_format(self, openai_backend: StubBackend) -> None:
        with pytest.raises(ValidationError, match="png or webp"):
            make_client(openai_backend).build_generation_params(
                GenerationRequest(prompt="x", background="transparent", output_format="jpeg")
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field_name,kwargs",
        [
            ("output_format", {"output_format": "tiff"}),
            ("moderation", {"moderation": "none"}),
            ("quality", {"quality": "ultra"}),
            ("background", {"background": "checkered"}),
        ],
    )
    async def test_unknown_option_values_rejected(
        self, openai_backend: StubBackend, field_name: str, kwargs
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await make_client(openai_backend).generate(GenerationRequest(prompt="x", **kwargs))
        assert exc_info.value.field == field_name
        assert openai_backend.call_count == 0

    def test_dalle3_style_values(self, openai_backend: StubBackend) -> None:
        with pytest.raises(ValidationError, match="Invalid style 'sketchy'"):
            make_client(openai_backend).build_generation_params(
                GenerationRequest(prompt="x", model="dall-e-3", style="sketchy")
            )


# =============================================================================
# HTTP round trips
# =============================================================================


class TestGenerate:
    @pytest.mark.asyncio
    async def test_posts_and_parses(self, openai_backend: StubBackend, png_b64: str) -> None:
        result = await make_client(openai_backend).generate(
            GenerationRequest(prompt="a sunrise", model="dall-e-3")
        )
        request = openai_backend.last_request
        assert request.url == httpx.URL("https://api.openai.com/v1/images/generations")
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert openai_backend.last_json()["model"] == "dall-e-3"
        assert result.first_b64() == png_b64
        assert result.created == 1700000000
        assert result.provider == "openai"
        assert result.model == "dall-e-3"
        assert result.output_format == "png"

    @pytest.mark.asyncio
    async def test_reports_requested_gpt_image_format(self, openai_backend: StubBackend) -> None:
        result = await make_client(openai_backend).generate(
            GenerationRequest(prompt="x", output_format="webp")
        )
        assert result.output_format == "webp"

    @pytest.mark.asyncio
    async def test_extra_lands_in_request_body(self, openai_backend: StubBackend) -> None:
        client = make_client(openai_backend, extra={"partial_images": 0})
        await client.generate(GenerationRequest(prompt="x", extra={"seed": 3}))
        body = openai_backend.last_json()
        assert body["partial_images"] == 0
        assert body["seed"] == 3

    @pytest.mark.asyncio
    async def test_base_url_override(self, openai_backend: StubBackend) -> None:
        client = make_client(openai_backend, base_url="https://proxy.example/v1/")
        await client.generate(GenerationRequest(prompt="x"))
        assert str(openai_backend.last_request.url) == "https://proxy.example/v1/images/generations"

    @pytest.mark.asyncio
    async def test_api_error_message(self) -> None:
        backend = StubBackend.json({"error": {"message": "Invalid API key"}}, status_code=401)
        with pytest.raises(ProviderError) as exc_info:
            await make_client(backend).generate(GenerationRequest(prompt="x"))
        assert exc_info.value.message == "OpenAI API error: Invalid API key"
        assert exc_info.value.status_code == 401
        assert backend.call_count == 1

    @pytest.mark.asyncio
    async def test_string_error_body(self) -> None:
        backend = StubBackend.json({"error": "rate limited"}, status_code=429)
        with pytest.raises(ProviderError) as exc_info:
            await make_client(backend).generate(GenerationRequest(prompt="x"))
        assert exc_info.value.message == "OpenAI API error: rate limited"
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_error_without_body_uses_reason_phrase(self) -> None:
        backend = StubBackend.raw(b"", status_code=503)
        with pytest.raises(ProviderError) as exc_info:
            await make_client(backend).generate(GenerationRequest(prompt="x"))
        assert exc_info.value.message == "OpenAI API error: Service Unavailable"

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        def explode(request):
            raise httpx.ConnectError("refused")

        with pytest.raises(ProviderError, match="OpenAI API error"):
            await make_client(StubBackend(explode)).generate(GenerationRequest(prompt="x"))

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        backend = StubBackend.json({"nothing": True})
        with pytest.raises(ProviderError, match="Malformed response"):
            await make_client(backend).generate(GenerationRequest(prompt="x"))


class TestEdit:
    @pytest.mark.asyncio
    async def test_gpt_image_multipart(self, openai_backend: StubBackend, source_image: str) -> None:
        await make_client(openai_backend).edit(EditRequest(images=[source_image], prompt="add a hat"))
        request = openai_backend.last_request
        assert request.url.path == "/v1/images/edits"
        body = request.content
        assert b'name="image[]"' in body
        assert b"add a hat" in body
        assert b'name="model"' in body and b"gpt-image-1" in body

    @pytest.mark.asyncio
    async def test_dalle2_single_file_field(self, openai_backend: StubBackend, source_image: str) -> None:
        client = make_client(openai_backend, models=["dall-e-2"])
        await client.edit(EditRequest(images=[source_image], prompt="x", size="512x512"))
        body = openai_backend.last_request.content
        assert b'name="image"' in body
        assert b'name="image[]"' not in body

    def test_picks_first_edit_capable_model(self, openai_backend: StubBackend, source_image: str) -> None:
        client = make_client(openai_backend, models=["dall-e-3", "dall-e-2"])
        params, _ = client.build_edit_params(EditRequest(images=[source_image], prompt="x", size="512x512"))
        assert params["model"] == "dall-e-2"
        assert params["response_format"] == "b64_json"
        assert isinstance(params["image"], tuple)
        assert params["image"][0] == "source.png"

    def test_dalle3_cannot_edit(self, openai_backend: StubBackend, source_image: str) -> None:
        with pytest.raises(ValidationError, match="supported for image editing"):
            make_client(openai_backend).build_edit_params(
                EditRequest(images=[source_image], prompt="x", model="dall-e-3")
            )

    def test_dalle2_single_image(self, openai_backend: StubBackend, source_image: str) -> None:
        with pytest.raises(ValidationError, match="single image"):
            make_client(openai_backend).build_edit_params(
                EditRequest(images=[source_image, source_image], prompt="x", model="dall-e-2")
            )

    @pytest.mark.asyncio
    async def test_missing_file_makes_no_call(self, openai_backend: StubBackend, tmp_path) -> None:
        with pytest.raises(ValidationError, match="nope.png"):
            await make_client(openai_backend).edit(
                EditRequest(images=[str(tmp_path / "nope.png")], prompt="x")
            )
        assert openai_backend.call_count == 0

    @pytest.mark.asyncio
    async def test_bad_output_format_makes_no_call(self, openai_backend: StubBackend, source_image: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await make_client(openai_backend).edit(
                EditRequest(images=[source_image], prompt="x", output_format="bmp")
            )
        assert exc_info.value.field == "output_format"
        assert openai_backend.call_count == 0

    def test_mask_attached(self, openai_backend: StubBackend, source_image: str) -> None:
        params, _ = make_client(openai_backend).build_edit_params(
            EditRequest(images=[source_image], prompt="x", mask=source_image)
        )
        assert isinstance(params["image"], list) and len(params["image"]) == 1
        assert params["mask"][0] == "source.png"
