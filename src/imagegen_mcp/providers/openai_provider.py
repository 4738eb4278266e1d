"""OpenAI image client (GPT Image and DALL-E) over the ``openai`` SDK."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import openai
from openai import AsyncOpenAI

from imagegen_mcp.errors import ProviderError, ValidationError
from imagegen_mcp.providers.base import (
    EditRequest,
    GeneratedImage,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
    guess_mime_type,
    read_file,
)
from imagegen_mcp.capabilities import DEFAULT_OUTPUT_FORMAT, DEFAULT_SIZE, STYLES, ProviderId

log = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"

GPT_IMAGE = "gpt-image-1"
DALLE2 = "dall-e-2"
DALLE3 = "dall-e-3"

GENERATION_SIZES: Dict[str, Tuple[str, ...]] = {
    GPT_IMAGE: ("1024x1024", "1536x1024", "1024x1536", "auto"),
    DALLE2: ("256x256", "512x512", "1024x1024"),
    DALLE3: ("1024x1024", "1792x1024", "1024x1792"),
}

# Only these models accept /images/edits.
EDIT_MODELS = (GPT_IMAGE, DALLE2)
TRANSPARENT_FORMATS = ("png", "webp")
COMPRESSIBLE_FORMATS = ("jpeg", "webp")

_GPT_IMAGE_QUALITY = {"hd": "high", "standard": "medium"}
_DALLE3_QUALITY = {"hd": "hd", "high": "hd", "standard": "standard", "medium": "standard", "low": "standard"}

FileTuple = Tuple[str, bytes, str]


def _gpt_image_quality(quality: Optional[str]) -> str:
    value = (quality or "auto").lower()
    return _GPT_IMAGE_QUALITY.get(value, value)


def _dalle_quality(model: str, quality: Optional[str]) -> Optional[str]:
    value = (quality or "auto").lower()
    if value == "auto":
        return None
    if model == DALLE3:
        return _DALLE3_QUALITY.get(value)
    return "standard" if value == "standard" else None


def _file_tuple(path: str) -> FileTuple:
    return os.path.basename(path), read_file(path), guess_mime_type(path)


def error_message(error: openai.APIStatusError) -> str:
    """Best human-readable message from an API error body.

    The SDK unwraps ``{"error": ...}`` envelopes, so ``body`` is either the
    inner error object or whatever the backend sent instead.
    """
    body = error.body
    if isinstance(body, dict):
        message = body.get("message")
        if message:
            return str(message)
    elif isinstance(body, str) and body.strip():
        return body.strip()
    return error.response.reason_phrase or f"HTTP {error.status_code}"


class OpenAIImageClient(ImageProviderClient):
    """Client for ``images.generate`` and ``images.edit``.

    The SDK is built per call on top of ``http_client()``, so tests can drive
    it with an ``httpx.MockTransport``. SDK retries are disabled.
    """

    provider = ProviderId.OPENAI

    @property
    def api_base(self) -> str:
        return self.base_url(OPENAI_BASE_URL)

    def sdk_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self._api_key,
            base_url=self.api_base,
            timeout=self._settings.timeout,
            max_retries=0,
            http_client=self.http_client(),
        )

    # ---------- validation ----------

    def _check_size(self, model: str, size: str) -> None:
        allowed = GENERATION_SIZES.get(model)
        if allowed and size not in allowed:
            raise ValidationError(
                f"{model} only supports sizes {', '.join(allowed)}", field="size"
            )

    def build_generation_params(
        self, request: GenerationRequest
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Validate a request; return ``images.generate`` kwargs and passthrough body fields."""
        self.validate_generation(request)
        model = self.resolve_model(request.model)
        n = request.n or 1
        size = request.size or DEFAULT_SIZE
        output_format = (request.output_format or DEFAULT_OUTPUT_FORMAT).lower()
        background = (request.background or "auto").lower()

        if model == DALLE3 and n > 1:
            raise ValidationError("dall-e-3 model only supports n=1", field="n")
        self._check_size(model, size)
        if background == "transparent" and output_format not in TRANSPARENT_FORMATS:
            raise ValidationError(
                "When background is transparent, output_format must be png or webp",
                field="background",
            )

        params: Dict[str, Any] = {"model": model, "prompt": request.prompt, "n": n, "size": size}
        if model in (DALLE2, DALLE3):
            # DALL-E returns URLs unless asked otherwise; gpt-image-1 is always base64.
            params["response_format"] = "b64_json"
            quality = _dalle_quality(model, request.quality)
            if quality:
                params["quality"] = quality
            if model == DALLE3:
                style = (request.style or "vivid").lower()
                self.validate_choice("style", style, STYLES)
                params["style"] = style
        else:
            params["quality"] = _gpt_image_quality(request.quality)
            params["background"] = background
            params["moderation"] = (request.moderation or "low").lower()
            params["output_format"] = output_format
            if output_format in COMPRESSIBLE_FORMATS:
                compression = 100 if request.output_compression is None else request.output_compression
                params["output_compression"] = compression
        if request.user:
            params["user"] = request.user
        return params, self.request_extra(request.extra)

    def _edit_model(self, requested: Optional[str]) -> str:
        if requested:
            return self.resolve_model(requested)
        for model in self._models.values():
            if model in EDIT_MODELS:
                return model
        raise ValidationError(
            f"None of the allowed models support image editing ({', '.join(EDIT_MODELS)})",
            field="model",
        )

    def build_edit_params(self, request: EditRequest) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Validate an edit request; return ``images.edit`` kwargs and passthrough form fields.

        gpt-image-1 takes a list of images (sent as ``image[]``), dall-e-2 a
        single file (sent as ``image``).
        """
        self.validate_edit(request)
        model = self._edit_model(request.model)
        if model not in EDIT_MODELS:
            raise ValidationError(
                "Only dall-e-2 and gpt-image-1 are supported for image editing", field="model"
            )
        if model == DALLE2 and len(request.images) != 1:
            raise ValidationError("dall-e-2 only supports a single image for editing", field="images")
        size = request.size or DEFAULT_SIZE
        self._check_size(model, size)

        params: Dict[str, Any] = {
            "prompt": request.prompt,
            "model": model,
            "n": request.n or 1,
            "size": size,
        }
        if model == DALLE2:
            params["response_format"] = "b64_json"
            params["image"] = _file_tuple(request.images[0])
        else:
            params["quality"] = _gpt_image_quality(request.quality)
            output_format = (request.output_format or DEFAULT_OUTPUT_FORMAT).lower()
            params["output_format"] = output_format
            if output_format in COMPRESSIBLE_FORMATS and request.output_compression is not None:
                params["output_compression"] = request.output_compression
            params["image"] = [_file_tuple(path) for path in request.images]
        if request.mask:
            params["mask"] = _file_tuple(request.mask)
        if request.user:
            params["user"] = request.user
        return params, self.request_extra(request.extra)

    # ---------- calls ----------

    async def generate(self, request: GenerationRequest) -> ImageResult:
        params, extra = self.build_generation_params(request)
        log.debug("OpenAI generate: model=%s size=%s n=%s", params["model"], params["size"], params["n"])
        async with self.sdk_client() as client:
            try:
                response = await client.images.generate(**params, extra_body=extra or None)
            except openai.APIStatusError as e:
                raise ProviderError(self.display_name, error_message(e), status_code=e.status_code) from e
            except openai.APIConnectionError as e:
                raise ProviderError(self.display_name, str(e)) from e
        return self._to_result(response, params)

    async def edit(self, request: EditRequest) -> ImageResult:
        params, extra = self.build_edit_params(request)
        log.debug("OpenAI edit: model=%s images=%d", params["model"], len(request.images))
        async with self.sdk_client() as client:
            try:
                response = await client.images.edit(**params, extra_body=extra or None)
            except openai.APIStatusError as e:
                raise ProviderError(self.display_name, error_message(e), status_code=e.status_code) from e
            except openai.APIConnectionError as e:
                raise ProviderError(self.display_name, str(e)) from e
        return self._to_result(response, params)

    def _to_result(self, response: Any, params: Dict[str, Any]) -> ImageResult:
        data = getattr(response, "data", None)
        if not isinstance(data, list):
            raise ProviderError(self.display_name, "Malformed response: missing 'data' list")

        images = [
            GeneratedImage(
                b64_json=getattr(item, "b64_json", None),
                url=getattr(item, "url", None),
                revised_prompt=getattr(item, "revised_prompt", None),
            )
            for item in data
        ]
        result = ImageResult(
            images=images,
            provider=self.provider.value,
            model=params["model"],
            # DALL-E always encodes PNG.
            output_format=params.get("output_format", "png"),
        )
        created = getattr(response, "created", None)
        if isinstance(created, int):
            result.created = created
        return result


__all__ = [
    "OpenAIImageClient",
    "OPENAI_BASE_URL",
    "GENERATION_SIZES",
    "EDIT_MODELS",
    "GPT_IMAGE",
    "DALLE2",
    "DALLE3",
    "error_message",
]
