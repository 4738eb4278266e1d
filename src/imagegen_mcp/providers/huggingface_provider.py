"""Hugging Face Inference API client.

The inference endpoints return one image per call, so ``n > 1`` is served by
a bounded sequential loop rather than concurrent fan-out.
"""

from __future__ import annotations

import base64
import io
import logging
from typing import Any, Dict, List, Optional

from imagegen_mcp.errors import ImageGenError, ProviderError
from imagegen_mcp.providers.base import (
    EditRequest,
    GeneratedImage,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
    ProviderClientConfig,
    parse_size,
    read_file,
)
from imagegen_mcp.capabilities import DEFAULT_OUTPUT_FORMAT, ProviderId

log = logging.getLogger(__name__)

NUM_INFERENCE_STEPS = 20
GUIDANCE_SCALE = 7.5

CUSTOM_SIZE_MODELS = (
    "stabilityai/stable-diffusion-xl-base-1.0",
    "stabilityai/stable-diffusion-2-1",
    "black-forest-labs/FLUX.1-schnell",
)
STYLE_MODELS = ("playgroundai/playground-v2.5-1024px-aesthetic",)

_PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG", "webp": "WEBP"}


def encode_image(image: Any, output_format: Optional[str] = None) -> str:
    """Base64-encode a PIL image (or raw bytes) in the requested format."""
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(bytes(image)).decode("ascii")
    fmt = _PIL_FORMATS.get((output_format or DEFAULT_OUTPUT_FORMAT).lower(), "PNG")
    if fmt == "JPEG" and getattr(image, "mode", "RGB") not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def supports_custom_size(model: str) -> bool:
    return any(m in model for m in CUSTOM_SIZE_MODELS)


def supports_style(model: str) -> bool:
    return any(m in model for m in STYLE_MODELS)


class HuggingFaceImageClient(ImageProviderClient):
    """Client built on ``huggingface_hub.AsyncInferenceClient``.

    Args:
        config: Credential and settings.
        inference_client: Pre-built async inference client (defaults to a new
            ``AsyncInferenceClient`` bound to the token).
    """

    provider = ProviderId.HUGGINGFACE
    accepts_custom_models = True

    def __init__(self, config: ProviderClientConfig, *, inference_client: Any = None) -> None:
        super().__init__(config)
        self._client = inference_client

    @property
    def client(self) -> Any:
        if self._client is None:
            from huggingface_hub import AsyncInferenceClient

            kwargs: Dict[str, Any] = {"token": self._api_key}
            if self._settings.base_url:
                kwargs["base_url"] = self._settings.base_url
            if self._settings.timeout is not None:
                kwargs["timeout"] = self._settings.timeout
            self._client = AsyncInferenceClient(**kwargs)
        return self._client

    def _match_allowed(self, name: str):
        match = super()._match_allowed(name)
        if match:
            return match
        for key, value in self.descriptor.models.items():
            if name in value:
                return key, value
        return None

    def build_generation_params(self, request: GenerationRequest) -> Dict[str, Any]:
        """Keyword arguments for ``text_to_image`` (without the prompt)."""
        self.validate_generation(request)
        model = self.resolve_model(request.model)
        params: Dict[str, Any] = {
            "model": model,
            "num_inference_steps": NUM_INFERENCE_STEPS,
            "guidance_scale": GUIDANCE_SCALE,
        }
        if request.size and supports_custom_size(model):
            params["width"], params["height"] = parse_size(request.size)
        extra_body = self.request_extra(request.extra)
        if request.style and supports_style(model):
            extra_body["style"] = request.style
        if extra_body:
            params["extra_body"] = extra_body
        return params

    async def generate(self, request: GenerationRequest) -> ImageResult:
        params = self.build_generation_params(request)
        count = request.n or 1
        images: List[GeneratedImage] = []
        try:
            for index in range(count):
                log.debug("Hugging Face text_to_image %d/%d model=%s", index + 1, count, params["model"])
                image = await self.client.text_to_image(request.prompt, **params)
                images.append(
                    GeneratedImage(
                        b64_json=encode_image(image, request.output_format),
                        revised_prompt=request.prompt,
                    )
                )
        except ImageGenError:
            raise
        except Exception as e:
            raise ProviderError(self.display_name, str(e)) from e
        return ImageResult(images=images, provider=self.provider.value, model=params["model"])

    async def edit(self, request: EditRequest) -> ImageResult:
        """Run ``image_to_image`` once per requested image.

        Models that reject image-to-image fall back to text-to-image with the
        prompt annotated; after the first rejection the remaining images go
        straight to text-to-image.
        """
        self.validate_edit(request)
        model = self.resolve_model(request.model)
        if len(request.images) > 1:
            log.warning(
                "Hugging Face edits a single image; ignoring %d extra image(s)",
                len(request.images) - 1,
            )
        source = read_file(request.images[0])
        fallback: Dict[str, Any] = {
            "model": model,
            "num_inference_steps": NUM_INFERENCE_STEPS,
            "guidance_scale": GUIDANCE_SCALE,
        }
        extra_body = self.request_extra(request.extra)
        if extra_body:
            fallback["extra_body"] = extra_body

        count = request.n or 1
        use_text = False
        images: List[GeneratedImage] = []
        try:
            for index in range(count):
                log.debug("Hugging Face image_to_image %d/%d model=%s", index + 1, count, model)
                image = None
                if not use_text:
                    try:
                        image = await self.client.image_to_image(
                            source,
                            prompt=request.prompt,
                            model=model,
                            num_inference_steps=NUM_INFERENCE_STEPS,
                            guidance_scale=GUIDANCE_SCALE,
                        )
                    except Exception as e:
                        log.warning(
                            "Image-to-image not supported by %s (%s), falling back to text-to-image",
                            model,
                            e,
                        )
                        use_text = True
                if use_text:
                    image = await self.client.text_to_image(
                        f"{request.prompt}, based on the provided image", **fallback
                    )
                images.append(
                    GeneratedImage(
                        b64_json=encode_image(image, request.output_format),
                        revised_prompt=request.prompt,
                    )
                )
        except Exception as e:
            raise ProviderError(self.display_name, str(e)) from e

        return ImageResult(images=images, provider=self.provider.value, model=model)



__all__ = ["HuggingFaceImageClient", "encode_image", "supports_custom_size", "supports_style"]
