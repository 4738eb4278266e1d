"""Replicate client.

Predictions are created and polled by the ``replicate`` SDK; the resulting
output URLs are downloaded here and re-encoded as base64 so every provider
returns the same payload shape.
"""

from __future__ import annotations

import base64
import logging
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

import httpx

from imagegen_mcp.errors import ImageGenError, ProviderError
from imagegen_mcp.providers.base import (
    EditRequest,
    GeneratedImage,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
    ProviderClientConfig,
    guess_mime_type,
    parse_size,
    read_file,
)
from imagegen_mcp.capabilities import ProviderId

log = logging.getLogger(__name__)

GUIDANCE_SCALE = 7.5
SDXL_STEPS = 20
FLUX_STEPS = 4


def size_to_aspect_ratio(size: Optional[str]) -> str:
    """Map ``WIDTHxHEIGHT`` to the nearest aspect ratio flux models accept."""
    width, height = parse_size(size, "1024x1024")
    if width == height:
        return "1:1"
    if width > height:
        ratio = width / height
        if ratio >= 1.7:
            return "16:9"
        if ratio >= 1.4:
            return "3:2"
        return "4:3"
    ratio = height / width
    if ratio >= 1.7:
        return "9:16"
    if ratio >= 1.4:
        return "2:3"
    return "3:4"


def to_data_uri(path: str) -> str:
    encoded = base64.b64encode(read_file(path)).decode("ascii")
    return f"data:{guess_mime_type(path)};base64,{encoded}"


_URL_FORMATS = {".png": "png", ".jpg": "jpeg", ".jpeg": "jpeg", ".webp": "webp"}


def format_from_url(url: Optional[str]) -> Optional[str]:
    """Image format implied by a URL's file suffix, if recognizable."""
    if not url:
        return None
    suffix = PurePosixPath(httpx.URL(url).path).suffix.lower()
    return _URL_FORMATS.get(suffix)


def _output_url(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item
    # replicate>=1.0 yields FileOutput objects exposing .url
    url = getattr(item, "url", None)
    return str(url) if url else None


class ReplicateImageClient(ImageProviderClient):
    """Client running Replicate models through ``replicate.Client.async_run``.

    Args:
        config: Credential and settings.
        replicate_client: Pre-built SDK client (defaults to a new
            ``replicate.Client`` bound to the API token).
        transport: httpx transport used for output downloads.
    """

    provider = ProviderId.REPLICATE
    accepts_custom_models = True

    def __init__(
        self,
        config: ProviderClientConfig,
        *,
        replicate_client: Any = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(config, transport=transport)
        self._client = replicate_client

    @property
    def client(self) -> Any:
        if self._client is None:
            import replicate

            kwargs: Dict[str, Any] = {"api_token": self._api_key}
            if self._settings.base_url:
                kwargs["base_url"] = self._settings.base_url
            if self._settings.timeout is not None:
                kwargs["timeout"] = self._settings.timeout
            self._client = replicate.Client(**kwargs)
        return self._client

    def _match_allowed(self, name: str):
        match = super()._match_allowed(name)
        if match:
            return match
        # "owner/name" selects a pinned "owner/name:version" entry
        for key, value in self.descriptor.models.items():
            if value.split(":", 1)[0] == name:
                return key, value
        return None

    def _family(self, model: str) -> str:
        key = next((k for k, v in self._models.items() if v == model), "")
        return f"{key} {model}".lower()

    def build_generation_input(self, request: GenerationRequest) -> Dict[str, Any]:
        self.validate_generation(request)
        model = self.resolve_model(request.model)
        family = self._family(model)

        payload: Dict[str, Any] = {"prompt": request.prompt, "num_outputs": request.n or 1}
        if "sdxl" in family:
            payload["width"], payload["height"] = parse_size(request.size, "1024x1024")
            payload["guidance_scale"] = GUIDANCE_SCALE
            payload["num_inference_steps"] = SDXL_STEPS
        elif "flux" in family:
            payload["aspect_ratio"] = size_to_aspect_ratio(request.size)
            payload["num_inference_steps"] = FLUX_STEPS
        else:
            payload["width"], payload["height"] = parse_size(request.size, "512x512")

        if request.style and "playground" in family:
            payload["style"] = request.style
        payload.update(self.request_extra(request.extra))
        return payload

    def build_edit_input(self, request: EditRequest) -> Dict[str, Any]:
        self.validate_edit(request)
        model = self.resolve_model(request.model)
        family = self._family(model)
        if len(request.images) > 1:
            log.warning(
                "Replicate edits a single image; ignoring %d extra image(s)",
                len(request.images) - 1,
            )

        payload: Dict[str, Any] = {
            "prompt": request.prompt,
            "image": to_data_uri(request.images[0]),
            "num_outputs": request.n or 1,
        }
        if request.mask:
            payload["mask"] = to_data_uri(request.mask)
        if "sdxl" in family or "inpaint" in family:
            payload["width"], payload["height"] = parse_size(request.size, "1024x1024")
            payload["guidance_scale"] = GUIDANCE_SCALE
            payload["num_inference_steps"] = SDXL_STEPS
        payload.update(self.request_extra(request.extra))
        return payload

    async def generate(self, request: GenerationRequest) -> ImageResult:
        payload = self.build_generation_input(request)
        model = self.resolve_model(request.model)
        return await self._run(model, payload, request.prompt)

    async def edit(self, request: EditRequest) -> ImageResult:
        payload = self.build_edit_input(request)
        model = self.resolve_model(request.model)
        return await self._run(model, payload, request.prompt)

    async def _run(self, model: str, payload: Dict[str, Any], prompt: str) -> ImageResult:
        log.debug("Replicate run: model=%s", model)
        try:
            output = await self.client.async_run(model, input=payload)
            items = output if isinstance(output, (list, tuple)) else [output]
            images = await self._download(items, prompt)
        except ImageGenError:
            raise
        except Exception as e:
            raise ProviderError(self.display_name, str(e)) from e
        return ImageResult(
            images=images,
            provider=self.provider.value,
            model=model,
            output_format=format_from_url(images[0].url) if images else None,
        )

    async def _download(self, items: List[Any], prompt: str) -> List[GeneratedImage]:
        images: List[GeneratedImage] = []
        async with self.http_client(follow_redirects=True) as client:
            for item in items:
                url = _output_url(item)
                if not url:
                    log.debug("Skipping non-URL Replicate output: %r", item)
                    continue
                response = await client.get(url)
                if not response.is_success:
                    raise ProviderError(
                        self.display_name,
                        f"failed to download output {url} (HTTP {response.status_code})",
                        status_code=response.status_code,
                    )
                images.append(
                    GeneratedImage(
                        b64_json=base64.b64encode(response.content).decode("ascii"),
                        url=url,
                        revised_prompt=prompt,
                    )
                )
        return images


__all__ = ["ReplicateImageClient", "format_from_url", "size_to_aspect_ratio", "to_data_uri"]
