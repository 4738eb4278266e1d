"""Stability AI client for the v1 generation REST API."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx

from imagegen_mcp.errors import ProviderError, ValidationError
from imagegen_mcp.providers.base import (
    EditRequest,
    GeneratedImage,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
    guess_mime_type,
    parse_size,
    read_file,
)
from imagegen_mcp.capabilities import DEFAULT_SIZE, ProviderId

log = logging.getLogger(__name__)

STABILITY_BASE_URL = "https://api.stability.ai/v1"

SDXL_ENGINE = "stable-diffusion-xl-1024-v1-0"

# SDXL only renders these dimensions.
SDXL_SIZES = (
    "1024x1024",
    "1152x896",
    "896x1152",
    "1216x832",
    "832x1216",
    "1344x768",
    "768x1344",
    "1536x640",
    "640x1536",
)

CFG_SCALE = 7
STEPS = 30
# v1 artifacts are always PNG.
NATIVE_FORMAT = "png"


class StabilityImageClient(ImageProviderClient):
    """Client for ``/generation/{engine}/text-to-image`` and ``image-to-image``."""

    provider = ProviderId.STABILITY

    @property
    def api_base(self) -> str:
        return self.base_url(STABILITY_BASE_URL)

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self._api_key}"}

    def _dimensions(self, engine: str, size: str) -> Tuple[int, int]:
        if engine == SDXL_ENGINE and size not in SDXL_SIZES:
            raise ValidationError(
                f"{engine} only supports sizes {', '.join(SDXL_SIZES)}", field="size"
            )
        width, height = parse_size(size, DEFAULT_SIZE)
        if width % 64 or height % 64:
            raise ValidationError(
                f"{engine} requires width and height to be multiples of 64, got {size}",
                field="size",
            )
        return width, height

    def build_generation_body(self, request: GenerationRequest) -> Tuple[str, Dict[str, Any]]:
        """Validate a request; return the engine id and JSON body."""
        self.validate_generation(request)
        engine = self.resolve_model(request.model)
        width, height = self._dimensions(engine, request.size or DEFAULT_SIZE)

        body: Dict[str, Any] = {
            "text_prompts": [{"text": request.prompt, "weight": 1}],
            "cfg_scale": CFG_SCALE,
            "height": height,
            "width": width,
            "samples": request.n or 1,
            "steps": STEPS,
        }
        if request.style:
            body["style_preset"] = request.style
        body.update(self.request_extra(request.extra))
        return engine, body

    def build_edit_form(
        self, request: EditRequest
    ) -> Tuple[str, str, Dict[str, str], List[Tuple[str, Tuple[str, bytes, str]]]]:
        """Validate an edit request; return engine, endpoint, form fields and files."""
        self.validate_edit(request)
        engine = self.resolve_model(request.model)
        if len(request.images) > 1:
            log.warning(
                "Stability AI edits a single image; ignoring %d extra image(s)",
                len(request.images) - 1,
            )
        image_path = request.images[0]

        data: Dict[str, str] = {
            "text_prompts[0][text]": request.prompt,
            "text_prompts[0][weight]": "1",
            "cfg_scale": str(CFG_SCALE),
            "samples": str(request.n or 1),
            "steps": str(STEPS),
        }
        data.update({k: str(v) for k, v in self.request_extra(request.extra).items()})
        files: List[Tuple[str, Tuple[str, bytes, str]]] = [
            ("init_image", (os.path.basename(image_path), read_file(image_path), guess_mime_type(image_path)))
        ]

        endpoint = "image-to-image"
        if request.mask:
            endpoint = "image-to-image/masking"
            data["mask_source"] = "MASK_IMAGE_BLACK"
            files.append(
                ("mask_image", (os.path.basename(request.mask), read_file(request.mask), guess_mime_type(request.mask)))
            )
        return engine, endpoint, data, files

    async def generate(self, request: GenerationRequest) -> ImageResult:
        engine, body = self.build_generation_body(request)
        log.debug("Stability generate: engine=%s %sx%s", engine, body["width"], body["height"])
        async with self.http_client() as client:
            response = await client.post(
                f"{self.api_base}/generation/{engine}/text-to-image",
                json=body,
                headers=self._headers(),
            )
        return self._parse_response(response, engine, request.prompt, request.output_format)

    async def edit(self, request: EditRequest) -> ImageResult:
        engine, endpoint, data, files = self.build_edit_form(request)
        log.debug("Stability edit: engine=%s endpoint=%s", engine, endpoint)
        async with self.http_client() as client:
            response = await client.post(
                f"{self.api_base}/generation/{engine}/{endpoint}",
                data=data,
                files=files,
                headers=self._headers(),
            )
        return self._parse_response(response, engine, request.prompt, request.output_format)

    def _parse_response(
        self, response: httpx.Response, engine: str, prompt: str, requested_format: Optional[str]
    ) -> ImageResult:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = body.get("message") if isinstance(body, dict) else None
            raise ProviderError(
                self.display_name,
                message or response.reason_phrase or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(body, dict) or not isinstance(body.get("artifacts"), list):
            raise ProviderError(self.display_name, "Malformed response: missing 'artifacts' list")

        images: List[GeneratedImage] = []
        for artifact in body["artifacts"]:
            if not isinstance(artifact, dict):
                continue
            if artifact.get("finishReason") == "ERROR":
                log.warning("Stability artifact failed (seed=%s)", artifact.get("seed"))
                continue
            images.append(GeneratedImage(b64_json=artifact.get("base64"), revised_prompt=prompt))
        if requested_format and requested_format.lower() != NATIVE_FORMAT:
            log.warning(
                "Stability AI returns PNG images; saving as png instead of %s", requested_format
            )
        return ImageResult(
            images=images, provider=self.provider.value, model=engine, output_format=NATIVE_FORMAT
        )


__all__ = ["StabilityImageClient", "STABILITY_BASE_URL", "SDXL_SIZES", "SDXL_ENGINE"]
