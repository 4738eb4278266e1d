"""Entry points shared by every transport.

``ImageDispatcher`` picks a provider client, delegates the request, persists
the first returned image and reports the outcome as a ``DispatchResult``.
Failures never propagate: they come back as ``DispatchResult.error`` text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from imagegen_mcp.capabilities import DEFAULT_OUTPUT_FORMAT
from imagegen_mcp.errors import EmptyResultError, ImageGenError
from imagegen_mcp.persistence import decode_image_data
from imagegen_mcp.providers.base import (
    EditRequest,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
)
from imagegen_mcp.registry import ProviderRegistry

log = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one dispatch call."""

    file_path: Optional[str] = None
    image_bytes: Optional[bytes] = None
    output_format: str = DEFAULT_OUTPUT_FORMAT
    provider: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_text(self) -> str:
        return self.error if self.error is not None else (self.file_path or "")


class ImageDispatcher:
    """Routes text-to-image and image-to-image calls through a registry."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self.registry = registry

    def select(
        self, provider: Optional[str] = None, model: Optional[str] = None
    ) -> Tuple[ImageProviderClient, Optional[str]]:
        """Pick the client and backend model for a call.

        An explicit provider wins over the provider implied by the model.
        Without either, the default provider is used. A ``None`` model lets
        the client pick its own default for the operation.
        """
        if provider:
            client = self.registry.get(provider)
            if not model:
                return client, None
            name = model
            prefix, sep, rest = model.partition("/")
            if sep and prefix.lower() == client.provider.value:
                name = rest
            # Unknown names are left for the client to accept or reject.
            return client, client.find_model(name) or name

        if model:
            return self.registry.resolve_model(model)

        return self.registry.default_client(), None

    async def text_to_image(
        self,
        prompt: str,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        n: int = 1,
        size: Optional[str] = None,
        style: Optional[str] = None,
        quality: Optional[str] = None,
        output_format: Optional[str] = None,
        output_compression: Optional[int] = None,
        moderation: Optional[str] = None,
        background: Optional[str] = None,
        output_path: Optional[str] = None,
        user: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        include_bytes: bool = False,
    ) -> DispatchResult:
        """Generate an image from a prompt and save it to disk."""
        try:
            client, resolved = self.select(provider, model)
            request = GenerationRequest(
                prompt=prompt,
                model=resolved,
                n=n,
                size=size,
                style=style,
                quality=quality,
                output_format=output_format,
                output_compression=output_compression,
                moderation=moderation,
                background=background,
                output_path=output_path,
                user=user,
                extra=dict(extra or {}),
            )
            log.info("Generating image with %s (model=%s)", client.display_name, resolved or "default")
            result = await client.generate(request)
            return self._finish(client, result, output_format, output_path, include_bytes)
        except ImageGenError as e:
            log.error("Image generation failed: %s", e.message)
            return DispatchResult(error=f"Error generating image: {e.message}")
        except Exception as e:
            log.exception("Unexpected error during image generation")
            return DispatchResult(error=f"Error generating image: {e}")

    async def image_to_image(
        self,
        images: List[str],
        prompt: str,
        *,
        mask: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        n: int = 1,
        size: Optional[str] = None,
        quality: Optional[str] = None,
        output_format: Optional[str] = None,
        output_compression: Optional[int] = None,
        output_path: Optional[str] = None,
        user: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        include_bytes: bool = False,
    ) -> DispatchResult:
        """Edit local source images and save the result to disk."""
        try:
            client, resolved = self.select(provider, model)
            request = EditRequest(
                images=list(images or []),
                prompt=prompt,
                mask=mask,
                model=resolved,
                n=n,
                size=size,
                quality=quality,
                output_format=output_format,
                output_compression=output_compression,
                output_path=output_path,
                user=user,
                extra=dict(extra or {}),
            )
            log.info("Editing image with %s (model=%s)", client.display_name, resolved or "default")
            result = await client.edit(request)
            return self._finish(client, result, output_format, output_path, include_bytes)
        except ImageGenError as e:
            log.error("Image edit failed: %s", e.message)
            return DispatchResult(error=f"Error editing image: {e.message}")
        except Exception as e:
            log.exception("Unexpected error during image edit")
            return DispatchResult(error=f"Error editing image: {e}")

    def _finish(
        self,
        client: ImageProviderClient,
        result: ImageResult,
        output_format: Optional[str],
        output_path: Optional[str],
        include_bytes: bool,
    ) -> DispatchResult:
        payload = result.first_b64()
        if not payload:
            raise EmptyResultError(client.provider.value)

        # The file extension follows the bytes the backend actually returned.
        fmt = result.output_format or output_format or DEFAULT_OUTPUT_FORMAT
        file_path = client.persist_result(payload, fmt, output_path)
        log.info("Image saved to %s", file_path)
        return DispatchResult(
            file_path=file_path,
            image_bytes=decode_image_data(payload) if include_bytes else None,
            output_format=fmt,
            provider=client.provider.value,
            model=result.model,
        )


__all__ = ["DispatchResult", "ImageDispatcher"]
