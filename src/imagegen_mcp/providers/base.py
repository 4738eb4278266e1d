"""Normalized request/result types and the provider client contract.

Every backend is wrapped by one ``ImageProviderClient`` subclass. Subclasses
only shape requests and map responses; model catalogs, allow-lists, prompt
and file validation, and persistence live here.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

import httpx

from imagegen_mcp.config import ProviderSettings
from imagegen_mcp.errors import ConfigurationError, MissingFileError, ValidationError
from imagegen_mcp.persistence import save_base64_image
from imagegen_mcp.capabilities import (
    BACKGROUNDS,
    DEFAULT_OUTPUT_FORMAT,
    MODERATION_LEVELS,
    OUTPUT_FORMATS,
    PROVIDER_DESCRIPTORS,
    ProviderDescriptor,
    ProviderId,
    QUALITIES,
)

log = logging.getLogger(__name__)

MAX_IMAGES = 10


# =============================================================================
# Normalized requests and results
# =============================================================================


@dataclass
class GenerationRequest:
    """Text-to-image request. ``None`` fields take provider defaults."""

    prompt: str
    model: Optional[str] = None
    n: int = 1
    size: Optional[str] = None
    style: Optional[str] = None
    quality: Optional[str] = None
    output_format: Optional[str] = None
    output_compression: Optional[int] = None
    moderation: Optional[str] = None
    background: Optional[str] = None
    output_path: Optional[str] = None
    user: Optional[str] = None
    # Provider-specific knobs passed through to the backend payload.
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EditRequest:
    """Image-to-image request over local source files."""

    images: List[str]
    prompt: str
    mask: Optional[str] = None
    model: Optional[str] = None
    n: int = 1
    size: Optional[str] = None
    quality: Optional[str] = None
    output_format: Optional[str] = None
    output_compression: Optional[int] = None
    output_path: Optional[str] = None
    user: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GeneratedImage:
    b64_json: Optional[str] = None
    url: Optional[str] = None
    revised_prompt: Optional[str] = None


@dataclass
class ImageResult:
    """Normalized backend response."""

    images: List[GeneratedImage] = field(default_factory=list)
    created: int = field(default_factory=lambda: int(time.time()))
    provider: Optional[str] = None
    model: Optional[str] = None
    # Encoding of the returned bytes; None means the requested format.
    output_format: Optional[str] = None

    def first_b64(self) -> Optional[str]:
        """Base64 payload of the first image, if any."""
        if not self.images:
            return None
        return self.images[0].b64_json or None


@dataclass(frozen=True)
class ProviderClientConfig:
    """Resolved construction input for one client."""

    api_key: Optional[str]
    settings: ProviderSettings = field(default_factory=ProviderSettings)


# =============================================================================
# Helpers
# =============================================================================


def parse_size(size: Optional[str], default: str = "1024x1024") -> Tuple[int, int]:
    """Parse ``WIDTHxHEIGHT``. ``None`` and ``auto`` use ``default``.

    Raises:
        ValidationError: If the size is not of the form ``WIDTHxHEIGHT``.
    """
    value = (size or default).lower()
    if value == "auto":
        value = default
    parts = value.split("x")
    if len(parts) != 2:
        raise ValidationError(f"Invalid size '{size}'. Expected WIDTHxHEIGHT", field="size")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValidationError(
            f"Invalid size '{size}'. Expected WIDTHxHEIGHT", field="size"
        ) from None
    if width <= 0 or height <= 0:
        raise ValidationError(f"Invalid size '{size}'. Dimensions must be positive", field="size")
    return width, height


def guess_mime_type(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    return mime if mime and mime.startswith("image/") else "image/png"


def read_file(path: str) -> bytes:
    return Path(path).expanduser().read_bytes()


# =============================================================================
# Provider client contract
# =============================================================================


class ImageProviderClient(ABC):
    """Base class for all provider clients.

    Args:
        config: Credential and settings for this client.
        transport: Optional httpx transport, used for every HTTP request the
            client makes (tests pass ``httpx.MockTransport``).
    """

    provider: ClassVar[ProviderId]
    # Whether raw backend refs (``owner/name``) are accepted beyond the catalog.
    accepts_custom_models: ClassVar[bool] = False

    def __init__(
        self,
        config: ProviderClientConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.api_key:
            raise ConfigurationError(
                f"{self.descriptor.env_var} environment variable is required "
                f"for {self.display_name}"
            )
        self._api_key = config.api_key
        self._settings = config.settings
        self._transport = transport
        self._models = self._select_catalog(config.settings.allowed_models)
        log.info("Available %s models: %s", self.display_name, ", ".join(self._models.values()))

    # ---------- metadata ----------

    @property
    def descriptor(self) -> ProviderDescriptor:
        return PROVIDER_DESCRIPTORS[self.provider]

    @property
    def display_name(self) -> str:
        return self.descriptor.display_name

    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    def list_allowed_models(self) -> Dict[str, str]:
        """Exposed catalog (logical key -> backend model id), in declaration order."""
        return dict(self._models)

    def default_model(self) -> str:
        return next(iter(self._models.values()))

    # ---------- catalog ----------

    def _match_allowed(self, name: str) -> Optional[Tuple[str, str]]:
        lowered = name.lower()
        for key, value in self.descriptor.models.items():
            if key.lower() == lowered or value == name:
                return key, value
        return None

    def _select_catalog(self, allowed: Optional[Sequence[str]]) -> Dict[str, str]:
        catalog = dict(self.descriptor.models)
        if not allowed:
            return catalog

        selected: Dict[str, str] = {}
        for name in allowed:
            match = self._match_allowed(name)
            if match:
                selected[match[0]] = match[1]
            elif self.accepts_custom_models and "/" in name:
                selected[name] = name
            else:
                log.warning(
                    'Unknown %s model "%s" specified. Ignoring.', self.display_name, name
                )

        if not selected:
            log.warning(
                "No valid %s models specified. Using all available models.", self.display_name
            )
            return catalog
        return selected

    def find_model(self, model: str) -> Optional[str]:
        """Map a catalog key or backend id to the backend id, or None."""
        if model in self._models:
            return self._models[model]
        if model in self._models.values():
            return model
        return None

    def resolve_model(self, model: Optional[str]) -> str:
        """Resolve the model a request should use.

        Raises:
            ValidationError: If the model is not exposed by this client.
        """
        if not model:
            return self.default_model()
        found = self.find_model(model)
        if found:
            return found
        if self.accepts_custom_models and "/" in model:
            return model
        raise ValidationError(
            f'Model "{model}" is not allowed. '
            f"Allowed models: {', '.join(self._models.values())}",
            field="model",
        )

    # ---------- validation ----------

    def validate_prompt(self, prompt: Optional[str]) -> None:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required", field="prompt")

    def validate_count(self, n: Optional[int]) -> int:
        count = 1 if n is None else n
        if count < 1 or count > MAX_IMAGES:
            raise ValidationError(
                f"n must be between 1 and {MAX_IMAGES}, got {count}", field="n"
            )
        return count

    @staticmethod
    def validate_choice(field_name: str, value: Optional[str], choices: Sequence[str]) -> None:
        if value is not None and value.lower() not in choices:
            raise ValidationError(
                f"Invalid {field_name} '{value}'. Expected one of: {', '.join(choices)}",
                field=field_name,
            )

    def validate_options(
        self,
        *,
        output_format: Optional[str] = None,
        quality: Optional[str] = None,
        background: Optional[str] = None,
        moderation: Optional[str] = None,
        output_compression: Optional[int] = None,
    ) -> None:
        self.validate_choice("output_format", output_format, OUTPUT_FORMATS)
        self.validate_choice("quality", quality, QUALITIES)
        self.validate_choice("background", background, BACKGROUNDS)
        self.validate_choice("moderation", moderation, MODERATION_LEVELS)
        if output_compression is not None and not 0 <= output_compression <= 100:
            raise ValidationError(
                f"output_compression must be between 0 and 100, got {output_compression}",
                field="output_compression",
            )

    def validate_generation(self, request: GenerationRequest) -> None:
        self.validate_prompt(request.prompt)
        self.validate_count(request.n)
        self.validate_options(
            output_format=request.output_format,
            quality=request.quality,
            background=request.background,
            moderation=request.moderation,
            output_compression=request.output_compression,
        )

    def validate_edit(self, request: EditRequest) -> None:
        """Prompt, image list, count, options and local files; runs before any network call."""
        if not request.images:
            raise ValidationError("At least one image file path is required", field="images")
        self.validate_prompt(request.prompt)
        self.validate_count(request.n)
        self.validate_options(
            output_format=request.output_format,
            quality=request.quality,
            output_compression=request.output_compression,
        )
        self.check_files(request.images, request.mask)

    def request_extra(self, extra: Dict[str, Any]) -> Dict[str, Any]:
        """Backend parameters from settings, overridden by the request's own."""
        merged = dict(self._settings.extra)
        merged.update(extra)
        return merged

    @staticmethod
    def check_files(images: Sequence[str], mask: Optional[str] = None) -> None:
        for path in images:
            if not Path(path).expanduser().is_file():
                raise MissingFileError(path, kind="Image")
        if mask and not Path(mask).expanduser().is_file():
            raise MissingFileError(mask, kind="Mask")

    # ---------- HTTP ----------

    def http_client(self, **kwargs: Any) -> httpx.AsyncClient:
        """New AsyncClient honoring the configured timeout and transport."""
        kwargs.setdefault("timeout", httpx.Timeout(self._settings.timeout))
        if self._transport is not None:
            kwargs.setdefault("transport", self._transport)
        return httpx.AsyncClient(**kwargs)

    def base_url(self, default: str) -> str:
        return (self._settings.base_url or default).rstrip("/")

    # ---------- contract ----------

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> ImageResult:
        """Generate images from a text prompt."""

    @abstractmethod
    async def edit(self, request: EditRequest) -> ImageResult:
        """Edit or transform local source images."""

    def persist_result(
        self,
        b64_data: str,
        output_format: Optional[str] = None,
        output_path: Optional[str] = None,
    ) -> str:
        """Write a base64 image to disk and return its absolute path."""
        return save_base64_image(b64_data, output_format or DEFAULT_OUTPUT_FORMAT, output_path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(models={list(self._models)})"


__all__ = [
    "GenerationRequest",
    "EditRequest",
    "GeneratedImage",
    "ImageResult",
    "ProviderClientConfig",
    "ImageProviderClient",
    "MAX_IMAGES",
    "parse_size",
    "guess_mime_type",
    "read_file",
]
