"""Static provider metadata: credentials, operations and model catalogs.

Catalog order is significant. The first entry of a catalog is the provider's
default model, and providers are auto-detected in ``ProviderId`` declaration
order.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional


class ProviderId(str, Enum):
    """Supported image generation backends."""

    OPENAI = "openai"
    STABILITY = "stability"
    REPLICATE = "replicate"
    HUGGINGFACE = "huggingface"

    def __str__(self) -> str:
        return self.value


class ImageOperation(str, Enum):
    TEXT_TO_IMAGE = "text-to-image"
    IMAGE_TO_IMAGE = "image-to-image"

    def __str__(self) -> str:
        return self.value


# -----------------------------------------------------------------------------
# Shared parameter values
# -----------------------------------------------------------------------------

OUTPUT_FORMATS = ("png", "jpeg", "webp")
STYLES = ("vivid", "natural")
QUALITIES = ("auto", "standard", "hd", "high", "medium", "low")
BACKGROUNDS = ("auto", "transparent", "opaque")
MODERATION_LEVELS = ("auto", "low")

DEFAULT_SIZE = "1024x1024"
DEFAULT_OUTPUT_FORMAT = "png"


# -----------------------------------------------------------------------------
# Model catalogs (logical key -> backend model id)
# -----------------------------------------------------------------------------

OPENAI_MODELS: Dict[str, str] = {
    "gpt-image-1": "gpt-image-1",
    "dall-e-2": "dall-e-2",
    "dall-e-3": "dall-e-3",
}

STABILITY_MODELS: Dict[str, str] = {
    "sdxl-1.0": "stable-diffusion-xl-1024-v1-0",
    "sd-2.1": "stable-diffusion-v2-1",
    "sd-1.6": "stable-diffusion-v1-6",
    "sd-512-2.1": "stable-diffusion-512-v2-1",
}

REPLICATE_MODELS: Dict[str, str] = {
    "sdxl": "stability-ai/sdxl:7762fd07cf82c948538e41f63f77d685e02b063e37e496e96eefd46c929f9bdc",
    "stable-diffusion": "stability-ai/stable-diffusion:27b93a2413e7f36cd83da926f3656280b2931564ff050bf9575f1fdf9bcd7478",
    "flux-schnell": "black-forest-labs/flux-schnell",
    "playground-v2.5": "playgroundai/playground-v2.5-1024px-aesthetic:a45f82a1382bed5c7aeb861dac7c7d191b0fdf74d8d57c4a0e6ed7d4d0bf7d24",
    "kandinsky-2.2": "ai-forever/kandinsky-2.2:ad9d7879fbffa2874e1d909d1d37d9bc682889cc65b31f7bb00d2362619f194a",
}

HUGGINGFACE_MODELS: Dict[str, str] = {
    "sdxl": "stabilityai/stable-diffusion-xl-base-1.0",
    "sd-2.1": "stabilityai/stable-diffusion-2-1",
    "dalle-mini": "dalle-mini/dalle-mini",
    "flux-schnell": "black-forest-labs/FLUX.1-schnell",
    "sd-3": "stabilityai/stable-diffusion-3-medium-diffusers",
    "playground-v2.5": "playgroundai/playground-v2.5-1024px-aesthetic",
}


@dataclass(frozen=True)
class ProviderDescriptor:
    """Compile-time description of one provider."""

    provider: ProviderId
    display_name: str
    description: str
    env_var: str
    operations: FrozenSet[ImageOperation]
    models: Mapping[str, str] = field(default_factory=dict)

    def supports(self, operation: ImageOperation) -> bool:
        return operation in self.operations

    def get_api_key(self, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Return the credential from ``env`` (default ``os.environ``), or None if blank."""
        source = os.environ if env is None else env
        value = (source.get(self.env_var) or "").strip()
        return value or None


_BOTH = frozenset({ImageOperation.TEXT_TO_IMAGE, ImageOperation.IMAGE_TO_IMAGE})

PROVIDER_DESCRIPTORS: Mapping[ProviderId, ProviderDescriptor] = MappingProxyType(
    {
        ProviderId.OPENAI: ProviderDescriptor(
            provider=ProviderId.OPENAI,
            display_name="OpenAI",
            description="OpenAI GPT Image and DALL-E models",
            env_var="OPENAI_API_KEY",
            operations=_BOTH,
            models=MappingProxyType(OPENAI_MODELS),
        ),
        ProviderId.STABILITY: ProviderDescriptor(
            provider=ProviderId.STABILITY,
            display_name="Stability AI",
            description="Stable Diffusion models",
            env_var="STABILITY_API_KEY",
            operations=_BOTH,
            models=MappingProxyType(STABILITY_MODELS),
        ),
        ProviderId.REPLICATE: ProviderDescriptor(
            provider=ProviderId.REPLICATE,
            display_name="Replicate",
            description="Various open-source models",
            env_var="REPLICATE_API_TOKEN",
            operations=_BOTH,
            models=MappingProxyType(REPLICATE_MODELS),
        ),
        ProviderId.HUGGINGFACE: ProviderDescriptor(
            provider=ProviderId.HUGGINGFACE,
            display_name="Hugging Face",
            description="Hugging Face Inference API",
            env_var="HUGGINGFACE_API_KEY",
            operations=_BOTH,
            models=MappingProxyType(HUGGINGFACE_MODELS),
        ),
    }
)

SUPPORTED_PROVIDERS: List[str] = [p.value for p in ProviderId]

PROVIDER_ENV_VARS: Dict[str, str] = {
    p.value: d.env_var for p, d in PROVIDER_DESCRIPTORS.items()
}


def get_descriptor(provider: "ProviderId | str") -> ProviderDescriptor:
    """Look up a descriptor by id or name.

    Raises:
        ValueError: If the provider name is not supported.
    """
    try:
        pid = ProviderId(str(provider).lower())
    except ValueError:
        raise ValueError(
            f"Unknown provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        ) from None
    return PROVIDER_DESCRIPTORS[pid]


def list_providers() -> List[str]:
    """List all supported provider names."""
    return SUPPORTED_PROVIDERS.copy()


def is_provider_configured(
    provider: "ProviderId | str", env: Optional[Mapping[str, str]] = None
) -> bool:
    """True if the provider's credential env var is present and non-empty."""
    if str(provider).lower() not in SUPPORTED_PROVIDERS:
        return False
    return get_descriptor(provider).get_api_key(env) is not None


def list_configured_providers(env: Optional[Mapping[str, str]] = None) -> List[str]:
    """List providers that have credentials configured, in detection order."""
    return [p for p in SUPPORTED_PROVIDERS if is_provider_configured(p, env)]


def list_models(provider: "ProviderId | str") -> Dict[str, str]:
    """Return a copy of the default catalog for a provider."""
    return dict(get_descriptor(provider).models)


__all__ = [
    "ProviderId",
    "ImageOperation",
    "ProviderDescriptor",
    "PROVIDER_DESCRIPTORS",
    "PROVIDER_ENV_VARS",
    "SUPPORTED_PROVIDERS",
    "OPENAI_MODELS",
    "STABILITY_MODELS",
    "REPLICATE_MODELS",
    "HUGGINGFACE_MODELS",
    "OUTPUT_FORMATS",
    "STYLES",
    "QUALITIES",
    "BACKGROUNDS",
    "MODERATION_LEVELS",
    "DEFAULT_SIZE",
    "DEFAULT_OUTPUT_FORMAT",
    "get_descriptor",
    "list_providers",
    "is_provider_configured",
    "list_configured_providers",
    "list_models",
]
