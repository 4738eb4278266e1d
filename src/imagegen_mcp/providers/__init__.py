"""Provider clients for image generation backends.

Supports:
- OpenAI (GPT Image, DALL-E 2, DALL-E 3)
- Stability AI (Stable Diffusion v1 engines)
- Replicate (SDXL, Flux, Playground, Kandinsky, or any ``owner/name`` model)
- Hugging Face Inference API
"""

from typing import Dict, Type

from imagegen_mcp.providers.base import (
    EditRequest,
    GeneratedImage,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
    ProviderClientConfig,
)
from imagegen_mcp.capabilities import (
    PROVIDER_DESCRIPTORS,
    ImageOperation,
    ProviderDescriptor,
    ProviderId,
)
from imagegen_mcp.providers.huggingface_provider import HuggingFaceImageClient
from imagegen_mcp.providers.openai_provider import OpenAIImageClient
from imagegen_mcp.providers.replicate_provider import ReplicateImageClient
from imagegen_mcp.providers.stability_provider import StabilityImageClient

PROVIDER_CLIENTS: Dict[ProviderId, Type[ImageProviderClient]] = {
    ProviderId.OPENAI: OpenAIImageClient,
    ProviderId.STABILITY: StabilityImageClient,
    ProviderId.REPLICATE: ReplicateImageClient,
    ProviderId.HUGGINGFACE: HuggingFaceImageClient,
}

__all__ = [
    "PROVIDER_CLIENTS",
    "PROVIDER_DESCRIPTORS",
    "ProviderId",
    "ProviderDescriptor",
    "ImageOperation",
    "ImageProviderClient",
    "ProviderClientConfig",
    "GenerationRequest",
    "EditRequest",
    "GeneratedImage",
    "ImageResult",
    "OpenAIImageClient",
    "StabilityImageClient",
    "ReplicateImageClient",
    "HuggingFaceImageClient",
]
