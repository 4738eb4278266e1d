__version__ = "0.1.0"

from imagegen_mcp.capabilities import (
    PROVIDER_DESCRIPTORS,
    SUPPORTED_PROVIDERS,
    ImageOperation,
    ProviderDescriptor,
    ProviderId,
    is_provider_configured,
    list_configured_providers,
    list_models,
    list_providers,
)
from imagegen_mcp.config import ProviderSettings, RegistryConfig, build_config
from imagegen_mcp.dispatch import DispatchResult, ImageDispatcher
from imagegen_mcp.errors import (
    ConfigurationError,
    EmptyResultError,
    ImageGenError,
    MissingFileError,
    ProviderError,
    ProviderUnavailableError,
    ValidationError,
)
from imagegen_mcp.providers import (
    EditRequest,
    GeneratedImage,
    GenerationRequest,
    ImageProviderClient,
    ImageResult,
)
from imagegen_mcp.registry import ProviderRegistry
from imagegen_mcp.server import create_server

__all__ = [
    "__version__",
    # Providers
    "ProviderId",
    "ImageOperation",
    "ProviderDescriptor",
    "PROVIDER_DESCRIPTORS",
    "SUPPORTED_PROVIDERS",
    "list_providers",
    "list_models",
    "is_provider_configured",
    "list_configured_providers",
    # Configuration
    "ProviderSettings",
    "RegistryConfig",
    "build_config",
    # Core
    "ProviderRegistry",
    "ImageDispatcher",
    "DispatchResult",
    "ImageProviderClient",
    "GenerationRequest",
    "EditRequest",
    "GeneratedImage",
    "ImageResult",
    "create_server",
    # Errors
    "ImageGenError",
    "ConfigurationError",
    "ProviderUnavailableError",
    "ValidationError",
    "MissingFileError",
    "ProviderError",
    "EmptyResultError",
]
