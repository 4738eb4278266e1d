"""Image generation error hierarchy.

Every error raised by the dispatch core derives from ``ImageGenError`` so the
tool boundary can turn it into caller-visible text. ``ConfigurationError`` is
the only one that is meant to escape: it aborts startup.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ImageGenError(Exception):
    """Base exception for image generation errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ImageGenError):
    """No usable provider could be configured."""

    pass


class ProviderUnavailableError(ImageGenError):
    """A provider was requested that is not live in the registry."""

    def __init__(
        self,
        provider: str,
        available: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.provider = provider
        self.available = list(available or [])
        message = f"Provider {provider} is not available."
        if self.available:
            message += f" Available providers: {', '.join(self.available)}"
        super().__init__(message, details)


class ValidationError(ImageGenError):
    """Request parameters violate a provider or model constraint."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.field = field


class MissingFileError(ValidationError):
    """A referenced local file (source image or mask) does not exist."""

    def __init__(self, path: str, kind: str = "Image"):
        super().__init__(f"{kind} file not found: {path}", field=kind.lower())
        self.path = path


class ProviderError(ImageGenError):
    """A backend call failed or returned a malformed payload."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(f"{provider} API error: {message}", details)
        self.provider = provider
        self.status_code = status_code


class EmptyResultError(ImageGenError):
    """A backend call succeeded but produced no usable image."""

    def __init__(self, provider: Optional[str] = None, message: Optional[str] = None):
        super().__init__(message or "No images were generated")
        self.provider = provider


__all__ = [
    "ImageGenError",
    "ConfigurationError",
    "ProviderUnavailableError",
    "ValidationError",
    "MissingFileError",
    "ProviderError",
    "EmptyResultError",
]
