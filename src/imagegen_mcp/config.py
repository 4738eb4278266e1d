"""Resolved configuration consumed by the provider registry.

The registry never reads argv or ``.env`` files; the CLI folds its flags into
a ``RegistryConfig`` with ``build_config`` and hands that over.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from imagegen_mcp.capabilities import ProviderId


class ProviderSettings(BaseModel):
    """Per-provider runtime settings."""

    model_config = ConfigDict(frozen=True)

    allowed_models: Optional[List[str]] = None
    base_url: Optional[str] = None
    # None means no application-level timeout: a hung backend hangs the call.
    timeout: Optional[float] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("allowed_models")
    @classmethod
    def _strip_models(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        cleaned = [m.strip() for m in v if m and m.strip()]
        return cleaned or None

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout must be positive")
        return v


class RegistryConfig(BaseModel):
    """Which providers to enable and how.

    ``enabled_providers=None`` means auto-detect from credentials.
    """

    model_config = ConfigDict(frozen=True)

    enabled_providers: Optional[List[ProviderId]] = None
    default_provider: Optional[ProviderId] = None
    provider_settings: Dict[ProviderId, ProviderSettings] = Field(default_factory=dict)
    strict_models: bool = False

    @field_validator("enabled_providers")
    @classmethod
    def _dedupe(cls, v: Optional[List[ProviderId]]) -> Optional[List[ProviderId]]:
        if v is None:
            return None
        seen: List[ProviderId] = []
        for p in v:
            if p not in seen:
                seen.append(p)
        return seen or None

    @model_validator(mode="before")
    @classmethod
    def _default_first(cls, data: Any) -> Any:
        # An explicit list without an explicit default uses its first entry.
        if isinstance(data, dict) and not data.get("default_provider"):
            enabled = data.get("enabled_providers")
            if enabled:
                data = {**data, "default_provider": list(enabled)[0]}
        return data

    def settings_for(self, provider: ProviderId) -> ProviderSettings:
        return self.provider_settings.get(provider) or ProviderSettings()


def split_values(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten repeated and comma-separated CLI values."""
    out: List[str] = []
    for value in values or []:
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out


def parse_providers(names: Iterable[str]) -> List[ProviderId]:
    """Convert provider names to ids.

    Raises:
        ValueError: On an unknown provider name.
    """
    result: List[ProviderId] = []
    for name in names:
        try:
            result.append(ProviderId(name.lower()))
        except ValueError:
            supported = ", ".join(p.value for p in ProviderId)
            raise ValueError(f"Unknown provider: {name}. Supported: {supported}") from None
    return result


def build_config(
    providers: Optional[Iterable[str]] = None,
    models: Optional[Iterable[str]] = None,
    default_provider: Optional[str] = None,
    *,
    strict_models: bool = False,
    provider_settings: Optional[Dict[ProviderId, ProviderSettings]] = None,
) -> RegistryConfig:
    """Fold CLI-style flags into a ``RegistryConfig``.

    Args:
        providers: Provider names (repeated or comma separated). Empty means
            auto-detect.
        models: Model allow-list applied to every listed provider, or to
            OpenAI when no provider list is given.
        default_provider: Preferred default provider.
        strict_models: Reject model strings that resolve to no provider.
        provider_settings: Extra per-provider settings merged underneath the
            allow-list.
    """
    enabled = parse_providers(split_values(providers))
    allowed = split_values(models)
    default = parse_providers([default_provider])[0] if default_provider else None

    settings: Dict[ProviderId, ProviderSettings] = dict(provider_settings or {})
    if allowed:
        for pid in enabled or [ProviderId.OPENAI]:
            base = settings.get(pid) or ProviderSettings()
            settings[pid] = base.model_copy(update={"allowed_models": allowed})

    return RegistryConfig(
        enabled_providers=enabled or None,
        default_provider=default,
        provider_settings=settings,
        strict_models=strict_models,
    )


__all__ = [
    "ProviderSettings",
    "RegistryConfig",
    "build_config",
    "parse_providers",
    "split_values",
]
