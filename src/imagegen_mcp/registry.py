"""Provider registry.

Builds the set of live provider clients once at startup from a
``RegistryConfig`` plus the process environment, and answers lookups for the
rest of the process lifetime. The registry is never mutated after
construction, so it is safe to share between concurrent tool invocations.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from imagegen_mcp.capabilities import PROVIDER_DESCRIPTORS, ImageOperation, ProviderId
from imagegen_mcp.config import RegistryConfig
from imagegen_mcp.errors import (
    ConfigurationError,
    ImageGenError,
    ProviderUnavailableError,
    ValidationError,
)
from imagegen_mcp.providers import PROVIDER_CLIENTS
from imagegen_mcp.providers.base import ImageProviderClient, ProviderClientConfig

log = logging.getLogger(__name__)

ClientFactory = Callable[[ProviderClientConfig], ImageProviderClient]


class ProviderRegistry:
    """Live provider clients keyed by ``ProviderId``, in enablement order.

    Use ``ProviderRegistry.from_config`` rather than the constructor.
    """

    def __init__(
        self,
        clients: Dict[ProviderId, ImageProviderClient],
        default_provider: ProviderId,
        *,
        strict_models: bool = False,
    ) -> None:
        if not clients:
            raise ConfigurationError("No image generation providers are configured")
        if default_provider not in clients:
            raise ConfigurationError(f"Default provider {default_provider} is not live")
        self._clients = dict(clients)
        self._default = default_provider
        self._strict = strict_models

    @classmethod
    def from_config(
        cls,
        config: Optional[RegistryConfig] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        factories: Optional[Mapping[ProviderId, ClientFactory]] = None,
    ) -> "ProviderRegistry":
        """Construct every enabled provider whose credential is present.

        Args:
            config: Enabled providers, default provider and per-provider
                settings. ``None`` auto-detects everything.
            env: Environment mapping to read credentials from
                (default: ``os.environ``).
            factories: Per-provider client constructors, overriding the
                built-in client classes.

        Raises:
            ConfigurationError: If no provider could be constructed.
        """
        config = config or RegistryConfig()
        env = os.environ if env is None else env
        builders: Dict[ProviderId, ClientFactory] = dict(PROVIDER_CLIENTS)
        builders.update(factories or {})

        if config.enabled_providers:
            candidates = list(config.enabled_providers)
        else:
            candidates = [
                pid for pid in ProviderId if PROVIDER_DESCRIPTORS[pid].get_api_key(env)
            ]
            if candidates:
                log.info(
                    "Auto-detected providers from environment: %s",
                    ", ".join(p.value for p in candidates),
                )

        clients: Dict[ProviderId, ImageProviderClient] = {}
        for pid in candidates:
            descriptor = PROVIDER_DESCRIPTORS[pid]
            client_config = ProviderClientConfig(
                api_key=descriptor.get_api_key(env),
                settings=config.settings_for(pid),
            )
            try:
                clients[pid] = builders[pid](client_config)
            except ImageGenError as e:
                log.warning("Failed to initialize provider %s: %s", pid.value, e)
                continue
            log.info("Initialized provider: %s", descriptor.display_name)

        if not clients:
            env_vars = ", ".join(PROVIDER_DESCRIPTORS[p].env_var for p in ProviderId)
            raise ConfigurationError(
                "No image generation providers could be initialized. "
                f"Set at least one of: {env_vars}",
                details={"requested": [p.value for p in candidates]},
            )

        default = config.default_provider
        if default not in clients:
            fallback = next(iter(clients))
            if default is not None:
                log.warning(
                    "Default provider %s is not available, using %s instead",
                    default.value,
                    fallback.value,
                )
            default = fallback

        return cls(clients, default, strict_models=config.strict_models)

    # ---------- lookups ----------

    @property
    def default_provider(self) -> ProviderId:
        return self._default

    @property
    def strict_models(self) -> bool:
        return self._strict

    def available_providers(self) -> List[ProviderId]:
        return list(self._clients)

    def get(self, provider: "ProviderId | str") -> ImageProviderClient:
        """Return the live client for ``provider``.

        Raises:
            ProviderUnavailableError: If the provider is unknown or not live.
        """
        try:
            pid = ProviderId(str(provider).lower())
        except ValueError:
            pid = None
        if pid is None or pid not in self._clients:
            raise ProviderUnavailableError(
                str(provider), [p.value for p in self._clients]
            )
        return self._clients[pid]

    def default_client(self) -> ImageProviderClient:
        return self._clients[self._default]

    def all_models(self) -> Dict[str, Dict[str, str]]:
        """Per-provider catalogs with keys prefixed ``provider/``."""
        return {
            pid.value: {
                f"{pid.value}/{key}": value
                for key, value in client.list_allowed_models().items()
            }
            for pid, client in self._clients.items()
        }

    def list_models(self) -> Dict[str, str]:
        flat: Dict[str, str] = {}
        for models in self.all_models().values():
            flat.update(models)
        return flat

    def resolve_model(self, model: str) -> Tuple[ImageProviderClient, str]:
        """Find the client and backend model id for a model string.

        ``provider/model`` is tried against that provider first, then every
        live provider's keys and ids in enablement order. Anything else goes
        to the default provider verbatim, unless ``strict_models`` is set.

        Raises:
            ValidationError: If strict and nothing matches.
        """
        prefix, sep, rest = model.partition("/")
        if sep:
            try:
                pid = ProviderId(prefix.lower())
            except ValueError:
                pid = None
            if pid is not None and pid in self._clients:
                found = self._clients[pid].find_model(rest)
                if found:
                    return self._clients[pid], found

        for client in self._clients.values():
            found = client.find_model(model)
            if found:
                return client, found

        if self._strict:
            raise ValidationError(
                f'Model "{model}" is not offered by any available provider. '
                f"Available models: {', '.join(self.list_models())}",
                field="model",
            )
        log.debug("Model %s not found, falling back to %s", model, self._default.value)
        return self.default_client(), model

    def stats(self) -> List[Dict[str, Any]]:
        """Summary of every live provider."""
        result: List[Dict[str, Any]] = []
        for pid, client in self._clients.items():
            descriptor = client.descriptor
            models = client.list_allowed_models()
            result.append(
                {
                    "provider": pid.value,
                    "name": descriptor.display_name,
                    "description": descriptor.description,
                    "model_count": len(models),
                    "models": list(models),
                    "operations": [
                        op.value for op in ImageOperation if descriptor.supports(op)
                    ],
                    "default": pid == self._default,
                }
            )
        return result

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, provider: object) -> bool:
        try:
            return ProviderId(str(provider).lower()) in self._clients
        except ValueError:
            return False


__all__ = ["ProviderRegistry", "ClientFactory"]
