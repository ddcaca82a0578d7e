"""Provider registry for aicommits.

Maps provider names to provider instances and resolves the active provider
against configuration.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..config import Config
from ..credentials import CredentialCache
from ..exceptions import ConfigInvalidError, DisabledError, NotFoundError
from ..http import HttpTransport
from .base import BaseProvider, ProviderCapabilities, ProviderConfig
from .gemini_provider import GeminiAPIProvider
from .openai_provider import OpenAIProvider
from .vertex_provider import VertexProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Name -> provider lookup owned by a session."""

    def __init__(self) -> None:
        self._providers: Dict[str, BaseProvider] = {}

    def register(self, name: str, provider: Any) -> None:
        """Add or replace a provider.

        Raises:
            ValueError: If ``name`` is empty.
            TypeError: If ``provider`` is missing or cannot generate messages.
        """
        if not name:
            raise ValueError("Provider name cannot be empty")
        if provider is None:
            raise TypeError(f"Cannot register None provider for '{name}'")
        if not callable(getattr(provider, "generate_commit_message", None)):
            raise TypeError(
                f"Provider '{name}' must implement generate_commit_message method"
            )
        self._providers[name] = provider

    def get(self, name: str) -> Optional[BaseProvider]:
        return self._providers.get(name)

    def list(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def get_active_provider(self, config: Config) -> tuple[BaseProvider, ProviderConfig]:
        """Resolve the configured provider and its settings.

        Raises:
            NotFoundError: No active provider is set, or it is not registered.
            DisabledError: The provider is disabled in configuration.
            ConfigInvalidError: Validation failed; carries every message.
        """
        active_name = config.get("active_provider")
        if not active_name:
            raise NotFoundError(
                "No active provider configured. "
                "Set 'active_provider' in your configuration."
            )

        provider = self._providers.get(active_name)
        if provider is None:
            available = ", ".join(self.list()) or "none"
            raise NotFoundError(
                f"Provider '{active_name}' not found. Available providers: {available}"
            )

        provider_config = config.provider_config(active_name)
        if provider_config is None:
            raise NotFoundError(f"No configuration found for provider '{active_name}'")

        if provider_config.get("enabled") is False:
            raise DisabledError(
                f"Provider '{active_name}' is disabled. "
                f"Set providers.{active_name}.enabled = true"
            )

        valid, errors = provider.validate_config(provider_config)
        if not valid:
            details = "\n  - ".join(errors)
            raise ConfigInvalidError(
                f"Provider '{active_name}' configuration is invalid:\n  - {details}",
                errors,
            )

        logger.debug("resolved active provider '%s'", active_name)
        return provider, provider_config


def build_default_registry(
    http: HttpTransport, credentials: CredentialCache
) -> ProviderRegistry:
    """Registry with the built-in OpenAI, Gemini API and Vertex providers."""
    registry = ProviderRegistry()
    registry.register(OpenAIProvider.name, OpenAIProvider(http))
    registry.register(GeminiAPIProvider.name, GeminiAPIProvider(http))
    registry.register(VertexProvider.name, VertexProvider(http, credentials))
    return registry


__all__ = [
    "BaseProvider",
    "GeminiAPIProvider",
    "OpenAIProvider",
    "ProviderCapabilities",
    "ProviderRegistry",
    "VertexProvider",
    "build_default_registry",
]
