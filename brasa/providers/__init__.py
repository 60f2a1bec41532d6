"""
AI capability providers.

Usage:
    from brasa.providers import get_provider
    provider = get_provider("openai")
    generation = await provider.generate_text(model="gpt-4o-mini", prompt="...")
"""

from typing import Dict, List, Optional

from brasa.errors import ProviderConfigError
from brasa.providers.base import (
    LLMProvider,
    TextGeneration,
    ImageGeneration,
    image_capability,
    estimate_credits,
    usd_to_credits,
)
from brasa.providers.openai import OpenAIProvider
from brasa.providers.anthropic import AnthropicProvider
from brasa.providers.google import GoogleProvider


class ProviderRegistry:
    """Lookup of configured providers by id."""

    def __init__(self, providers: Optional[List[LLMProvider]] = None):
        if providers is None:
            providers = [OpenAIProvider(), AnthropicProvider(), GoogleProvider()]
        self._providers: Dict[str, LLMProvider] = {p.id: p for p in providers}

    def get(self, provider_id: str) -> LLMProvider:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderConfigError(f"Provider {provider_id} not configured")
        return provider

    def list(self) -> List[Dict]:
        return [
            {"id": p.id, "label": p.label, "supports_images": p.supports_images}
            for p in self._providers.values()
        ]


# Global registry instance (providers create their clients lazily)
_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    return _registry


def get_provider(provider_id: str) -> LLMProvider:
    return _registry.get(provider_id)


def list_providers() -> List[Dict]:
    return _registry.list()


__all__ = [
    "LLMProvider",
    "TextGeneration",
    "ImageGeneration",
    "OpenAIProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "ProviderRegistry",
    "get_registry",
    "get_provider",
    "list_providers",
    "image_capability",
    "estimate_credits",
    "usd_to_credits",
]
