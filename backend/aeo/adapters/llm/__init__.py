"""
LLM Providers - Unified chat contract over multiple vendors
"""

from typing import Dict, List, Optional

from aeo.config import get_settings
from .base import (
    BaseLLMProvider,
    LLMMessage,
    LLMRequest,
    LLMResponse,
    LLMProviderError,
    RateLimitError,
    APIError,
    ProviderUnavailableError,
    ProviderFactory,
    estimate_tokens,
)
from .rate_limit import ProviderRateLimiter, rate_limiter, with_rate_limit, with_retry, backoff_delay
from .openai_adapter import OpenAIProvider
from .anthropic_adapter import AnthropicProvider
from .gemini_adapter import GeminiProvider
from .perplexity_adapter import PerplexityProvider
from .grok_adapter import GrokProvider

PROVIDER_CLASSES = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "perplexity": PerplexityProvider,
    "grok": GrokProvider,
}

PROVIDER_NAMES = list(PROVIDER_CLASSES.keys())


def get_provider(
    name: str,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> BaseLLMProvider:
    """
    Factory function to get a provider client.

    Args:
        name: One of "openai", "anthropic", "gemini", "perplexity", "grok"
        api_key: Optional API key (uses the configured key if not provided)
        model: Optional default model override

    Raises:
        ValueError: If the provider is not supported
        ProviderUnavailableError: If no API key is configured
    """
    normalized = name.lower()
    if normalized not in PROVIDER_CLASSES:
        raise ValueError(f"Unknown provider: {name}. Must be one of {PROVIDER_NAMES}")

    key = api_key or get_settings().provider_api_keys.get(normalized)
    if not key:
        raise ProviderUnavailableError(f"No API key configured for provider: {normalized}", normalized)

    return PROVIDER_CLASSES[normalized](api_key=key, model=model)


def get_available_provider_names() -> List[str]:
    """Names of providers with a configured key, in fan-out order"""
    configured = get_settings().provider_api_keys
    return [name for name in PROVIDER_NAMES if configured.get(name)]


def get_available_providers(api_keys: Optional[Dict[str, str]] = None) -> List[BaseLLMProvider]:
    """
    Get clients for every provider with a configured key.

    Providers without a key are skipped silently.
    """
    api_keys = api_keys or {}
    configured = get_settings().provider_api_keys
    providers = []

    for name in PROVIDER_NAMES:
        key = api_keys.get(name) or configured.get(name)
        if key:
            providers.append(get_provider(name, api_key=key))

    return providers


__all__ = [
    # Factory
    "get_provider",
    "get_available_providers",
    "get_available_provider_names",
    "PROVIDER_NAMES",
    "ProviderFactory",
    # Contract
    "BaseLLMProvider",
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "estimate_tokens",
    # Rate limiting
    "ProviderRateLimiter",
    "rate_limiter",
    "with_rate_limit",
    "with_retry",
    "backoff_delay",
    # Exceptions
    "LLMProviderError",
    "RateLimitError",
    "APIError",
    "ProviderUnavailableError",
    # Providers
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "PerplexityProvider",
    "GrokProvider",
]
