# src/llm/client_factory.py — v3
"""Factory: instantiate an LLM client from a provider name.

Adapters are registered by import path and loaded lazily, so the SDK of an
unused provider is never imported.
"""

from __future__ import annotations

import importlib
import logging

from dealcache.config.settings import Settings
from dealcache.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "dealcache.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (openai).
        model: Model name (e.g. gpt-3.5-turbo).
        settings: Application settings (for credentials and timeouts).
        **kwargs: Additional provider-specific arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = import_object(_PROVIDER_REGISTRY[provider], sep=".")

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None and provider == "openai":
        init_kwargs.setdefault("api_key", settings.openai_api_key)
        init_kwargs.setdefault("organization", settings.openai_organization)
        init_kwargs.setdefault("timeout", settings.classifier_timeout_seconds)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s → %s", name, class_path)


def import_object(path: str, sep: str = ":") -> object:
    """Import an attribute from ``module<sep>attr``.

    Raises:
        ImportError: The module cannot be imported.
        AttributeError: The module has no such attribute.
        ValueError: ``path`` does not contain the separator.
    """
    if sep == ".":
        module_path, _, attr = path.rpartition(".")
    else:
        module_path, _, attr = path.partition(sep)
    if not module_path or not attr:
        raise ValueError(f"Expected 'module{sep}attribute', got {path!r}")
    module = importlib.import_module(module_path)
    return getattr(module, attr)
