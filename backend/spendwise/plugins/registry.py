from __future__ import annotations

import importlib
import pkgutil

from spendwise.config import Settings
from spendwise.plugins.base import LLMProviderPlugin

_registry: dict[str, type[LLMProviderPlugin]] = {}


def register(provider_cls: type[LLMProviderPlugin]) -> None:
    if not provider_cls.name:
        raise ValueError(f"Provider {provider_cls.__name__} has no name")
    _registry[provider_cls.name] = provider_cls


def get(name: str) -> type[LLMProviderPlugin] | None:
    return _registry.get(name)


def get_all() -> dict[str, type[LLMProviderPlugin]]:
    return dict(_registry)


def create(name: str, settings: Settings) -> LLMProviderPlugin:
    provider_cls = get(name)
    if provider_cls is None:
        raise ValueError(
            f"AI provider '{name}' not found. Available: {list(_registry.keys())}"
        )
    return provider_cls(settings)


def discover() -> None:
    """Auto-discover and register providers from spendwise.plugins.ai_providers."""
    import spendwise.plugins.ai_providers as ai_pkg

    for _importer, modname, _ispkg in pkgutil.iter_modules(ai_pkg.__path__):
        module = importlib.import_module(f"spendwise.plugins.ai_providers.{modname}")
        if hasattr(module, "register_plugin"):
            module.register_plugin()
