from __future__ import annotations

from typing import Callable

from mention_slackbot.config import AppConfig, ConfigError

from .base import Source

SourceFactory = Callable[[AppConfig], Source]

# Registration order is run order.
_REGISTRY: dict[str, SourceFactory] = {}


class SourceRegistrationError(ConfigError):
    """Raised when two sources register under the same name."""


def register_source(name: str) -> Callable[[SourceFactory], SourceFactory]:
    def decorator(factory: SourceFactory) -> SourceFactory:
        if name in _REGISTRY:
            raise SourceRegistrationError(f"Source '{name}' is already registered")
        _REGISTRY[name] = factory
        return factory

    return decorator


def registered_source_names() -> list[str]:
    return list(_REGISTRY)


def build_sources(config: AppConfig) -> list[Source]:
    """Instantiate every registered source, in registration order."""
    return [factory(config) for factory in _REGISTRY.values()]
