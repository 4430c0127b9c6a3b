"""Provider registry."""

from __future__ import annotations

import importlib
import logging

from tgtrace.config import Config
from tgtrace.providers.base import BaseProvider

logger = logging.getLogger(__name__)

_PROVIDER_MODULES = [
    "tgtrace.providers.telegram",
    "tgtrace.providers.google",
    "tgtrace.providers.bing",
    "tgtrace.providers.reddit",
]


def get_provider_classes() -> list[type[BaseProvider]]:
    """Import every provider module and return its provider classes, in order."""
    classes: list[type[BaseProvider]] = []
    for mod_path in _PROVIDER_MODULES:
        mod = importlib.import_module(mod_path)
        for attr_name in dir(mod):
            attr = getattr(mod, attr_name)
            if (
                isinstance(attr, type)
                and issubclass(attr, BaseProvider)
                and attr is not BaseProvider
            ):
                classes.append(attr)
    return classes


def provider_names() -> list[str]:
    return [cls.name for cls in get_provider_classes()]


def build_providers(config: Config, names: list[str] | None = None) -> list[BaseProvider]:
    """Instantiate the providers whose credentials are present in *config*.

    *names* restricts the result to the given provider names.
    """
    providers: list[BaseProvider] = []
    for cls in get_provider_classes():
        if names is not None and cls.name not in names:
            continue
        if not cls.is_configured(config):
            logger.info("Skipping %s provider: not configured", cls.name)
            continue
        providers.append(cls(config))
    return providers
