"""
Bundler plugin registry.

The host program builds a ``PluginRegistry`` at startup and registers each
plugin under a unique type name. Registration order is the host's choice;
nothing registers itself as an import side effect.

Example::

    registry = PluginRegistry(BundlerConfig(version="v1.2.0"))
    registry.register("gpu-operator", GpuOperatorBundler)      # factory(config)
    registry.register("readme", ReadmeBundler())               # instance

    plugin = registry.get("gpu-operator")
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from cnstack.bundler.config import BundlerConfig
from cnstack.bundler.types import BundlePlugin
from cnstack.core.errors import InvalidRequestError, PluginAlreadyRegisteredError, PluginNotFoundError
from cnstack.core.logging import get_logger

logger = get_logger(__name__)

PluginFactory = Callable[[BundlerConfig], BundlePlugin]


class PluginRegistry:
    """Mapping from bundler type to plugin instance. Thread-safe."""

    def __init__(self, config: BundlerConfig | None = None):
        self.config = config or BundlerConfig()
        self._plugins: dict[str, BundlePlugin] = {}
        self._lock = threading.RLock()

    def register(self, bundle_type: str, plugin: BundlePlugin | PluginFactory) -> BundlePlugin:
        """
        Register a plugin instance, or a factory called with the registry config.

        Raises:
            PluginAlreadyRegisteredError: ``bundle_type`` is already registered
            InvalidRequestError: empty type, or the factory returned a non-plugin
        """
        if not bundle_type:
            raise InvalidRequestError("bundler type cannot be empty").with_context(field="bundle_type")

        with self._lock:
            if bundle_type in self._plugins:
                raise PluginAlreadyRegisteredError(
                    f"Bundler '{bundle_type}' is already registered"
                ).with_context(bundler_type=bundle_type)

            if isinstance(plugin, type) or not isinstance(plugin, BundlePlugin):
                instance = plugin(self.config)
            else:
                instance = plugin

            if not isinstance(instance, BundlePlugin):
                raise InvalidRequestError(
                    f"factory for '{bundle_type}' returned {type(instance).__name__}, "
                    "which has no make() method"
                ).with_context(bundler_type=bundle_type)

            self._plugins[bundle_type] = instance

        logger.debug("registry.registered", bundler_type=bundle_type, plugin=type(instance).__name__)
        return instance

    def get(self, bundle_type: str) -> BundlePlugin | None:
        with self._lock:
            return self._plugins.get(bundle_type)

    def require(self, bundle_type: str) -> BundlePlugin:
        """Like ``get`` but raises ``PluginNotFoundError`` listing what exists."""
        with self._lock:
            plugin = self._plugins.get(bundle_type)
            if plugin is None:
                raise PluginNotFoundError(bundle_type, sorted(self._plugins))
            return plugin

    def get_all(self) -> dict[str, BundlePlugin]:
        """Copy of the type → plugin mapping, in registration order."""
        with self._lock:
            return dict(self._plugins)

    def list_types(self) -> list[str]:
        with self._lock:
            return sorted(self._plugins)

    def unregister(self, bundle_type: str) -> None:
        with self._lock:
            if bundle_type not in self._plugins:
                raise PluginNotFoundError(bundle_type, sorted(self._plugins))
            del self._plugins[bundle_type]

    def clear(self) -> None:
        with self._lock:
            self._plugins.clear()

    def __contains__(self, bundle_type: object) -> bool:
        with self._lock:
            return bundle_type in self._plugins

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)

    def __repr__(self) -> str:
        return f"PluginRegistry(types={self.list_types()})"


__all__ = ["PluginRegistry", "PluginFactory"]
