"""Extension manager for discovery, registration, and instantiation.

Uses pluggy for hook-based extension registration.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import pluggy

from wgslbuild.contracts import ExtensionConfigError
from wgslbuild.core.logging import get_logger
from wgslbuild.plugins.base import BaseExtension
from wgslbuild.plugins.hookspecs import PROJECT_NAME, WgslbuildExtensionSpec

if TYPE_CHECKING:
    from wgslbuild.core.config import ExtensionSettings

logger = get_logger(__name__)


class ExtensionManager:
    """Manages extension discovery, registration, and lookup.

    Usage:
        manager = ExtensionManager()
        manager.register_builtin_extensions()

        minifier_cls = manager.get_extension_by_name("minifier")
        extensions = manager.create_extensions(settings.extensions)
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(WgslbuildExtensionSpec)

        # Map name to extension class for duplicate detection
        self._extensions: dict[str, type[BaseExtension]] = {}

    def register_builtin_extensions(self) -> None:
        """Register the extensions shipped with wgslbuild."""
        from wgslbuild.plugins.extensions import BuiltinExtensions

        self.register(BuiltinExtensions())

    def load_entrypoint_extensions(self) -> int:
        """Register hook implementations advertised by installed packages.

        Returns:
            Number of entry points loaded
        """
        count = self._pm.load_setuptools_entrypoints(PROJECT_NAME)
        self._refresh_cache()
        return count

    def register(self, plugin: Any) -> None:
        """Register an object implementing wgslbuild_get_extensions.

        Raises:
            ValueError: If an extension name is already registered
        """
        self._pm.register(plugin)
        try:
            self._refresh_cache()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_cache(self) -> None:
        """Rebuild the name -> class map from all registered hooks.

        Raises:
            ValueError: If two extensions share a name, or a hook returns
                something that is not a BaseExtension subclass
        """
        found: dict[str, type[BaseExtension]] = {}
        for classes in self._pm.hook.wgslbuild_get_extensions():
            for cls in classes:
                if not (isinstance(cls, type) and issubclass(cls, BaseExtension)):
                    raise ValueError(f"{cls!r} is not a BaseExtension subclass")
                name = cls.name
                if name in found and found[name] is not cls:
                    raise ValueError(f"Duplicate extension name: '{name}'. Already registered by {found[name].__name__}")
                found[name] = cls
        self._extensions = found

    def get_extensions(self) -> list[type[BaseExtension]]:
        """All registered extension classes, sorted by name."""
        return [self._extensions[name] for name in sorted(self._extensions)]

    def get_extension_by_name(self, name: str) -> type[BaseExtension] | None:
        return self._extensions.get(name)

    def create_extensions(self, settings: Sequence[ExtensionSettings]) -> list[BaseExtension]:
        """Instantiate configured extensions, preserving settings order.

        Raises:
            ExtensionConfigError: If a name is unknown or options are invalid
        """
        instances: list[BaseExtension] = []
        for entry in settings:
            cls = self.get_extension_by_name(entry.plugin)
            if cls is None:
                available = ", ".join(sorted(self._extensions)) or "none"
                raise ExtensionConfigError(f"Unknown extension '{entry.plugin}'. Available: {available}")
            logger.debug("creating extension", extension=entry.plugin)
            instances.append(cls.from_options(dict(entry.options)))
        return instances
