"""Extension system: protocol, base class, discovery via pluggy.

- Protocols: Type contract for extensions
- Base class: No-op defaults for every hook but post_build
- Config: Pydantic-based extension options
- Manager: Extension discovery and instantiation
- Hookspecs: pluggy hook definitions
"""

from wgslbuild.plugins.base import BaseExtension
from wgslbuild.plugins.config_base import ExtensionConfig
from wgslbuild.plugins.hookspecs import hookimpl, hookspec
from wgslbuild.plugins.manager import ExtensionManager
from wgslbuild.plugins.protocols import BuildExtensionProtocol

__all__ = [
    "BaseExtension",
    "BuildExtensionProtocol",
    "ExtensionConfig",
    "ExtensionManager",
    "hookimpl",
    "hookspec",
]
