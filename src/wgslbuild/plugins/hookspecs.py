"""pluggy hook specifications for wgslbuild extensions.

Packages make extensions available by implementing this hook and
registering the implementing object, either directly with
ExtensionManager.register() or through the ``wgslbuild`` setuptools
entry point group.

Usage (implementing a plugin):
    from wgslbuild.plugins.hookspecs import hookimpl

    class MyExtensions:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def wgslbuild_get_extensions(self):
            return [MyExtension]

Note: hooks only advertise extension classes. The order extensions run in
is decided by the build settings, never by pluggy's call order.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from wgslbuild.plugins.base import BaseExtension

PROJECT_NAME = "wgslbuild"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class WgslbuildExtensionSpec:
    """Hook specifications for build extensions."""

    @hookspec
    def wgslbuild_get_extensions(self) -> list[type["BaseExtension"]]:  # type: ignore[empty-body]
        """Return extension classes.

        Returns:
            List of BaseExtension subclasses (not instances)
        """
