"""Built-in extensions shipped with wgslbuild."""

from wgslbuild.plugins.base import BaseExtension
from wgslbuild.plugins.extensions.bindings import BindingsExtension
from wgslbuild.plugins.extensions.minifier import MinifierExtension
from wgslbuild.plugins.extensions.size_report import SizeReportExtension
from wgslbuild.plugins.hookspecs import hookimpl

BUILTIN_EXTENSIONS: tuple[type[BaseExtension], ...] = (
    BindingsExtension,
    MinifierExtension,
    SizeReportExtension,
)


class BuiltinExtensions:
    """Hook implementation advertising the built-in extensions."""

    @hookimpl
    def wgslbuild_get_extensions(self) -> list[type[BaseExtension]]:
        return list(BUILTIN_EXTENSIONS)


__all__ = [
    "BUILTIN_EXTENSIONS",
    "BindingsExtension",
    "BuiltinExtensions",
    "MinifierExtension",
    "SizeReportExtension",
]
