"""Hierarchical module paths derived from the shader directory tree.

A module path is the shader's location relative to the shader root, with
directories as leading components and the file stem as the last one:

    shaders/lighting/pbr.wesl  ->  package::lighting::pbr
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from wgslbuild.contracts.enums import PathOrigin

SEPARATOR = "::"


@dataclass(frozen=True, order=True)
class ModulePath:
    """Immutable module path.

    Equality and ordering are structural: origin first, then components.
    Components must be non-empty and may not contain "::" or a path
    separator, so every path has exactly one string form.
    """

    origin: PathOrigin
    components: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.components, tuple):
            # Accept any iterable at construction, store a tuple
            object.__setattr__(self, "components", tuple(self.components))
        for i, component in enumerate(self.components):
            if not isinstance(component, str) or not component:
                raise ValueError(f"module path component {i} must be a non-empty string, got {component!r}")
            if SEPARATOR in component or "/" in component or "\\" in component:
                raise ValueError(f"module path component {i} {component!r} contains a separator")

    @classmethod
    def root(cls) -> ModulePath:
        """The absolute root module (no components)."""
        return cls(PathOrigin.ABSOLUTE, ())

    @classmethod
    def from_components(cls, *components: str, origin: PathOrigin = PathOrigin.ABSOLUTE) -> ModulePath:
        return cls(origin, tuple(components))

    @classmethod
    def parse(cls, text: str) -> ModulePath:
        """Parse "a::b::c" (optionally prefixed with "package::" or "self::").

        Raises:
            ValueError: If the text has empty components.
        """
        parts = [part.strip() for part in text.split(SEPARATOR)] if text.strip() else []
        origin = PathOrigin.ABSOLUTE
        if parts and parts[0] in (PathOrigin.ABSOLUTE.value, PathOrigin.PACKAGE_RELATIVE.value):
            origin = PathOrigin(parts.pop(0))
        return cls(origin, tuple(parts))

    @property
    def is_root(self) -> bool:
        return not self.components

    @property
    def last(self) -> str | None:
        """Last component, or None for the root module."""
        return self.components[-1] if self.components else None

    @property
    def parent(self) -> ModulePath:
        if not self.components:
            return self
        return ModulePath(self.origin, self.components[:-1])

    def join(self, name: str) -> ModulePath:
        return ModulePath(self.origin, (*self.components, name))

    def to_relative_path(self) -> PurePosixPath:
        """Components as a relative filesystem path (no extension)."""
        return PurePosixPath(*self.components) if self.components else PurePosixPath(".")

    def __str__(self) -> str:
        return SEPARATOR.join((self.origin.value, *self.components))
