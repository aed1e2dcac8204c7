"""Base class for extension implementations.

Built-in and third-party extensions subclass BaseExtension. Discovery uses
issubclass() checks against it, which the BuildExtensionProtocol cannot
support because it has a non-method member (``name``).

Subclasses must set ``name`` and implement post_build; every other hook
defaults to doing nothing. Extensions with options set ``config_model``
and are created from settings via ``from_options``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Self

from wgslbuild.plugins.config_base import ExtensionConfig

if TYPE_CHECKING:
    from wgslbuild.contracts import ModulePath, SourceMap
    from wgslbuild.core.compiler import ShaderCompiler


class BaseExtension(ABC):
    """Base class for build extensions.

    Example:
        class LineCounter(BaseExtension):
            name = "line_counter"

            def __init__(self) -> None:
                self.total = 0

            def post_build(self, module_path, artifact_path, source_map) -> None:
                self.total += len(artifact_path.read_text().splitlines())
    """

    name: ClassVar[str]
    config_model: ClassVar[type[ExtensionConfig]] = ExtensionConfig

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Abstract intermediates may leave name unset; concrete ones may not
        if "name" in cls.__dict__ and not (isinstance(cls.name, str) and cls.name):
            raise TypeError(f"{cls.__name__}.name must be a non-empty string")

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> Self:
        """Create an extension from settings options.

        The default passes validated config fields as keyword arguments.

        Raises:
            ExtensionConfigError: If options are invalid
        """
        config = cls.config_model.from_dict(options)
        return cls(**config.model_dump())

    def init_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        pass

    def enter_module(self, dir_path: Path) -> None:
        pass

    def exit_module(self, dir_path: Path) -> None:
        pass

    @abstractmethod
    def post_build(self, module_path: ModulePath, artifact_path: Path, source_map: SourceMap | None) -> None: ...

    def exit_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        pass

    def close(self) -> None:
        pass
