"""Error taxonomy for builds.

Every failure during a build aborts the remaining walk and surfaces one of
the BuildError subclasses below to the caller. Nothing is retried and
nothing already written is cleaned up.
"""

from __future__ import annotations

from pathlib import Path

from wgslbuild.contracts.enums import LifecycleStage
from wgslbuild.contracts.module_path import ModulePath


class BuildError(Exception):
    """Base class for all build failures."""


class BuildIOError(BuildError):
    """A directory entry could not be read or an output could not be written."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class PathDerivationError(BuildError):
    """A shader file could not be mapped to a module path.

    Raised for files outside the declared shader root, or a root that is
    not a directory. This is a configuration error, not an I/O error.
    """


class CompileError(BuildError):
    """The shader compiler failed for one module."""

    def __init__(self, module_path: ModulePath, message: str, stderr: str | None = None) -> None:
        super().__init__(f"failed to build shader `{module_path}`: {message}")
        self.module_path = module_path
        self.stderr = stderr


class ExtensionError(BuildError):
    """An extension hook raised.

    The original exception is available as ``cause`` and as ``__cause__``.

    Attributes:
        extension_name: Declared name of the failing extension
        stage: Lifecycle point at which it failed
        subject: What the hook was working on (directory, module, root)
        cause: The exception the hook raised
    """

    def __init__(
        self,
        extension_name: str,
        stage: LifecycleStage,
        cause: BaseException,
        subject: str | None = None,
    ) -> None:
        location = f" ({subject})" if subject else ""
        super().__init__(f"Extension {extension_name} failed during {stage}{location}: {cause}")
        self.extension_name = extension_name
        self.stage = stage
        self.subject = subject
        self.cause = cause


class LookupFailure(BuildError):
    """A previously built shader could not be located by module path."""


class ExtensionConfigError(Exception):
    """Raised when extension options are invalid."""


class SettingsError(Exception):
    """Raised when build settings cannot be loaded."""
