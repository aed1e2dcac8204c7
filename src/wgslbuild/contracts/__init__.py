"""Shared contracts: module paths, artifacts, enums and errors.

Leaf package with no dependencies on core/, engine/ or plugins/.
"""

from wgslbuild.contracts.artifacts import CompiledArtifact, SourceMap, SourceSpan
from wgslbuild.contracts.enums import LifecycleStage, ManglerKind, PathOrigin
from wgslbuild.contracts.errors import (
    BuildError,
    BuildIOError,
    CompileError,
    ExtensionConfigError,
    ExtensionError,
    LookupFailure,
    PathDerivationError,
    SettingsError,
)
from wgslbuild.contracts.module_path import ModulePath

__all__ = [
    "BuildError",
    "BuildIOError",
    "CompileError",
    "CompiledArtifact",
    "ExtensionConfigError",
    "ExtensionError",
    "LifecycleStage",
    "LookupFailure",
    "ManglerKind",
    "ModulePath",
    "PathDerivationError",
    "PathOrigin",
    "SettingsError",
    "SourceMap",
    "SourceSpan",
]
