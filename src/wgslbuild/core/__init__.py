"""Core infrastructure: Mangling, Naming, Compiler, Configuration, Logging."""

from wgslbuild.core.compiler import (
    BaseCompiler,
    CommandCompiler,
    CompileOptions,
    PassthroughCompiler,
    ShaderCompiler,
    create_compiler,
)
from wgslbuild.core.config import (
    BuildSettings,
    CompilerSettings,
    ExtensionSettings,
    load_settings,
)
from wgslbuild.core.logging import configure_logging, get_logger
from wgslbuild.core.mangling import is_mangled, mangle, unmangle, unmangle_or_root
from wgslbuild.core.naming import (
    artifact_name,
    artifact_path,
    module_artifact_path,
    resolve_source_file,
)

__all__ = [
    "BaseCompiler",
    "BuildSettings",
    "CommandCompiler",
    "CompileOptions",
    "CompilerSettings",
    "ExtensionSettings",
    "PassthroughCompiler",
    "ShaderCompiler",
    "artifact_name",
    "artifact_path",
    "configure_logging",
    "create_compiler",
    "get_logger",
    "is_mangled",
    "load_settings",
    "mangle",
    "module_artifact_path",
    "resolve_source_file",
    "unmangle",
    "unmangle_or_root",
]
