# src/wgslbuild/engine/__init__.py
"""Build engine: traversal of a shader tree with extension callbacks.

This module provides:
- BuildOrchestrator: Full build lifecycle management
- Publishers: Hand-off of the build location to later tooling

Example:
    from wgslbuild.engine import BuildOrchestrator
    from wgslbuild.plugins.extensions import SizeReportExtension

    orchestrator = BuildOrchestrator(
        Path("shaders"),
        Path("build/shaders"),
        [SizeReportExtension()],
    )
    result = orchestrator.run()
"""

from wgslbuild.engine.orchestrator import (
    BuildOrchestrator,
    BuildResult,
    build_from_settings,
    build_shader_dir,
    derive_module_path,
)
from wgslbuild.engine.publishers import (
    OUTPUT_DIR_ENV_VAR,
    SHADER_ROOT_ENV_VAR,
    BuildLocation,
    EnvironmentPublisher,
    LocationPublisher,
    ManifestPublisher,
    read_manifest,
)

__all__ = [
    "OUTPUT_DIR_ENV_VAR",
    "SHADER_ROOT_ENV_VAR",
    "BuildLocation",
    "BuildOrchestrator",
    "BuildResult",
    "EnvironmentPublisher",
    "LocationPublisher",
    "ManifestPublisher",
    "build_from_settings",
    "build_shader_dir",
    "derive_module_path",
    "read_manifest",
]
