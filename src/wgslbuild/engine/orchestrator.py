# src/wgslbuild/engine/orchestrator.py
"""BuildOrchestrator: walks a shader tree and drives compiler and extensions.

Coordinates:
- Root validation and compiler creation
- Extension lifecycle (init_root, enter_module, post_build, exit_module, exit_root)
- Depth-first traversal, files before directories, entries sorted by name
- Publishing the build location
- Extension teardown, on success and on failure
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from wgslbuild.contracts import (
    BuildError,
    BuildIOError,
    CompiledArtifact,
    CompileError,
    ExtensionError,
    LifecycleStage,
    ModulePath,
    PathDerivationError,
    PathOrigin,
)
from wgslbuild.core.compiler import CompileOptions, PassthroughCompiler, ShaderCompiler, create_compiler
from wgslbuild.core.logging import get_logger
from wgslbuild.core.naming import (
    DEFAULT_ARTIFACT_EXTENSION,
    DEFAULT_SOURCE_EXTENSIONS,
    artifact_name,
    artifact_path,
)
from wgslbuild.engine.publishers import (
    BuildLocation,
    EnvironmentPublisher,
    LocationPublisher,
    ManifestPublisher,
)
from wgslbuild.plugins.protocols import BuildExtensionProtocol

if TYPE_CHECKING:
    from wgslbuild.core.config import BuildSettings, ExtensionSettings
    from wgslbuild.plugins.manager import ExtensionManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a successful build.

    Attributes:
        shader_root: Directory that was walked
        output_dir: Directory holding the artifacts
        artifacts: One entry per compiled shader, in walk order
        touched_files: Every file the compiler read, in walk order
        location: The value handed to the publishers
    """

    shader_root: Path
    output_dir: Path
    artifacts: tuple[CompiledArtifact, ...]
    touched_files: tuple[Path, ...]
    location: BuildLocation

    def artifact_for(self, module_path: ModulePath) -> CompiledArtifact | None:
        for artifact in self.artifacts:
            if artifact.module_path == module_path:
                return artifact
        return None


def derive_module_path(shader_root: Path, shader_file: Path) -> ModulePath:
    """Map a shader file to its module path.

    Directory parts relative to the root become the leading components,
    the file stem the last one.

    Raises:
        PathDerivationError: If the file is not below the root, or a
            component is not a valid module path component
    """
    try:
        relative = shader_file.relative_to(shader_root)
    except ValueError as e:
        raise PathDerivationError(f"{shader_file} is not inside shader root {shader_root}") from e
    if not relative.parts:
        raise PathDerivationError(f"{shader_file} is the shader root, not a shader file")

    components = (*relative.parts[:-1], relative.stem)
    try:
        return ModulePath(PathOrigin.ABSOLUTE, components)
    except ValueError as e:
        raise PathDerivationError(f"cannot derive a module path for {shader_file}: {e}") from e


class BuildOrchestrator:
    """Runs one build of a shader tree.

    Extensions are called in registration order at every lifecycle point.
    The first failure aborts the walk; no further hooks run. Artifacts
    already written stay where they are.

    Example:
        orchestrator = BuildOrchestrator(
            Path("shaders"),
            Path("build/shaders"),
            [BindingsExtension(bindings_root=Path("src/bindings"))],
        )
        result = orchestrator.run()
    """

    def __init__(
        self,
        shader_root: Path | str,
        output_dir: Path | str,
        extensions: Sequence[BuildExtensionProtocol] = (),
        *,
        compiler: ShaderCompiler | None = None,
        compile_options: CompileOptions | None = None,
        source_extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
        artifact_extension: str = DEFAULT_ARTIFACT_EXTENSION,
        publishers: Sequence[LocationPublisher] | None = None,
    ) -> None:
        self.shader_root = Path(shader_root)
        self.output_dir = Path(output_dir)
        self.extensions: list[BuildExtensionProtocol] = list(extensions)
        self.compiler = compiler
        self._compile_options = compile_options
        self.source_extensions = tuple(ext.lstrip(".") for ext in source_extensions)
        self.artifact_extension = artifact_extension.lstrip(".")
        self.publishers: list[LocationPublisher] = list(publishers) if publishers is not None else [EnvironmentPublisher()]

        self._artifacts: list[CompiledArtifact] = []
        self._touched: list[Path] = []

    def run(self) -> BuildResult:
        """Build every shader below the root.

        Raises:
            PathDerivationError: Root is not a directory, or a file cannot
                be mapped to a module path
            BuildIOError: A directory cannot be listed
            CompileError: The compiler failed for a module
            ExtensionError: An extension hook raised
        """
        if not self.shader_root.is_dir():
            raise PathDerivationError(f"shader root {self.shader_root} is not a directory")

        compiler = self.compiler
        if compiler is None:
            compiler = PassthroughCompiler(
                self.shader_root,
                self.output_dir,
                options=self._compile_options,
                source_extensions=self.source_extensions,
                artifact_extension=self.artifact_extension,
            )
            self.compiler = compiler

        self._artifacts = []
        self._touched = []

        try:
            self._call_all(
                LifecycleStage.INIT_ROOT,
                str(self.shader_root),
                lambda ext: self._init_extension(ext, compiler),
            )

            self._build_dir(self.shader_root, compiler)

            self._call_all(
                LifecycleStage.EXIT_ROOT,
                str(self.shader_root),
                lambda ext: ext.exit_root(self.shader_root, compiler),
            )

            location = BuildLocation(
                shader_root=self.shader_root,
                output_dir=self.output_dir,
                artifact_extension=compiler.artifact_extension,
            )
            artifacts = tuple(self._artifacts)
            for publisher in self.publishers:
                publisher.publish(location, artifacts)
        finally:
            self._close_extensions()

        logger.info("build complete", shaders=len(artifacts), output_dir=str(self.output_dir))
        return BuildResult(
            shader_root=self.shader_root,
            output_dir=self.output_dir,
            artifacts=artifacts,
            touched_files=tuple(self._touched),
            location=location,
        )

    def _init_extension(self, ext: BuildExtensionProtocol, compiler: ShaderCompiler) -> None:
        logger.debug("initializing extension", extension=ext.name)
        ext.init_root(self.shader_root, compiler)

    def _call_all(
        self,
        stage: LifecycleStage,
        subject: str,
        call: Callable[[BuildExtensionProtocol], None],
    ) -> None:
        for ext in self.extensions:
            try:
                call(ext)
            except Exception as e:
                raise ExtensionError(ext.name, stage, e, subject=subject) from e

    def _list_dir(self, directory: Path) -> tuple[list[Path], list[Path]]:
        """Sorted (files, directories) of one directory.

        Symlinked directories are not followed, so a link back up the tree
        cannot make the walk recurse forever.
        """
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
            files = [entry for entry in entries if entry.is_file()]
            dirs = []
            for entry in entries:
                if not entry.is_dir():
                    continue
                if entry.is_symlink():
                    logger.debug("skipping symlinked directory", path=str(entry))
                    continue
                dirs.append(entry)
        except OSError as e:
            raise BuildIOError(f"cannot read directory {directory}: {e}", directory) from e
        return files, dirs

    def _is_shader(self, path: Path) -> bool:
        return path.suffix.lstrip(".") in self.source_extensions and bool(path.suffix)

    def _build_dir(self, directory: Path, compiler: ShaderCompiler) -> None:
        files, dirs = self._list_dir(directory)

        for shader_file in files:
            if not self._is_shader(shader_file):
                logger.debug("skipping non-shader file", path=str(shader_file))
                continue
            self._build_file(shader_file, compiler)

        for subdir in dirs:
            logger.debug("entering module", path=str(subdir))
            self._call_all(LifecycleStage.ENTER_MODULE, str(subdir), lambda ext: ext.enter_module(subdir))
            self._build_dir(subdir, compiler)
            self._call_all(LifecycleStage.EXIT_MODULE, str(subdir), lambda ext: ext.exit_module(subdir))
            logger.debug("exited module", path=str(subdir))

    def _build_file(self, shader_file: Path, compiler: ShaderCompiler) -> None:
        module_path = derive_module_path(self.shader_root, shader_file)
        mangled = artifact_name(module_path)

        artifact = compiler.compile(module_path, mangled)

        expected = artifact_path(self.output_dir, mangled, compiler.artifact_extension)
        if artifact.path != expected:
            raise CompileError(module_path, f"compiler wrote {artifact.path}, expected {expected}")
        if not expected.is_file():
            raise CompileError(module_path, f"compiler reported success but {expected} does not exist")

        self._artifacts.append(artifact)
        self._touched.extend(artifact.touched_files)
        logger.info("built shader", module=str(module_path), artifact=expected.name)

        self._call_all(
            LifecycleStage.POST_BUILD,
            str(module_path),
            lambda ext: ext.post_build(module_path, expected, artifact.source_map),
        )

    def _close_extensions(self) -> None:
        """Call close() on every extension, even after a failure.

        Each call is individually try/excepted so one extension's failure
        does not prevent the others from releasing their resources. If the
        run already failed, cleanup errors are logged and the original
        error propagates; otherwise they are raised together.
        """
        pending_exc = sys.exc_info()[1]
        cleanup_errors: list[str] = []

        for ext in self.extensions:
            try:
                ext.close()
            except Exception as e:
                logger.warning(
                    "Extension cleanup failed",
                    extension=ext.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                cleanup_errors.append(f"{ext.name}: {type(e).__name__}: {e}")

        if cleanup_errors and pending_exc is None:
            raise BuildError(f"Extension cleanup failed: {'; '.join(cleanup_errors)}")


def build_shader_dir(
    shader_root: Path | str,
    output_dir: Path | str,
    extensions: Sequence[BuildExtensionProtocol] = (),
    **kwargs,
) -> BuildResult:
    """Build a shader tree in one call. Keyword arguments go to BuildOrchestrator."""
    return BuildOrchestrator(shader_root, output_dir, extensions, **kwargs).run()


def _extension_settings_with_profile(settings: BuildSettings) -> list[ExtensionSettings]:
    """Default the minifier's profile option to the build profile."""
    entries = []
    for entry in settings.extensions:
        if entry.plugin == "minifier" and "profile" not in entry.options:
            entry = entry.model_copy(update={"options": {**entry.options, "profile": settings.profile}})
        entries.append(entry)
    return entries


def build_from_settings(settings: BuildSettings, manager: ExtensionManager | None = None) -> BuildResult:
    """Build as described by loaded settings.

    Args:
        settings: Validated build settings
        manager: Extension manager to resolve extension names; defaults to
            one with the built-in and entry point extensions registered

    Raises:
        SettingsError: No output directory configured
        ExtensionConfigError: Unknown extension or invalid options
        BuildError: Any failure during the build itself
    """
    if manager is None:
        from wgslbuild.plugins.manager import ExtensionManager

        manager = ExtensionManager()
        manager.register_builtin_extensions()
        manager.load_entrypoint_extensions()

    output_dir = settings.resolved_output_dir()
    compiler = create_compiler(
        settings.compiler,
        settings.shader_root,
        output_dir,
        source_extensions=settings.source_extensions,
        artifact_extension=settings.artifact_extension,
    )
    extensions = manager.create_extensions(_extension_settings_with_profile(settings))

    publishers: list[LocationPublisher] = []
    if settings.publish_environment:
        publishers.append(EnvironmentPublisher())
    if settings.write_manifest:
        publishers.append(ManifestPublisher())

    return BuildOrchestrator(
        settings.shader_root,
        output_dir,
        extensions,
        compiler=compiler,
        source_extensions=settings.source_extensions,
        artifact_extension=settings.artifact_extension,
        publishers=publishers,
    ).run()
