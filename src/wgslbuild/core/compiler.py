"""Shader compiler contract and the bundled implementations.

The orchestrator treats the compiler as a black box: given a module path
and the mangled artifact name, it must leave an artifact at
``artifact_path(output_dir, mangled_name, artifact_extension)`` and report
what it read.

Implementations:
- PassthroughCompiler: copies the module's source file as the artifact.
  Suitable for trees of self-contained WGSL.
- CommandCompiler: runs an external compiler executable per module.

The compiler handle is shared across the whole walk. Extensions may change
``mangler`` during init_root only; after that it is read-only.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

from wgslbuild.contracts import (
    BuildIOError,
    CompiledArtifact,
    CompileError,
    ManglerKind,
    ModulePath,
    SourceMap,
)
from wgslbuild.core.logging import get_logger
from wgslbuild.core.naming import (
    DEFAULT_ARTIFACT_EXTENSION,
    DEFAULT_SOURCE_EXTENSIONS,
    artifact_path,
    resolve_source_file,
    source_candidates,
)

if TYPE_CHECKING:
    from wgslbuild.core.config import CompilerSettings

logger = get_logger(__name__)

# Placeholders available in CommandCompiler argument templates
COMMAND_PLACEHOLDERS = frozenset({"root", "module", "source", "output", "mangler", "name"})


class CompileOptions(BaseModel):
    """Options forwarded to every compile call."""

    model_config = {"frozen": True, "extra": "forbid"}

    use_sourcemap: bool = True


@runtime_checkable
class ShaderCompiler(Protocol):
    """Contract between the orchestrator and a shader compiler."""

    shader_root: Path
    output_dir: Path
    artifact_extension: str
    source_extensions: tuple[str, ...]
    options: CompileOptions
    mangler: ManglerKind

    def compile(self, module_path: ModulePath, mangled_name: str) -> CompiledArtifact:
        """Compile one module and write its artifact.

        Raises:
            CompileError: If the module cannot be compiled
            BuildIOError: If the artifact cannot be written
        """
        ...


class BaseCompiler(ABC):
    """Shared plumbing for the bundled compilers."""

    def __init__(
        self,
        shader_root: Path | str,
        output_dir: Path | str,
        *,
        options: CompileOptions | None = None,
        source_extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
        artifact_extension: str = DEFAULT_ARTIFACT_EXTENSION,
    ) -> None:
        self.shader_root = Path(shader_root)
        self.output_dir = Path(output_dir)
        self.options = options if options is not None else CompileOptions()
        self.source_extensions = tuple(ext.lstrip(".") for ext in source_extensions)
        self.artifact_extension = artifact_extension.lstrip(".")
        self.mangler = ManglerKind.NONE

    @abstractmethod
    def compile(self, module_path: ModulePath, mangled_name: str) -> CompiledArtifact: ...

    def _source_for(self, module_path: ModulePath) -> Path:
        source = resolve_source_file(self.shader_root, module_path, self.source_extensions)
        if source is None:
            tried = ", ".join(str(p) for p in source_candidates(self.shader_root, module_path, self.source_extensions))
            raise CompileError(module_path, f"no source file found (tried: {tried})")
        return source

    def _artifact_path(self, mangled_name: str) -> Path:
        return artifact_path(self.output_dir, mangled_name, self.artifact_extension)

    def _write_artifact(self, target: Path, text: str) -> None:
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise BuildIOError(f"cannot write artifact {target}: {e}", target) from e


class PassthroughCompiler(BaseCompiler):
    """Writes each module's source unchanged as its artifact.

    Produces an identity source map when ``options.use_sourcemap`` is set.
    """

    def compile(self, module_path: ModulePath, mangled_name: str) -> CompiledArtifact:
        source = self._source_for(module_path)
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise BuildIOError(f"cannot read shader {source}: {e}", source) from e

        target = self._artifact_path(mangled_name)
        self._write_artifact(target, text)

        source_map = None
        if self.options.use_sourcemap:
            source_map = SourceMap.identity(module_path, source, len(text.splitlines()))

        return CompiledArtifact(
            module_path=module_path,
            mangled_name=mangled_name,
            path=target,
            source_map=source_map,
            touched_files=(source,),
        )


class CommandCompiler(BaseCompiler):
    """Runs an external compiler executable for every module.

    The command is an argv template. Each argument is formatted with:

        {root}     shader root directory
        {module}   module path ("package::a::b")
        {source}   resolved source file
        {output}   artifact path the orchestrator expects
        {mangler}  selected ManglerKind value
        {name}     mangled artifact name

    If no argument references ``{output}``, the command's stdout becomes the
    artifact. A non-zero exit status raises CompileError with stderr.

    Example:
        CommandCompiler(root, out, command=["wesl", "compile", "--root", "{root}", "{module}"])
    """

    def __init__(self, shader_root: Path | str, output_dir: Path | str, *, command: Sequence[str], **kwargs) -> None:
        super().__init__(shader_root, output_dir, **kwargs)
        if not command:
            raise ValueError("CommandCompiler requires a non-empty command")
        self.command = tuple(command)
        self._writes_output = any("{output}" in arg for arg in self.command)

    def build_argv(self, module_path: ModulePath, mangled_name: str, source: Path) -> list[str]:
        values = {
            "root": str(self.shader_root),
            "module": str(module_path),
            "source": str(source),
            "output": str(self._artifact_path(mangled_name)),
            "mangler": self.mangler.value,
            "name": mangled_name,
        }
        return [arg.format(**values) for arg in self.command]

    def compile(self, module_path: ModulePath, mangled_name: str) -> CompiledArtifact:
        source = self._source_for(module_path)
        target = self._artifact_path(mangled_name)
        argv = self.build_argv(module_path, mangled_name, source)
        logger.debug("running shader compiler", argv=argv)

        try:
            completed = subprocess.run(
                argv,
                cwd=self.shader_root,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CompileError(module_path, f"cannot run compiler {argv[0]!r}: {e}") from e

        if completed.returncode != 0:
            raise CompileError(
                module_path,
                f"compiler exited with status {completed.returncode}",
                stderr=completed.stderr,
            )

        if not self._writes_output:
            self._write_artifact(target, completed.stdout)
        elif not target.is_file():
            raise CompileError(module_path, f"compiler did not write {target}", stderr=completed.stderr)

        return CompiledArtifact(
            module_path=module_path,
            mangled_name=mangled_name,
            path=target,
            source_map=None,
            touched_files=(source,),
        )


def create_compiler(
    settings: CompilerSettings,
    shader_root: Path | str,
    output_dir: Path | str,
    *,
    source_extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
    artifact_extension: str = DEFAULT_ARTIFACT_EXTENSION,
) -> BaseCompiler:
    """Instantiate the compiler selected in settings."""
    options = CompileOptions(use_sourcemap=settings.use_sourcemap)
    if settings.kind == "command":
        # CompilerSettings validation guarantees a command for this kind
        assert settings.command is not None
        return CommandCompiler(
            shader_root,
            output_dir,
            command=settings.command,
            options=options,
            source_extensions=source_extensions,
            artifact_extension=artifact_extension,
        )
    return PassthroughCompiler(
        shader_root,
        output_dir,
        options=options,
        source_extensions=source_extensions,
        artifact_extension=artifact_extension,
    )
