"""Find built shader artifacts by module path after a build.

Runtime code and later build steps name a shader the way it is laid out
below the shader root ("lighting::pbr") and get back the artifact the
orchestrator wrote for it. The roots come from the locations a build
published (see wgslbuild.engine.publishers) unless passed explicitly.

Example:
    from wgslbuild.lookup import include_shader

    PBR_SHADER = include_shader("lighting::pbr")
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from wgslbuild.contracts import LookupFailure, ModulePath, PathOrigin
from wgslbuild.contracts.module_path import SEPARATOR
from wgslbuild.core.naming import (
    DEFAULT_ARTIFACT_EXTENSION,
    DEFAULT_SOURCE_EXTENSIONS,
    module_artifact_path,
    resolve_source_file,
)
from wgslbuild.engine.publishers import OUTPUT_DIR_ENV_VAR, SHADER_ROOT_ENV_VAR


def _published_dir(explicit: Path | str | None, env_var: str) -> Path:
    if explicit is not None:
        return Path(explicit)
    value = os.environ.get(env_var)
    if not value:
        raise LookupFailure(f"${env_var} is not set; run a wgslbuild build first so it publishes its locations")
    return Path(value)


def parse_import_path(import_path: str) -> ModulePath:
    """Validate a shader import path and turn it into a module path.

    Raises:
        LookupFailure: If the path is empty, has empty components, or starts
            with the redundant ``package`` prefix
    """
    if not import_path.strip():
        raise LookupFailure("the shader import path must be non-empty")

    parts = [part.strip() for part in import_path.split(SEPARATOR)]
    if parts[0] == PathOrigin.ABSOLUTE.value:
        raise LookupFailure(
            f"`{import_path}`: path to module is already based on root (package) so there is no need to specify it"
        )
    if any(not part for part in parts):
        raise LookupFailure(f"`{import_path}` has an empty path component")

    try:
        return ModulePath(PathOrigin.ABSOLUTE, tuple(parts))
    except ValueError as e:
        raise LookupFailure(f"`{import_path}` is not a valid shader path: {e}") from e


def _missing_shader_message(shader_root: Path, module_path: ModulePath) -> str:
    """Explain which part of a module path does not exist."""
    name = module_path.last
    if shader_root.joinpath(*module_path.components).is_dir():
        return f"`{name}` is a module not a shader file (add `::` and the shader name to the module path)"

    # Deepest existing directory component
    existing = 0
    for i in range(1, len(module_path.components)):
        if shader_root.joinpath(*module_path.components[:i]).is_dir():
            existing = i
        else:
            break
    if existing == 0:
        return f"shader `{name}` does not exist (no module `{module_path.components[0]}` under {shader_root})"
    last_found = SEPARATOR.join(module_path.components[:existing])
    return f"shader `{name}` does not exist (`{last_found}` is the last component of the path that exists)"


def locate_shader(
    import_path: str,
    shader_root: Path | str | None = None,
    output_dir: Path | str | None = None,
    *,
    source_extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
    artifact_extension: str = DEFAULT_ARTIFACT_EXTENSION,
) -> Path:
    """Path of the artifact built for ``import_path``.

    Args:
        import_path: Module path below the shader root, e.g. "lighting::pbr"
        shader_root: Shader source root; defaults to $WGSL_BUILD_ROOT_PATH
        output_dir: Artifact directory; defaults to $WGSL_BUILD_OUT_DIR

    Raises:
        LookupFailure: If the path is invalid, names a module directory or a
            missing shader, or the shader has not been built
    """
    module_path = parse_import_path(import_path)
    root = _published_dir(shader_root, SHADER_ROOT_ENV_VAR)
    out = _published_dir(output_dir, OUTPUT_DIR_ENV_VAR)

    if resolve_source_file(root, module_path, source_extensions) is None:
        raise LookupFailure(_missing_shader_message(root, module_path))

    artifact = module_artifact_path(out, module_path, artifact_extension)
    if not artifact.is_file():
        raise LookupFailure(f"shader `{module_path}` has no artifact at {artifact}; rebuild the shaders")
    return artifact


def include_shader(
    import_path: str,
    shader_root: Path | str | None = None,
    output_dir: Path | str | None = None,
    **kwargs,
) -> str:
    """Text of the artifact built for ``import_path``. See locate_shader."""
    artifact = locate_shader(import_path, shader_root, output_dir, **kwargs)
    try:
        return artifact.read_text(encoding="utf-8")
    except OSError as e:
        raise LookupFailure(f"cannot read {artifact}: {e}") from e
