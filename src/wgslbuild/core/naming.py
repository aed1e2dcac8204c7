"""Artifact naming shared by the orchestrator and artifact lookup.

The orchestrator needs to know where the compiler just wrote an artifact;
lookup tooling needs to find it later from the module path alone, without
re-running the build. Both go through these functions so the two can never
disagree.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from wgslbuild.contracts.module_path import ModulePath
from wgslbuild.core.mangling import mangle

DEFAULT_ARTIFACT_EXTENSION = "wgsl"
DEFAULT_SOURCE_EXTENSIONS: tuple[str, ...] = ("wesl", "wgsl")


def artifact_name(module_path: ModulePath) -> str:
    """Mangled identifier a shader's artifact is stored under.

    The item name is the module's last component (the file stem).

    Raises:
        ValueError: If module_path is the root module
    """
    if module_path.last is None:
        raise ValueError("the root module has no artifact")
    return mangle(module_path, module_path.last)


def artifact_path(output_dir: Path | str, mangled_name: str, extension: str = DEFAULT_ARTIFACT_EXTENSION) -> Path:
    """Deterministic artifact location: ``{output_dir}/{mangled_name}.{extension}``."""
    return Path(output_dir) / f"{mangled_name}.{extension.lstrip('.')}"


def module_artifact_path(
    output_dir: Path | str,
    module_path: ModulePath,
    extension: str = DEFAULT_ARTIFACT_EXTENSION,
) -> Path:
    return artifact_path(output_dir, artifact_name(module_path), extension)


def source_candidates(
    shader_root: Path | str,
    module_path: ModulePath,
    extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
) -> list[Path]:
    """Possible source files for a module, in extension preference order."""
    if module_path.is_root:
        return []
    base = Path(shader_root).joinpath(*module_path.components)
    return [base.with_name(f"{base.name}.{ext.lstrip('.')}") for ext in extensions]


def resolve_source_file(
    shader_root: Path | str,
    module_path: ModulePath,
    extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
) -> Path | None:
    """First existing source file for a module, or None."""
    for candidate in source_candidates(shader_root, module_path, extensions):
        if candidate.is_file():
            return candidate
    return None
