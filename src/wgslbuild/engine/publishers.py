"""Publish where a finished build put things.

Out-of-process tooling (see wgslbuild.lookup) must find artifacts by module
path without re-running the build. The orchestrator returns the location
as part of BuildResult and hands it to each configured publisher; the
process environment is one sink, a manifest file another.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from wgslbuild.contracts import BuildIOError, CompiledArtifact

# Environment variables read by wgslbuild.lookup
SHADER_ROOT_ENV_VAR = "WGSL_BUILD_ROOT_PATH"
OUTPUT_DIR_ENV_VAR = "WGSL_BUILD_OUT_DIR"

MANIFEST_FILENAME = "wgslbuild_manifest.json"
MANIFEST_VERSION = 1


@dataclass(frozen=True)
class BuildLocation:
    """The single root-location value a build publishes."""

    shader_root: Path
    output_dir: Path
    artifact_extension: str


@runtime_checkable
class LocationPublisher(Protocol):
    def publish(self, location: BuildLocation, artifacts: Sequence[CompiledArtifact]) -> None: ...


class EnvironmentPublisher:
    """Writes the location into an environment mapping (os.environ by default)."""

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def publish(self, location: BuildLocation, artifacts: Sequence[CompiledArtifact]) -> None:
        self._environ[SHADER_ROOT_ENV_VAR] = str(location.shader_root)
        self._environ[OUTPUT_DIR_ENV_VAR] = str(location.output_dir)


class ManifestPublisher:
    """Writes ``wgslbuild_manifest.json`` into the output directory.

    Manifest shape:
        {
          "version": 1,
          "shader_root": "...",
          "output_dir": "...",
          "artifact_extension": "wgsl",
          "artifacts": {"package::a::b": "package__a__b__b", ...}
        }
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    def manifest_path(self, location: BuildLocation) -> Path:
        return self._path if self._path is not None else location.output_dir / MANIFEST_FILENAME

    def publish(self, location: BuildLocation, artifacts: Sequence[CompiledArtifact]) -> None:
        manifest = {
            "version": MANIFEST_VERSION,
            "shader_root": str(location.shader_root),
            "output_dir": str(location.output_dir),
            "artifact_extension": location.artifact_extension,
            "artifacts": {str(a.module_path): a.mangled_name for a in artifacts},
        }
        target = self.manifest_path(location)
        try:
            target.write_text(json.dumps(manifest, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as e:
            raise BuildIOError(f"cannot write manifest {target}: {e}", target) from e


def read_manifest(path: Path) -> Mapping[str, object]:
    """Load a manifest written by ManifestPublisher.

    Raises:
        BuildIOError: If it cannot be read or is not a version-1 manifest
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise BuildIOError(f"cannot read manifest {path}: {e}", path) from e
    if not isinstance(data, dict) or data.get("version") != MANIFEST_VERSION:
        raise BuildIOError(f"{path} is not a wgslbuild manifest (version {MANIFEST_VERSION})", path)
    return data
