"""Compiled artifact contracts.

A CompiledArtifact is written once by the orchestrator's call into the
compiler and then handed to every extension's post_build hook. Extensions
may rewrite the file at ``path`` in place; the record itself is frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wgslbuild.contracts.module_path import ModulePath


@dataclass(frozen=True)
class SourceSpan:
    """A 1-based line in an original source file."""

    file: Path
    line: int


@dataclass(frozen=True)
class SourceMap:
    """Correlates lines of a compiled artifact back to original source.

    ``lines[i]`` is the origin of generated line ``i + 1``, or None for
    lines the compiler synthesized.
    """

    module_path: ModulePath
    source_file: Path
    lines: tuple[SourceSpan | None, ...] = ()

    @classmethod
    def identity(cls, module_path: ModulePath, source_file: Path, line_count: int) -> SourceMap:
        """Source map for an artifact that is a line-for-line copy of its source."""
        return cls(
            module_path=module_path,
            source_file=source_file,
            lines=tuple(SourceSpan(source_file, n) for n in range(1, line_count + 1)),
        )

    def lookup(self, generated_line: int) -> SourceSpan | None:
        """Original span for a 1-based generated line, if known."""
        if generated_line < 1 or generated_line > len(self.lines):
            return None
        return self.lines[generated_line - 1]


@dataclass(frozen=True)
class CompiledArtifact:
    """Output of compiling one shader module.

    Attributes:
        module_path: Module that was compiled
        mangled_name: Flat identifier the artifact is stored under
        path: Artifact location ({output_dir}/{mangled_name}.{ext})
        source_map: Optional line mapping back to the sources
        touched_files: Files read while compiling (rebuild triggers)
    """

    module_path: ModulePath
    mangled_name: str
    path: Path
    source_map: SourceMap | None = None
    touched_files: tuple[Path, ...] = field(default_factory=tuple)
