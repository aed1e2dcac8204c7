"""Report source vs. built line counts for every shader.

Ordering:
    Register last so built sizes reflect every rewrite (e.g. minification).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from wgslbuild.contracts import ModulePath, SourceMap
from wgslbuild.core.logging import get_logger
from wgslbuild.core.naming import DEFAULT_SOURCE_EXTENSIONS, resolve_source_file
from wgslbuild.plugins.base import BaseExtension

if TYPE_CHECKING:
    from wgslbuild.core.compiler import ShaderCompiler

logger = get_logger(__name__)


@dataclass(frozen=True)
class SizeRow:
    module: str
    source_lines: int
    built_lines: int
    built_bytes: int


class SizeReportExtension(BaseExtension):
    """Collects one SizeRow per shader and logs a table at the end."""

    name: ClassVar[str] = "size_report"

    def __init__(self) -> None:
        self.rows: list[SizeRow] = []
        self._shader_root: Path | None = None
        self._source_extensions: tuple[str, ...] = DEFAULT_SOURCE_EXTENSIONS

    def init_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        self.rows = []
        self._shader_root = shader_root
        self._source_extensions = compiler.source_extensions

    def post_build(self, module_path: ModulePath, artifact_path: Path, source_map: SourceMap | None) -> None:
        if self._shader_root is None:
            raise RuntimeError("size_report post_build called before init_root")
        source = resolve_source_file(self._shader_root, module_path, self._source_extensions)
        if source is None:
            raise FileNotFoundError(f"no source file for `{module_path}` under {self._shader_root}")

        built = artifact_path.read_text(encoding="utf-8")
        self.rows.append(
            SizeRow(
                module=str(module_path),
                source_lines=len(source.read_text(encoding="utf-8").splitlines()),
                built_lines=len(built.splitlines()),
                built_bytes=len(built.encode("utf-8")),
            )
        )

    def render_table(self) -> str:
        lines = ["name | source_lines | built_lines | built_bytes", "-" * 52]
        lines.extend(f"{row.module} | {row.source_lines} | {row.built_lines} | {row.built_bytes}" for row in self.rows)
        return "\n".join(lines)

    def exit_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        logger.info("shader sizes\n" + self.render_table(), shaders=len(self.rows))
