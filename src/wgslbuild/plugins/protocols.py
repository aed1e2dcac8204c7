"""Extension protocol: the contract every build extension implements.

This protocol is used for type checking and for isinstance() checks on
already-instantiated extensions. Discovery uses BaseExtension subclasses
(see plugins/base.py).

Lifecycle (all calls on the build thread, one extension at a time):
    init_root -> [enter_module -> ... post_build ... -> exit_module]* -> exit_root
    close() always runs last, after success or failure.

Ordering:
    Within each lifecycle point, extensions run in registration order and
    never concurrently. A later extension's post_build therefore sees the
    artifact as rewritten by earlier ones. Extensions that rewrite artifacts
    document where they belong in the order.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from wgslbuild.contracts import ModulePath, SourceMap
    from wgslbuild.core.compiler import ShaderCompiler


@runtime_checkable
class BuildExtensionProtocol(Protocol):
    """Stateful observer called at fixed points of a shader build.

    Hooks signal failure by raising. The orchestrator wraps the exception in
    ExtensionError with this extension's name and the lifecycle stage, and
    stops the build; no further hooks run for any extension.
    """

    name: str

    def init_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        """Called once before any directory is entered.

        The only point where the compiler handle may be reconfigured
        (e.g. selecting a mangler), since no path has been compiled yet.
        """
        ...

    def enter_module(self, dir_path: Path) -> None:
        """Called before recursing into a non-root directory."""
        ...

    def exit_module(self, dir_path: Path) -> None:
        """Called after a non-root directory's whole subtree is done."""
        ...

    def post_build(self, module_path: ModulePath, artifact_path: Path, source_map: SourceMap | None) -> None:
        """Called after each shader is compiled to artifact_path."""
        ...

    def exit_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        """Called once after the entire tree has been processed."""
        ...

    def close(self) -> None:
        """Release resources.

        Not a lifecycle hook: called for every registered extension once
        the build ends, successful or not. Must be safe to call when
        init_root never ran.
        """
        ...
