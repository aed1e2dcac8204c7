# tests/engine/test_orchestrator.py
"""Tests for BuildOrchestrator traversal and extension lifecycle."""

import json
from pathlib import Path

import pytest

from tests.fixtures.extensions import FailingCloseExtension, FailingExtension, RecordingExtension
from tests.fixtures.shaders import SIMPLE_SHADER, write_tree
from wgslbuild.contracts import (
    BuildError,
    CompiledArtifact,
    CompileError,
    ExtensionError,
    LifecycleStage,
    ManglerKind,
    ModulePath,
    PathDerivationError,
)
from wgslbuild.core.compiler import BaseCompiler, PassthroughCompiler, ShaderCompiler
from wgslbuild.core.logging import configure_logging
from wgslbuild.engine.orchestrator import BuildOrchestrator, build_shader_dir, derive_module_path
from wgslbuild.engine.publishers import EnvironmentPublisher


def _run(root: Path, out: Path, *extensions: RecordingExtension, **kwargs) -> object:
    kwargs.setdefault("publishers", [])
    return BuildOrchestrator(root, out, list(extensions), **kwargs).run()


class TestDeriveModulePath:
    def test_nested_file(self, tmp_path: Path) -> None:
        path = derive_module_path(tmp_path, tmp_path / "sim" / "util" / "simple.wgsl")
        assert path == ModulePath.from_components("sim", "util", "simple")

    def test_top_level_file(self, tmp_path: Path) -> None:
        assert derive_module_path(tmp_path, tmp_path / "blit.wesl") == ModulePath.from_components("blit")

    def test_file_outside_root(self, tmp_path: Path) -> None:
        with pytest.raises(PathDerivationError, match="not inside shader root"):
            derive_module_path(tmp_path / "shaders", tmp_path / "other" / "a.wgsl")


class TestLifecycleOrdering:
    """Extension call sequence across the walk."""

    def test_two_extensions_one_subdirectory(self, tmp_path: Path, output_dir: Path) -> None:
        root = write_tree(tmp_path / "shaders", {"sub/b.wgsl": SIMPLE_SHADER})
        calls: list[tuple[str, str]] = []

        _run(root, output_dir, RecordingExtension("E1", calls), RecordingExtension("E2", calls))

        assert calls == [
            ("E1", "init_root"),
            ("E2", "init_root"),
            ("E1", "enter_module"),
            ("E2", "enter_module"),
            ("E1", "post_build"),
            ("E2", "post_build"),
            ("E1", "exit_module"),
            ("E2", "exit_module"),
            ("E1", "exit_root"),
            ("E2", "exit_root"),
        ]

    def test_files_before_directories(self, tmp_path: Path, output_dir: Path) -> None:
        # "a_dir" sorts before "z.wgsl", files still come first
        root = write_tree(tmp_path / "shaders", {"a_dir/inner.wgsl": SIMPLE_SHADER, "z.wgsl": SIMPLE_SHADER})
        calls: list[tuple[str, str]] = []
        ext = RecordingExtension("E", calls)

        _run(root, output_dir, ext)

        hooks = [hook for _, hook in calls]
        assert hooks.index("post_build") < hooks.index("enter_module")
        assert ext.details[1] == ("post_build", ModulePath.from_components("z"))

    def test_root_never_entered(self, shader_root: Path, output_dir: Path) -> None:
        ext = RecordingExtension("E", [])

        _run(shader_root, output_dir, ext)

        entered = [detail for hook, detail in ext.details if hook in ("enter_module", "exit_module")]
        assert shader_root not in entered
        assert entered == [
            shader_root / "sim",
            shader_root / "sim" / "util",
            shader_root / "sim" / "util",
            shader_root / "sim",
        ]

    def test_full_sequence_for_nested_tree(self, shader_root: Path, output_dir: Path) -> None:
        ext = RecordingExtension("E", [])

        _run(shader_root, output_dir, ext)

        assert ext.details == [
            ("init_root", shader_root),
            ("post_build", ModulePath.from_components("blit")),
            ("enter_module", shader_root / "sim"),
            ("post_build", ModulePath.from_components("sim", "particles")),
            ("enter_module", shader_root / "sim" / "util"),
            ("post_build", ModulePath.from_components("sim", "util", "simple")),
            ("exit_module", shader_root / "sim" / "util"),
            ("exit_module", shader_root / "sim"),
            ("exit_root", shader_root),
        ]

    def test_entries_sorted_by_name(self, tmp_path: Path, output_dir: Path) -> None:
        root = write_tree(
            tmp_path / "shaders",
            {"c.wgsl": SIMPLE_SHADER, "a.wgsl": SIMPLE_SHADER, "b.wesl": SIMPLE_SHADER},
        )
        ext = RecordingExtension("E", [])

        _run(root, output_dir, ext)

        built = [detail for hook, detail in ext.details if hook == "post_build"]
        assert built == [ModulePath.from_components(n) for n in ("a", "b", "c")]

    def test_non_shader_files_skipped(self, shader_root: Path, output_dir: Path) -> None:
        ext = RecordingExtension("E", [])

        result = _run(shader_root, output_dir, ext)

        built = [detail for hook, detail in ext.details if hook == "post_build"]
        assert ModulePath.from_components("notes") not in built
        assert len(result.artifacts) == 3

    def test_empty_directory_still_entered(self, tmp_path: Path, output_dir: Path) -> None:
        root = tmp_path / "shaders"
        (root / "empty").mkdir(parents=True)
        calls: list[tuple[str, str]] = []

        _run(root, output_dir, RecordingExtension("E", calls))

        assert [hook for _, hook in calls] == ["init_root", "enter_module", "exit_module", "exit_root"]


class TestArtifacts:
    """Artifacts land at their mangled paths."""

    def test_walk_without_extensions(self, tmp_path: Path, output_dir: Path) -> None:
        root = write_tree(tmp_path / "shaders", {"a.wgsl": "fn a() {}\n", "sub/b.wgsl": "fn b() {}\n"})

        result = build_shader_dir(root, output_dir, publishers=[])

        a_artifact = output_dir / "package__a__a.wgsl"
        b_artifact = output_dir / "package__sub__b__b.wgsl"
        assert a_artifact.read_text(encoding="utf-8") == "fn a() {}\n"
        assert b_artifact.read_text(encoding="utf-8") == "fn b() {}\n"
        assert [a.path for a in result.artifacts] == [a_artifact, b_artifact]

    def test_result_records_touched_files(self, shader_root: Path, output_dir: Path) -> None:
        result = _run(shader_root, output_dir)

        assert result.touched_files == (
            shader_root / "blit.wgsl",
            shader_root / "sim" / "particles.wesl",
            shader_root / "sim" / "util" / "simple.wgsl",
        )

    def test_artifact_for(self, shader_root: Path, output_dir: Path) -> None:
        result = _run(shader_root, output_dir)

        artifact = result.artifact_for(ModulePath.from_components("sim", "particles"))
        assert artifact is not None
        assert artifact.mangled_name == "package__sim__particles__particles"
        assert result.artifact_for(ModulePath.from_components("missing")) is None

    def test_post_build_receives_artifact_path(self, shader_root: Path, output_dir: Path) -> None:
        seen: list[Path] = []

        class PathCollector(RecordingExtension):
            def post_build(self, module_path, artifact_path, source_map) -> None:
                seen.append(artifact_path)
                assert source_map is not None
                assert source_map.module_path == module_path

        _run(shader_root, output_dir, PathCollector("paths", []))

        assert seen == [
            output_dir / "package__blit__blit.wgsl",
            output_dir / "package__sim__particles__particles.wgsl",
            output_dir / "package__sim__util__simple__simple.wgsl",
        ]

    def test_custom_extensions(self, tmp_path: Path, output_dir: Path) -> None:
        root = write_tree(tmp_path / "shaders", {"a.glsl": "void main() {}", "b.wgsl": SIMPLE_SHADER})

        result = _run(root, output_dir, source_extensions=("glsl",), artifact_extension="txt")

        assert [a.path for a in result.artifacts] == [output_dir / "package__a__a.txt"]

    def test_symlinked_directories_not_followed(self, tmp_path: Path, output_dir: Path) -> None:
        root = write_tree(tmp_path / "shaders", {"a.wgsl": SIMPLE_SHADER, "sub/b.wgsl": SIMPLE_SHADER})
        (root / "loop").symlink_to(root, target_is_directory=True)
        (root / "sub_link").symlink_to(root / "sub", target_is_directory=True)
        ext = RecordingExtension("E", [])

        result = _run(root, output_dir, ext)

        assert [a.module_path for a in result.artifacts] == [
            ModulePath.from_components("a"),
            ModulePath.from_components("sub", "b"),
        ]
        entered = [detail for hook, detail in ext.details if hook == "enter_module"]
        assert entered == [root / "sub"]

    def test_later_extensions_see_earlier_rewrites(self, shader_root: Path, output_dir: Path) -> None:
        observed: list[str] = []

        class Rewriter(RecordingExtension):
            def post_build(self, module_path, artifact_path, source_map) -> None:
                artifact_path.write_text("rewritten", encoding="utf-8")

        class Reader(RecordingExtension):
            def post_build(self, module_path, artifact_path, source_map) -> None:
                observed.append(artifact_path.read_text(encoding="utf-8"))

        _run(shader_root, output_dir, Rewriter("rewriter", []), Reader("reader", []))

        assert observed == ["rewritten"] * 3


class _WrongPlaceCompiler(BaseCompiler):
    """Writes the artifact somewhere other than the mangled path."""

    def compile(self, module_path: ModulePath, mangled_name: str) -> CompiledArtifact:
        target = self.output_dir / "elsewhere.wgsl"
        target.write_text("x", encoding="utf-8")
        return CompiledArtifact(module_path=module_path, mangled_name=mangled_name, path=target)


class TestCompilerHandle:
    def test_default_compiler_is_passthrough(self, shader_root: Path, output_dir: Path) -> None:
        orchestrator = BuildOrchestrator(shader_root, output_dir, publishers=[])
        orchestrator.run()
        assert isinstance(orchestrator.compiler, PassthroughCompiler)

    def test_extension_selects_mangler_during_init_root(self, shader_root: Path, output_dir: Path) -> None:
        class EscapeSelector(RecordingExtension):
            def init_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
                compiler.mangler = ManglerKind.ESCAPE

        compiler = PassthroughCompiler(shader_root, output_dir)
        _run(shader_root, output_dir, EscapeSelector("escape", []), compiler=compiler)

        assert compiler.mangler is ManglerKind.ESCAPE

    def test_artifact_at_unexpected_path_rejected(self, shader_root: Path, output_dir: Path) -> None:
        with pytest.raises(CompileError, match="expected"):
            _run(shader_root, output_dir, compiler=_WrongPlaceCompiler(shader_root, output_dir))


class TestFailures:
    """The first failure aborts the build."""

    def test_init_root_failure_stops_everything(self, shader_root: Path, output_dir: Path) -> None:
        calls: list[tuple[str, str]] = []
        first = FailingExtension("first", calls, LifecycleStage.INIT_ROOT)
        second = RecordingExtension("second", calls)

        with pytest.raises(ExtensionError) as exc_info:
            _run(shader_root, output_dir, first, second)

        error = exc_info.value
        assert error.extension_name == "first"
        assert error.stage is LifecycleStage.INIT_ROOT
        assert isinstance(error.__cause__, RuntimeError)
        assert error.cause is error.__cause__
        assert calls == [("first", "init_root")]
        assert not any(hook in ("enter_module", "post_build", "exit_module") for _, hook in calls)

    def test_initialization_logged_only_for_reached_extensions(
        self, shader_root: Path, output_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(json_output=True, level="DEBUG")
        calls: list[tuple[str, str]] = []

        with pytest.raises(ExtensionError):
            _run(
                shader_root,
                output_dir,
                FailingExtension("first", calls, LifecycleStage.INIT_ROOT),
                RecordingExtension("second", calls),
            )

        records = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.startswith("{")]
        initialized = [r["extension"] for r in records if r["event"] == "initializing extension"]
        assert initialized == ["first"]

    def test_second_extension_failing_init_root(self, shader_root: Path, output_dir: Path) -> None:
        calls: list[tuple[str, str]] = []

        with pytest.raises(ExtensionError) as exc_info:
            _run(
                shader_root,
                output_dir,
                RecordingExtension("first", calls),
                FailingExtension("second", calls, LifecycleStage.INIT_ROOT),
            )

        assert exc_info.value.extension_name == "second"
        assert calls == [("first", "init_root"), ("second", "init_root")]

    def test_post_build_failure_names_module(self, shader_root: Path, output_dir: Path) -> None:
        calls: list[tuple[str, str]] = []
        failing = FailingExtension("checker", calls, LifecycleStage.POST_BUILD, ValueError("bad"))

        with pytest.raises(ExtensionError) as exc_info:
            _run(shader_root, output_dir, failing)

        assert exc_info.value.stage is LifecycleStage.POST_BUILD
        assert exc_info.value.subject == "package::blit"
        assert "Extension checker failed during post_build (package::blit): bad" == str(exc_info.value)
        assert calls[-1] == ("checker", "post_build")

    def test_enter_module_failure_subject_is_directory(self, shader_root: Path, output_dir: Path) -> None:
        with pytest.raises(ExtensionError) as exc_info:
            _run(shader_root, output_dir, FailingExtension("dirs", [], LifecycleStage.ENTER_MODULE))

        assert exc_info.value.stage is LifecycleStage.ENTER_MODULE
        assert exc_info.value.subject == str(shader_root / "sim")

    def test_close_runs_for_all_extensions_after_failure(self, shader_root: Path, output_dir: Path) -> None:
        calls: list[tuple[str, str]] = []
        first = RecordingExtension("first", calls)
        failing = FailingExtension("failing", calls, LifecycleStage.EXIT_MODULE)
        last = RecordingExtension("last", calls)

        with pytest.raises(ExtensionError):
            _run(shader_root, output_dir, first, failing, last)

        assert (first.closed, failing.closed, last.closed) == (1, 1, 1)

    def test_close_runs_after_success(self, shader_root: Path, output_dir: Path) -> None:
        ext = RecordingExtension("E", [])
        _run(shader_root, output_dir, ext)
        assert ext.closed == 1

    def test_compile_error_propagates_unwrapped(self, tmp_path: Path, output_dir: Path) -> None:
        root = write_tree(tmp_path / "shaders", {"a.wgsl": "fn a() {}"})
        ext = RecordingExtension("E", [])

        class BrokenCompiler(BaseCompiler):
            def compile(self, module_path: ModulePath, mangled_name: str) -> CompiledArtifact:
                raise CompileError(module_path, "syntax error")

        with pytest.raises(CompileError, match="syntax error"):
            _run(root, output_dir, ext, compiler=BrokenCompiler(root, output_dir))
        assert ext.closed == 1
        assert "post_build" not in [hook for hook, _ in ext.details]

    def test_root_not_a_directory(self, tmp_path: Path, output_dir: Path) -> None:
        calls: list[tuple[str, str]] = []
        with pytest.raises(PathDerivationError):
            _run(tmp_path / "missing", output_dir, RecordingExtension("E", calls))
        assert calls == []

    def test_cleanup_failure_after_success_raises(self, shader_root: Path, output_dir: Path) -> None:
        other = RecordingExtension("other", [])

        with pytest.raises(BuildError, match="Extension cleanup failed: leaky: OSError"):
            _run(shader_root, output_dir, FailingCloseExtension("leaky", []), other)
        assert other.closed == 1

    def test_cleanup_failure_does_not_mask_build_error(self, shader_root: Path, output_dir: Path) -> None:
        with pytest.raises(ExtensionError) as exc_info:
            _run(
                shader_root,
                output_dir,
                FailingCloseExtension("leaky", []),
                FailingExtension("failing", [], LifecycleStage.EXIT_ROOT),
            )
        assert exc_info.value.extension_name == "failing"


class TestPublishing:
    """Build location hand-off."""

    def test_default_publishes_environment(self, shader_root: Path, output_dir: Path) -> None:
        import os

        BuildOrchestrator(shader_root, output_dir).run()

        assert os.environ["WGSL_BUILD_ROOT_PATH"] == str(shader_root)
        assert os.environ["WGSL_BUILD_OUT_DIR"] == str(output_dir)

    def test_result_carries_location(self, shader_root: Path, output_dir: Path) -> None:
        environ: dict[str, str] = {}

        result = BuildOrchestrator(shader_root, output_dir, publishers=[EnvironmentPublisher(environ)]).run()

        assert result.location.shader_root == shader_root
        assert result.location.output_dir == output_dir
        assert result.location.artifact_extension == "wgsl"
        assert environ == {"WGSL_BUILD_ROOT_PATH": str(shader_root), "WGSL_BUILD_OUT_DIR": str(output_dir)}

    def test_nothing_published_on_failure(self, shader_root: Path, output_dir: Path) -> None:
        environ: dict[str, str] = {}

        with pytest.raises(ExtensionError):
            BuildOrchestrator(
                shader_root,
                output_dir,
                [FailingExtension("failing", [], LifecycleStage.EXIT_ROOT)],
                publishers=[EnvironmentPublisher(environ)],
            ).run()

        assert environ == {}
