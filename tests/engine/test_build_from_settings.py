# tests/engine/test_build_from_settings.py
"""Tests for building from loaded settings."""

import os
from pathlib import Path

import pytest

from wgslbuild.contracts import ExtensionConfigError, SettingsError
from wgslbuild.core.config import BuildSettings, ExtensionSettings
from wgslbuild.engine.orchestrator import build_from_settings
from wgslbuild.engine.publishers import MANIFEST_FILENAME, read_manifest
from wgslbuild.plugins.manager import ExtensionManager


@pytest.fixture
def manager() -> ExtensionManager:
    manager = ExtensionManager()
    manager.register_builtin_extensions()
    return manager


class TestBuildFromSettings:
    def test_minifier_follows_build_profile(self, shader_root: Path, output_dir: Path, manager: ExtensionManager) -> None:
        settings = BuildSettings(
            shader_root=shader_root,
            output_dir=output_dir,
            profile="release",
            extensions=[ExtensionSettings(plugin="minifier", options={"release_only": True})],
            publish_environment=False,
        )

        build_from_settings(settings, manager)

        blit = (output_dir / "package__blit__blit.wgsl").read_text(encoding="utf-8")
        assert "//" not in blit
        assert "\n" not in blit

    def test_debug_profile_skips_release_only_minifier(
        self, shader_root: Path, output_dir: Path, manager: ExtensionManager
    ) -> None:
        settings = BuildSettings(
            shader_root=shader_root,
            output_dir=output_dir,
            extensions=[ExtensionSettings(plugin="minifier", options={"release_only": True})],
            publish_environment=False,
        )

        build_from_settings(settings, manager)

        blit = (output_dir / "package__blit__blit.wgsl").read_text(encoding="utf-8")
        assert blit.startswith("// Full-screen blit")

    def test_explicit_profile_option_wins(self, shader_root: Path, output_dir: Path, manager: ExtensionManager) -> None:
        settings = BuildSettings(
            shader_root=shader_root,
            output_dir=output_dir,
            profile="release",
            extensions=[ExtensionSettings(plugin="minifier", options={"release_only": True, "profile": "debug"})],
            publish_environment=False,
        )

        build_from_settings(settings, manager)

        assert (output_dir / "package__blit__blit.wgsl").read_text(encoding="utf-8").startswith("//")

    def test_manifest_and_no_environment(self, shader_root: Path, output_dir: Path, manager: ExtensionManager) -> None:
        settings = BuildSettings(
            shader_root=shader_root,
            output_dir=output_dir,
            publish_environment=False,
            write_manifest=True,
        )

        result = build_from_settings(settings, manager)

        manifest = read_manifest(output_dir / MANIFEST_FILENAME)
        assert set(manifest["artifacts"]) == {str(a.module_path) for a in result.artifacts}
        assert "WGSL_BUILD_ROOT_PATH" not in os.environ

    def test_environment_published_by_default(self, shader_root: Path, output_dir: Path, manager: ExtensionManager) -> None:
        build_from_settings(BuildSettings(shader_root=shader_root, output_dir=output_dir), manager)
        assert os.environ["WGSL_BUILD_OUT_DIR"] == str(output_dir)

    def test_output_dir_from_out_dir_env(
        self, shader_root: Path, output_dir: Path, manager: ExtensionManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("OUT_DIR", str(output_dir))

        result = build_from_settings(BuildSettings(shader_root=shader_root, publish_environment=False), manager)

        assert result.output_dir == output_dir
        assert (output_dir / "package__blit__blit.wgsl").exists()

    def test_missing_output_dir(self, shader_root: Path, manager: ExtensionManager) -> None:
        with pytest.raises(SettingsError):
            build_from_settings(BuildSettings(shader_root=shader_root), manager)

    def test_unknown_extension(self, shader_root: Path, output_dir: Path, manager: ExtensionManager) -> None:
        settings = BuildSettings(
            shader_root=shader_root,
            output_dir=output_dir,
            extensions=[ExtensionSettings(plugin="optimizer")],
        )
        with pytest.raises(ExtensionConfigError, match="Unknown extension 'optimizer'"):
            build_from_settings(settings, manager)

    def test_extensions_run_in_configured_order(
        self, shader_root: Path, output_dir: Path, tmp_path: Path, manager: ExtensionManager
    ) -> None:
        settings = BuildSettings(
            shader_root=shader_root,
            output_dir=output_dir,
            profile="release",
            publish_environment=False,
            extensions=[
                ExtensionSettings(plugin="bindings", options={"bindings_root": str(tmp_path / "bindings")}),
                ExtensionSettings(plugin="minifier"),
            ],
        )

        build_from_settings(settings, manager)

        # Bindings ran before the minifier, so the embedded source is unminified
        blit_bindings = (tmp_path / "bindings" / "blit.py").read_text(encoding="utf-8")
        assert "// Full-screen blit" in blit_bindings
        assert "\n" not in (output_dir / "package__blit__blit.wgsl").read_text(encoding="utf-8")
