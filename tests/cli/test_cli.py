# tests/cli/test_cli.py
"""Tests for the wgslbuild CLI."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from wgslbuild.cli import app

# Click 8.2+ keeps stderr separate on result.stderr; result.output holds both
runner = CliRunner()


def _write_settings(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def settings_file(tmp_path: Path, shader_root: Path, output_dir: Path) -> Path:
    return _write_settings(
        tmp_path / "settings.yaml",
        f"shader_root: {shader_root}\noutput_dir: {output_dir}\npublish_environment: false\n",
    )


class TestCLIBasics:
    """Basic CLI functionality."""

    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "wgslbuild version" in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("build", "locate", "mangle", "demangle", "extensions"):
            assert command in result.output

    def test_missing_env_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--env-file", str(tmp_path / "nope.env"), "extensions"])
        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestBuildCommand:
    def test_builds_tree(self, settings_file: Path, output_dir: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "build", "--settings", str(settings_file)])

        assert result.exit_code == 0, result.output
        assert f"Built 3 shader(s) into {output_dir}" in result.output
        assert (output_dir / "package__sim__util__simple__simple.wgsl").is_file()

    def test_relative_paths_resolve_against_settings_file(self, tmp_path: Path, shader_root: Path) -> None:
        settings = _write_settings(
            tmp_path / "settings.yaml",
            "shader_root: shaders\noutput_dir: built\npublish_environment: false\n",
        )
        (tmp_path / "built").mkdir()

        result = runner.invoke(app, ["--no-dotenv", "build", "-s", str(settings)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "built" / "package__blit__blit.wgsl").is_file()

    def test_settings_file_not_found(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "build", "-s", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_validation_errors(self, tmp_path: Path, output_dir: Path) -> None:
        settings = _write_settings(tmp_path / "settings.yaml", f"output_dir: {output_dir}\nprofile: nightly\n")

        result = runner.invoke(app, ["--no-dotenv", "build", "-s", str(settings)])

        assert result.exit_code == 1
        assert "Configuration errors:" in result.output
        assert "shader_root" in result.output
        assert "profile" in result.output

    def test_unknown_extension(self, settings_file: Path) -> None:
        with settings_file.open("a", encoding="utf-8") as f:
            f.write("extensions:\n  - plugin: optimizer\n")

        result = runner.invoke(app, ["--no-dotenv", "build", "-s", str(settings_file)])

        assert result.exit_code == 1
        assert "Unknown extension 'optimizer'" in result.output

    def test_build_failure(self, tmp_path: Path, output_dir: Path) -> None:
        settings = _write_settings(
            tmp_path / "settings.yaml",
            f"shader_root: {tmp_path / 'absent'}\noutput_dir: {output_dir}\n",
        )

        result = runner.invoke(app, ["--no-dotenv", "build", "-s", str(settings)])

        assert result.exit_code == 1
        assert "Build failed:" in result.output
        assert "is not a directory" in result.output


class TestLocateCommand:
    def test_prints_artifact_path(self, settings_file: Path, shader_root: Path, output_dir: Path) -> None:
        runner.invoke(app, ["--no-dotenv", "build", "-s", str(settings_file)])

        result = runner.invoke(
            app,
            ["--no-dotenv", "locate", "sim::particles", "--shader-root", str(shader_root), "-o", str(output_dir)],
        )

        assert result.exit_code == 0, result.output
        assert result.output.strip() == str(output_dir / "package__sim__particles__particles.wgsl")

    def test_lookup_failure(self, shader_root: Path, output_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["--no-dotenv", "locate", "sim", "--shader-root", str(shader_root), "-o", str(output_dir)],
        )

        assert result.exit_code == 1
        assert "is a module not a shader file" in result.output


class TestMangleCommands:
    def test_mangle(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "mangle", "package::lighting::pbr_util"])
        assert result.exit_code == 0
        assert result.output.strip() == "package__lighting__pbr_uutil__pbr_uutil"

    def test_mangle_with_name(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "mangle", "lighting::pbr", "--name", "shade"])
        assert result.output.strip() == "package__lighting__pbr__shade"

    def test_mangle_root_needs_name(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "mangle", "package"])
        assert result.exit_code == 1
        assert "--name" in result.output

    def test_demangle(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "demangle", "package__my_x2d_dir__a__a"])
        assert result.exit_code == 0
        assert result.output.strip() == "package::my-dir::a a"

    def test_demangle_foreign_name(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "demangle", "vec4f"])
        assert result.exit_code == 1
        assert "'vec4f' is not a mangled identifier" in result.output


class TestExtensionsCommand:
    def test_lists_builtins(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "extensions"])

        assert result.exit_code == 0
        assert "EXTENSIONS:" in result.output
        for name in ("bindings", "minifier", "size_report"):
            assert name in result.output
