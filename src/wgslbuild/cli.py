# src/wgslbuild/cli.py
"""wgslbuild Command Line Interface.

Entry point for the wgslbuild CLI tool.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from wgslbuild import __version__
from wgslbuild.contracts import (
    BuildError,
    ExtensionConfigError,
    LookupFailure,
    ModulePath,
    SettingsError,
)
from wgslbuild.core.config import load_settings

if TYPE_CHECKING:
    from wgslbuild.plugins.manager import ExtensionManager

__all__ = [
    "app",
    "load_settings",  # Re-exported from config for convenience
]

# Module-level singleton for extension manager
_extension_manager_cache: ExtensionManager | None = None


def _get_extension_manager() -> ExtensionManager:
    """Get initialized extension manager (singleton).

    Returns:
        ExtensionManager with built-in and entry point extensions registered
    """
    global _extension_manager_cache

    from wgslbuild.plugins.manager import ExtensionManager

    if _extension_manager_cache is None:
        manager = ExtensionManager()
        manager.register_builtin_extensions()
        manager.load_entrypoint_extensions()
        _extension_manager_cache = manager
    return _extension_manager_cache


app = typer.Typer(
    name="wgslbuild",
    help="wgslbuild: Build-time compilation of WESL/WGSL shader trees.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"wgslbuild version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """wgslbuild: Build-time compilation of WESL/WGSL shader trees."""
    from wgslbuild.core.logging import configure_logging

    # .env first so WGSLBUILD_LOG_LEVEL from it is honoured
    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else None)
    ctx.obj = {"verbose": verbose, "json_logs": json_logs}


@app.command()
def build(
    ctx: typer.Context,
    settings: Path = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to build settings YAML file.",
    ),
) -> None:
    """Compile every shader below the configured shader root."""
    from wgslbuild.core.logging import configure_logging
    from wgslbuild.engine.orchestrator import build_from_settings

    try:
        config = load_settings(settings)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except SettingsError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    state = ctx.obj or {}
    if not state.get("verbose"):
        configure_logging(json_output=state.get("json_logs", False), level=config.log_level)

    try:
        result = build_from_settings(config, _get_extension_manager())
    except (SettingsError, ExtensionConfigError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except BuildError as e:
        typer.echo(f"Build failed: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Built {len(result.artifacts)} shader(s) into {result.output_dir}")


@app.command()
def locate(
    module_path: str = typer.Argument(..., help="Shader path below the shader root, e.g. lighting::pbr"),
    shader_root: Path | None = typer.Option(
        None,
        "--shader-root",
        help="Shader source root (default: $WGSL_BUILD_ROOT_PATH).",
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Artifact directory (default: $WGSL_BUILD_OUT_DIR).",
    ),
    artifact_extension: str = typer.Option(
        "wgsl",
        "--artifact-extension",
        help="Artifact file extension.",
    ),
) -> None:
    """Print the artifact path built for a shader."""
    from wgslbuild.lookup import locate_shader

    try:
        path = locate_shader(
            module_path,
            shader_root,
            output_dir,
            artifact_extension=artifact_extension,
        )
    except LookupFailure as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(str(path))


@app.command()
def mangle(
    module_path: str = typer.Argument(..., help="Module path, e.g. package::lighting::pbr"),
    name: str | None = typer.Option(
        None,
        "--name",
        "-n",
        help="Item name (default: the module's last component).",
    ),
) -> None:
    """Print the mangled identifier for a module path."""
    from wgslbuild.core.mangling import mangle as mangle_name

    try:
        path = ModulePath.parse(module_path)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    item = name if name is not None else path.last
    if not item:
        typer.echo("Error: the root module needs an explicit --name", err=True)
        raise typer.Exit(1)
    typer.echo(mangle_name(path, item))


@app.command()
def demangle(
    name: str = typer.Argument(..., help="Mangled identifier"),
) -> None:
    """Print the module path and item a mangled identifier stands for."""
    from wgslbuild.core.mangling import unmangle

    result = unmangle(name)
    if result is None:
        typer.echo(f"Error: '{name}' is not a mangled identifier", err=True)
        raise typer.Exit(1)
    path, item = result
    typer.echo(f"{path} {item}")


@app.command("extensions")
def list_extensions() -> None:
    """List available build extensions."""
    manager = _get_extension_manager()
    extensions = manager.get_extensions()
    if not extensions:
        typer.echo("  (none available)")
        return

    typer.echo("EXTENSIONS:")
    for cls in extensions:
        doc = (cls.__doc__ or "").strip().splitlines()
        description = doc[0] if doc else ""
        typer.echo(f"  {cls.name:20} - {description}")


if __name__ == "__main__":
    app()
