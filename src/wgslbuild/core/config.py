"""
Configuration schema and loading for shader builds.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from wgslbuild.contracts import SettingsError
from wgslbuild.core.identifiers import validate_extension_suffixes

# Environment variable fallback for the output directory, as set by most
# hosting build environments
OUT_DIR_ENV_VAR = "OUT_DIR"

SETTINGS_ENV_PREFIX = "WGSLBUILD"


class CompilerSettings(BaseModel):
    """Which compiler to run for each shader module.

    Example YAML:
        compiler:
          kind: command
          command: ["wesl", "compile", "--root", "{root}", "{module}"]
    """

    model_config = {"frozen": True, "extra": "forbid"}

    kind: Literal["passthrough", "command"] = "passthrough"
    command: list[str] | None = Field(
        default=None,
        description="argv template for kind=command",
    )
    use_sourcemap: bool = True

    @model_validator(mode="after")
    def validate_command_for_kind(self) -> "CompilerSettings":
        """A command compiler needs a command; a passthrough compiler must not have one."""
        if self.kind == "command" and not self.command:
            raise ValueError("compiler.command is required when compiler.kind is 'command'")
        if self.kind == "passthrough" and self.command is not None:
            raise ValueError("compiler.command is only valid when compiler.kind is 'command'")
        return self


class ExtensionSettings(BaseModel):
    """One extension to run, in list order.

    Example YAML:
        extensions:
          - plugin: bindings
            options:
              bindings_root: src/shader_bindings
          - plugin: size_report
    """

    model_config = {"frozen": True, "extra": "forbid"}

    plugin: str = Field(min_length=1, description="Registered extension name")
    options: dict[str, Any] = Field(default_factory=dict)


class BuildSettings(BaseModel):
    """Top-level build configuration.

    Example YAML:
        shader_root: src/shaders
        output_dir: build/shaders
        extensions:
          - plugin: minifier
            options: {release_only: true}
    """

    model_config = {"frozen": True, "extra": "forbid"}

    shader_root: Path
    output_dir: Path | None = Field(
        default=None,
        description="Artifact directory; falls back to $OUT_DIR",
    )
    source_extensions: tuple[str, ...] = ("wesl", "wgsl")
    artifact_extension: str = "wgsl"
    compiler: CompilerSettings = Field(default_factory=CompilerSettings)
    extensions: list[ExtensionSettings] = Field(default_factory=list)
    publish_environment: bool = True
    write_manifest: bool = False
    profile: Literal["debug", "release"] = "debug"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("source_extensions")
    @classmethod
    def validate_source_extensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Extensions are bare suffixes like 'wgsl'."""
        cleaned = tuple(ext.lstrip(".") for ext in v)
        validate_extension_suffixes(list(cleaned), "source_extensions")
        return cleaned

    @field_validator("artifact_extension")
    @classmethod
    def validate_artifact_extension(cls, v: str) -> str:
        cleaned = v.lstrip(".")
        validate_extension_suffixes([cleaned], "artifact_extension")
        return cleaned

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def resolved_output_dir(self) -> Path:
        """Output directory from settings, else $OUT_DIR.

        Raises:
            SettingsError: If neither is set
        """
        if self.output_dir is not None:
            return self.output_dir
        env_value = os.environ.get(OUT_DIR_ENV_VAR)
        if not env_value:
            raise SettingsError(f"output_dir is not configured and ${OUT_DIR_ENV_VAR} is not set")
        return Path(env_value)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _resolve_relative_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Anchor relative shader_root/output_dir at the settings file's directory."""
    resolved = dict(config)
    for key in ("shader_root", "output_dir"):
        value = resolved.get(key)
        if isinstance(value, str) and value and not Path(value).is_absolute():
            resolved[key] = str(base_dir / value)
    return resolved


def _lowercase_keys(value: Any) -> Any:
    """Dynaconf upper-cases keys at every level; Pydantic fields are lowercase.

    Extension options are passed through untouched below the 'options' key
    since they belong to the extension's own schema.
    """
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            key = k.lower() if isinstance(k, str) else k
            out[key] = v if key == "options" else _lowercase_keys(v)
        return out
    if isinstance(value, list):
        return [_lowercase_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> BuildSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (WGSLBUILD_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: WGSLBUILD_COMPILER__KIND for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated BuildSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        SettingsError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise SettingsError(f"Settings file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=SETTINGS_ENV_PREFIX,
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lowercase_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)
    raw_config = _resolve_relative_paths(raw_config, config_path.resolve().parent)

    return BuildSettings(**raw_config)
