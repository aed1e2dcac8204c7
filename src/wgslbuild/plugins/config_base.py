"""Base class for typed extension options.

Extensions declare a ``config_model`` subclass of ExtensionConfig to get:
- Strict validation (reject unknown fields)
- A factory with clear error messages

Example usage:
    class MinifierConfig(ExtensionConfig):
        release_only: bool = False

    cfg = MinifierConfig.from_dict({"release_only": True})
"""

from typing import Any, Self

from pydantic import BaseModel, ValidationError

from wgslbuild.contracts import ExtensionConfigError


class ExtensionConfig(BaseModel):
    """Base class for typed extension options."""

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            ExtensionConfigError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise ExtensionConfigError(f"Invalid configuration for {cls.__name__}: options must be a dict, got {type(config).__name__}.")
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ExtensionConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e
