"""Minify compiled shaders in place.

Ordering:
    Rewrites the artifact. Extensions registered after this one see the
    minified text; register it AFTER the bindings extension so embedded
    sources stay readable, and BEFORE size_report so the report shows the
    minified size.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, Literal

from wgslbuild.contracts import ModulePath, SourceMap
from wgslbuild.core.logging import get_logger
from wgslbuild.core.minify import MinifyError, WgslMinifier
from wgslbuild.plugins.base import BaseExtension
from wgslbuild.plugins.config_base import ExtensionConfig

logger = get_logger(__name__)

PROFILE_ENV_VAR = "WGSLBUILD_PROFILE"


class MinifierConfig(ExtensionConfig):
    release_only: bool = False
    profile: Literal["debug", "release"] | None = None


class MinifierExtension(BaseExtension):
    """Removes every character it can from built shaders.

    Args:
        release_only: Only minify when the build profile is "release"
        profile: Build profile; defaults to $WGSLBUILD_PROFILE
    """

    name: ClassVar[str] = "minifier"
    config_model = MinifierConfig

    def __init__(self, release_only: bool = False, profile: str | None = None) -> None:
        self.release_only = release_only
        self.profile = profile
        self._minifier = WgslMinifier()

    def _enabled(self) -> bool:
        if not self.release_only:
            return True
        profile = self.profile if self.profile is not None else os.environ.get(PROFILE_ENV_VAR)
        if profile is None:
            raise MinifyError(f"release_only minification needs a build profile; set ${PROFILE_ENV_VAR} or the profile option")
        return profile == "release"

    def post_build(self, module_path: ModulePath, artifact_path: Path, source_map: SourceMap | None) -> None:
        if not self._enabled():
            return

        source = artifact_path.read_text(encoding="utf-8")
        output = self._minifier.minify(source)
        artifact_path.write_text(output, encoding="utf-8")
        logger.debug("minified shader", module=str(module_path), before=len(source), after=len(output))
