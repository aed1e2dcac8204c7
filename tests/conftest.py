# tests/conftest.py
"""Shared test fixtures.

Environment Isolation:
    Builds publish their locations into os.environ, and several components
    read configuration from it. Every test starts with those variables unset
    and any value a test (or a build under test) writes is rolled back.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from tests.fixtures.shaders import BLIT_SHADER, PARTICLES_SHADER, SIMPLE_SHADER, write_tree

_ISOLATED_ENV_VARS = (
    "WGSL_BUILD_ROOT_PATH",
    "WGSL_BUILD_OUT_DIR",
    "WGSLBUILD_PROFILE",
    "WGSLBUILD_LOG_LEVEL",
    "OUT_DIR",
)


@pytest.fixture(autouse=True)
def _isolate_build_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset build variables and roll back whatever the test sets.

    setenv before delenv makes monkeypatch record the original state even
    for variables that were not set, so values written later by an
    EnvironmentPublisher are removed again at teardown.
    """
    for var in _ISOLATED_ENV_VARS:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)


@pytest.fixture
def shader_root(tmp_path: Path) -> Path:
    """A small shader tree:

        shaders/
            blit.wgsl
            notes.txt
            sim/
                particles.wesl
                util/
                    simple.wgsl
    """
    return write_tree(
        tmp_path / "shaders",
        {
            "blit.wgsl": BLIT_SHADER,
            "notes.txt": "not a shader",
            "sim/particles.wesl": PARTICLES_SHADER,
            "sim/util/simple.wgsl": SIMPLE_SHADER,
        },
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty artifact directory (the build never creates it)."""
    out = tmp_path / "out"
    out.mkdir()
    return out


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
