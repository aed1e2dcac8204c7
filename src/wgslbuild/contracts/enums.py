"""All origins, modes, and stages used across subsystem boundaries."""

from enum import StrEnum


class PathOrigin(StrEnum):
    """Where a module path is anchored.

    The value doubles as the leading token of a mangled identifier, so
    values must stay alphanumeric.
    """

    ABSOLUTE = "package"
    PACKAGE_RELATIVE = "self"


class ManglerKind(StrEnum):
    """Naming strategy the compiler uses for declarations it inlines.

    Extensions that need to recover module paths from compiled identifiers
    (e.g. the bindings generator) select ESCAPE during init_root.
    """

    NONE = "none"
    ESCAPE = "escape"


class LifecycleStage(StrEnum):
    """Points in a build where extensions are called.

    Carried on ExtensionError so failures name the stage that raised.
    """

    INIT_ROOT = "init_root"
    ENTER_MODULE = "enter_module"
    EXIT_MODULE = "exit_module"
    POST_BUILD = "post_build"
    EXIT_ROOT = "exit_root"
