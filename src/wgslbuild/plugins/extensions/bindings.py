"""Generate Python bindings for every compiled shader.

For a shader tree

    shaders/
        blit.wgsl
        lighting/
            pbr.wesl

the extension writes a Python package mirroring it:

    <bindings_root>/
        __init__.py          from . import blit / from . import lighting
        blit.py
        lighting/
            __init__.py      from . import pbr
            pbr.py

Each binding module exposes dataclasses for the shader's structs, its
resource bindings, its entry points and (optionally) the compiled source.

Ordering:
    Sets the compiler's mangler to ESCAPE in init_root so names inlined
    from other modules can be demangled. Register it BEFORE the minifier
    if the embedded SOURCE should stay readable.
"""

from __future__ import annotations

import keyword
import re
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Literal, Protocol, TextIO

from jinja2 import Environment

from wgslbuild.contracts import ManglerKind, ModulePath, SourceMap
from wgslbuild.core.identifiers import validate_module_identifier
from wgslbuild.core.logging import get_logger
from wgslbuild.core.mangling import is_mangled, unmangle_or_root
from wgslbuild.core.minify import MinifyError, WgslMinifier
from wgslbuild.plugins.base import BaseExtension
from wgslbuild.plugins.config_base import ExtensionConfig

if TYPE_CHECKING:
    from wgslbuild.core.compiler import ShaderCompiler

logger = get_logger(__name__)

INIT_MODULE = "__init__.py"
GENERATED_HEADER = "# Generated by wgslbuild. Do not edit.\n"


class BindingsError(Exception):
    """The bindings package layout cannot be produced."""


class CodegenError(Exception):
    """The binding generator rejected a compiled shader.

    ``source_path`` is the compiled file, with the home directory shown
    as ``~`` so messages are stable across machines.
    """

    def __init__(self, message: str, source_path: str) -> None:
        self.source_path = _shorten_home(source_path)
        super().__init__(f"{self.source_path}: {message}")


def _shorten_home(path: str) -> str:
    home = str(Path.home())
    if home and home != "/" and path.startswith(home):
        return "~" + path[len(home) :]
    return path


@dataclass(frozen=True)
class TypePath:
    """A type name placed in the module it was declared in."""

    parent: tuple[str, ...]
    name: str

    def __str__(self) -> str:
        return "::".join((*self.parent, self.name))


def demangle_type(name: str) -> TypePath:
    """Demangler handed to binding generators.

    Names that were not mangled (builtins, declarations local to the
    compiled module) are placed in the root module.
    """
    if not is_mangled(name):
        return TypePath(parent=(), name=name)
    path, item = unmangle_or_root(name)
    return TypePath(parent=path.components, name=item)


@dataclass(frozen=True)
class GenerationOptions:
    include_source: bool = True
    vector_types: Literal["tuple", "numpy"] = "tuple"


class BindingGenerator(Protocol):
    """Source-to-bindings-text contract."""

    def generate(
        self,
        source_text: str,
        source_reference: str,
        options: GenerationOptions,
        demangle: Callable[[str], TypePath],
    ) -> str:
        """Return the text of a Python module for one compiled shader.

        Raises:
            CodegenError: If the shader cannot be described
        """
        ...


# =============================================================================
# Default generator
# =============================================================================

_SCALARS = {"f32": "float", "f16": "float", "i32": "int", "u32": "int", "bool": "bool"}
_SHORT_SUFFIX = {"f": "f32", "h": "f16", "i": "i32", "u": "u32"}

# Patterns run on minified source, where whitespace only separates words
_STRUCT = re.compile(r"struct (\w+)\{(.*?)\}")
_FIELD = re.compile(r"^((?:@\w+(?:\([^)]*\))?\s*)*)(\w+):(.+)$")
_ENTRY_POINT = re.compile(r"@(vertex|fragment|compute)((?:@\w+(?:\([^)]*\))?|\s)*?)\s*fn (\w+)\(")
_WORKGROUP = re.compile(r"@workgroup_size\(([^)]*)\)")
_BINDING = re.compile(r"((?:@\w+\([^)]*\))+)var(?:<([^>]*)>)?\s*(\w+):([^;]+);")
_ATTRIBUTE = re.compile(r"@(\w+)\(([^)]*)\)")
_VECTOR = re.compile(r"^vec([234])(?:<(\w+)>|([fhiu]))$")
_MATRIX = re.compile(r"^mat([234])x([234])(?:<(\w+)>|([fh]))$")
_ARRAY = re.compile(r"^array<(.+?)(?:,[^,<>]+)?>$")
_ATOMIC = re.compile(r"^atomic<(\w+)>$")

_TEMPLATE = '''\
"""Bindings for `{{ module_path }}`.

Generated by wgslbuild from {{ source_reference }}. Do not edit.
"""

{% if needs_numpy %}
import numpy
{% endif %}
from dataclasses import dataclass
from typing import Any

MODULE_PATH = {{ module_path | pyrepr }}
{% if include_source %}

SOURCE = {{ source | pyrepr }}
{% endif %}
{% for struct in structs %}


@dataclass
class {{ struct.class_name }}:
    """WGSL struct `{{ struct.type_path }}`."""

{% for f in struct.fields %}
    {{ f.name }}: {{ f.annotation }}
{% endfor %}
{% endfor %}


TYPE_PATHS = {
{% for struct in structs %}
    {{ struct.class_name | pyrepr }}: {{ struct.type_path | string | pyrepr }},
{% endfor %}
}

BINDINGS = (
{% for b in bindings %}
    {"group": {{ b.group }}, "binding": {{ b.binding }}, "name": {{ b.name | pyrepr }}, "address_space": {{ b.address_space | pyrepr }}, "type": {{ b.type | pyrepr }}},
{% endfor %}
)

ENTRY_POINTS = {
{% for e in entry_points %}
    {{ e.name | pyrepr }}: {{ e.stage | pyrepr }},
{% endfor %}
}

WORKGROUP_SIZES = {
{% for e in entry_points if e.workgroup_size %}
    {{ e.name | pyrepr }}: {{ e.workgroup_size | pyrepr }},
{% endfor %}
}
'''


@dataclass
class _Field:
    name: str
    annotation: str


@dataclass
class _Struct:
    wgsl_name: str
    class_name: str
    type_path: TypePath
    fields: list[_Field] = field(default_factory=list)


@dataclass
class _Binding:
    group: int
    binding: int
    name: str
    address_space: str | None
    type: str


@dataclass
class _EntryPoint:
    name: str
    stage: str
    workgroup_size: tuple[int, ...] | None


def _split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on sep outside of <> and () nesting."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "<(":
            depth += 1
        elif char in ">)":
            depth -= 1
        if char == sep and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if current:
        parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _safe_name(name: str) -> str:
    return f"{name}_" if keyword.iskeyword(name) else name


class TemplateBindingGenerator:
    """Describes a compiled shader with a jinja2-rendered Python module."""

    def __init__(self) -> None:
        self._minifier = WgslMinifier()
        env = Environment(keep_trailing_newline=True, trim_blocks=True, lstrip_blocks=True, autoescape=False)
        env.filters["pyrepr"] = repr
        self._template = env.from_string(_TEMPLATE)

    def generate(
        self,
        source_text: str,
        source_reference: str,
        options: GenerationOptions,
        demangle: Callable[[str], TypePath],
    ) -> str:
        try:
            normalized = self._minifier.minify(source_text)
        except MinifyError as e:
            raise CodegenError(str(e), source_reference) from e

        structs = self._structs(normalized, demangle, source_reference)
        # Map both the mangled and demangled spelling to the class
        type_names: dict[str, str] = {}
        for struct in structs:
            type_names[struct.wgsl_name] = struct.class_name
            type_names[struct.type_path.name] = struct.class_name

        needs_numpy = False
        for struct in structs:
            for f in struct.fields:
                annotation, uses_numpy = self._annotation(f.annotation, type_names, options)
                f.annotation = annotation
                needs_numpy = needs_numpy or uses_numpy

        bindings = self._bindings(normalized, type_names, demangle)
        entry_points = self._entry_points(normalized)

        return self._template.render(
            module_path=self._module_path_of(source_reference),
            source_reference=source_reference,
            include_source=options.include_source,
            source=source_text,
            structs=structs,
            bindings=bindings,
            entry_points=entry_points,
            needs_numpy=needs_numpy,
        )

    @staticmethod
    def _module_path_of(source_reference: str) -> str:
        stem = Path(source_reference).stem
        path, item = unmangle_or_root(stem)
        return str(path) if not path.is_root else item

    def _structs(self, text: str, demangle: Callable[[str], TypePath], source_reference: str) -> list[_Struct]:
        structs: list[_Struct] = []
        seen: dict[str, TypePath] = {}
        for match in _STRUCT.finditer(text):
            type_path = demangle(match.group(1))
            class_name = type_path.name
            if class_name in seen:
                raise CodegenError(
                    f"struct name '{class_name}' is ambiguous: declared by `{seen[class_name]}` and `{type_path}`",
                    source_reference,
                )
            seen[class_name] = type_path
            struct = _Struct(wgsl_name=match.group(1), class_name=class_name, type_path=type_path)
            for member in _split_top_level(match.group(2)):
                field_match = _FIELD.match(member)
                if field_match is None:
                    raise CodegenError(f"cannot parse member '{member}' of struct {class_name}", source_reference)
                # Raw WGSL type for now; resolved once all struct names are known
                struct.fields.append(_Field(name=_safe_name(field_match.group(2)), annotation=field_match.group(3)))
            structs.append(struct)
        return structs

    def _annotation(self, wgsl_type: str, type_names: dict[str, str], options: GenerationOptions) -> tuple[str, bool]:
        """Python annotation for a WGSL type, and whether it needs numpy."""
        wgsl_type = wgsl_type.strip()
        if wgsl_type in _SCALARS:
            return _SCALARS[wgsl_type], False
        if wgsl_type in type_names:
            return type_names[wgsl_type], False

        vector = _VECTOR.match(wgsl_type)
        if vector:
            if options.vector_types == "numpy":
                return "numpy.ndarray", True
            scalar = vector.group(2) or _SHORT_SUFFIX[vector.group(3)]
            element = _SCALARS.get(scalar, "Any")
            return f"tuple[{', '.join([element] * int(vector.group(1)))}]", False

        matrix = _MATRIX.match(wgsl_type)
        if matrix:
            if options.vector_types == "numpy":
                return "numpy.ndarray", True
            scalar = matrix.group(3) or _SHORT_SUFFIX[matrix.group(4)]
            element = _SCALARS.get(scalar, "Any")
            column = f"tuple[{', '.join([element] * int(matrix.group(2)))}]"
            return f"tuple[{', '.join([column] * int(matrix.group(1)))}]", False

        atomic = _ATOMIC.match(wgsl_type)
        if atomic:
            return _SCALARS.get(atomic.group(1), "Any"), False

        array = _ARRAY.match(wgsl_type)
        if array:
            element, uses_numpy = self._annotation(array.group(1), type_names, options)
            return f"list[{element}]", uses_numpy

        return "Any", False

    @staticmethod
    def _bindings(text: str, type_names: dict[str, str], demangle: Callable[[str], TypePath]) -> list[_Binding]:
        bindings: list[_Binding] = []
        for match in _BINDING.finditer(text):
            attributes = dict(_ATTRIBUTE.findall(match.group(1)))
            if "group" not in attributes or "binding" not in attributes:
                continue
            address_space = match.group(2).split(",")[0] if match.group(2) else None
            wgsl_type = match.group(4).strip()
            resolved = type_names.get(wgsl_type) or str(demangle(wgsl_type))
            bindings.append(
                _Binding(
                    group=int(attributes["group"], 0),
                    binding=int(attributes["binding"], 0),
                    name=match.group(3),
                    address_space=address_space,
                    type=resolved,
                )
            )
        return sorted(bindings, key=lambda b: (b.group, b.binding))

    @staticmethod
    def _entry_points(text: str) -> list[_EntryPoint]:
        entry_points: list[_EntryPoint] = []
        for match in _ENTRY_POINT.finditer(text):
            workgroup_size = None
            workgroup = _WORKGROUP.search(match.group(2))
            if workgroup:
                workgroup_size = tuple(int(part, 0) for part in _split_top_level(workgroup.group(1)) if part.isdigit())
            entry_points.append(_EntryPoint(name=match.group(3), stage=match.group(1), workgroup_size=workgroup_size))
        return entry_points


# =============================================================================
# Extension
# =============================================================================


class BindingsConfig(ExtensionConfig):
    bindings_root: Path
    include_source: bool = True
    vector_types: Literal["tuple", "numpy"] = "tuple"


@dataclass
class _ModuleFrame:
    """One open __init__.py in the bindings package.

    The handle is owned by ``resources`` and closed when the frame is popped.
    """

    directory: Path
    handle: TextIO
    resources: ExitStack
    imported: set[str] = field(default_factory=set)

    def add_import(self, name: str) -> None:
        """Append an import line.

        Raises:
            BindingsError: If name was already imported here, which happens
                when a shader stem and a subdirectory share a name or two
                shaders differ only in their extension
        """
        if name in self.imported:
            raise BindingsError(
                f"{self.directory}: `{name}` is both a shader and a module, or names two shaders; "
                "the bindings package can only hold one of them"
            )
        self.imported.add(name)
        self.handle.write(f"from . import {name}\n")


class BindingsExtension(BaseExtension):
    """Writes a Python bindings package next to the compiled shaders."""

    name: ClassVar[str] = "bindings"
    config_model = BindingsConfig

    def __init__(
        self,
        bindings_root: Path | str,
        include_source: bool = True,
        vector_types: Literal["tuple", "numpy"] = "tuple",
        generator: BindingGenerator | None = None,
    ) -> None:
        self.bindings_root = Path(bindings_root)
        self.options = GenerationOptions(include_source=include_source, vector_types=vector_types)
        self.generator: BindingGenerator = generator if generator is not None else TemplateBindingGenerator()
        self._frames: list[_ModuleFrame] = []

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> BindingsExtension:
        config = BindingsConfig.from_dict(options)
        return cls(
            bindings_root=config.bindings_root,
            include_source=config.include_source,
            vector_types=config.vector_types,
        )

    @property
    def depth(self) -> int:
        """Number of open package levels (1 = root only)."""
        return len(self._frames)

    def _push(self, directory: Path) -> _ModuleFrame:
        directory.mkdir(parents=True, exist_ok=True)
        resources = ExitStack()
        try:
            handle = resources.enter_context((directory / INIT_MODULE).open("w", encoding="utf-8"))
            handle.write(GENERATED_HEADER)
        except BaseException:
            resources.close()
            raise
        frame = _ModuleFrame(directory=directory, handle=handle, resources=resources)
        self._frames.append(frame)
        logger.debug("opened bindings module", path=str(directory / INIT_MODULE))
        return frame

    def _pop(self) -> None:
        frame = self._frames.pop()
        frame.resources.close()

    @property
    def _current(self) -> _ModuleFrame:
        if not self._frames:
            raise BindingsError("bindings extension used before init_root")
        return self._frames[-1]

    def init_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        compiler.mangler = ManglerKind.ESCAPE
        self.close()
        self._push(self.bindings_root)

    def enter_module(self, dir_path: Path) -> None:
        name = dir_path.name
        try:
            validate_module_identifier(name, "bindings package directory")
        except ValueError as e:
            raise BindingsError(f"{dir_path}: {e}") from e
        parent = self._current
        parent.add_import(name)
        self._push(parent.directory / name)

    def exit_module(self, dir_path: Path) -> None:
        if len(self._frames) <= 1:
            raise BindingsError(f"exit_module({dir_path}) without a matching enter_module")
        logger.debug("exiting bindings module", module=dir_path.name)
        # The parent's handle was never closed, so it stays writable
        self._pop()

    def post_build(self, module_path: ModulePath, artifact_path: Path, source_map: SourceMap | None) -> None:
        stem = module_path.last
        if stem is None:
            raise BindingsError("the root module has no bindings")
        try:
            validate_module_identifier(stem, "bindings module")
        except ValueError as e:
            raise BindingsError(f"shader `{module_path}`: {e}") from e

        # Claim the name first so a clash never overwrites an earlier module
        self._current.add_import(stem)

        source_text = artifact_path.read_text(encoding="utf-8")
        text = self.generator.generate(source_text, str(artifact_path), self.options, demangle_type)

        binding_path = self.bindings_root.joinpath(*module_path.components[:-1]) / f"{stem}.py"
        binding_path.parent.mkdir(parents=True, exist_ok=True)
        binding_path.write_text(text, encoding="utf-8")

    def exit_root(self, shader_root: Path, compiler: ShaderCompiler) -> None:
        self.close()

    def close(self) -> None:
        while self._frames:
            self._pop()
