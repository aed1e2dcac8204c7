"""Reversible name mangling between module paths and flat identifiers.

Compiled artifacts live in one flat output directory, and the bindings
generator sees inlined declarations under flat names. Both need a way to
turn ``(module path, item name)`` into a single string and back.

Scheme:
    The identifier is a sequence of tokens joined by ``__``:

        <origin> __ <component> __ ... __ <item>

    Inside a token, ASCII letters and digits are kept as-is, ``_`` becomes
    ``_u`` and any other character becomes ``_x<hex code point>_``.

    package::lighting::pbr_util, "shade"  ->  package__lighting__pbr_uutil__shade
    package::my-dir::a, "a"               ->  package__my_x2d_dir__a__a

Decoding is a left-to-right scan where ``__`` is always a separator, so the
encoding is injective and ``unmangle(mangle(p, n)) == (p, n)``. The output
only contains ``[A-Za-z0-9_]`` and starts with a letter, which makes it a
valid filename and a valid identifier in generated code.

IMPORTANT: The orchestrator and the artifact lookup must agree on this
scheme without coordination, so ``mangle`` is a pure function of its
arguments. Changing it invalidates every previously built artifact name.
"""

from __future__ import annotations

import re

from wgslbuild.contracts.enums import PathOrigin
from wgslbuild.contracts.module_path import ModulePath

__all__ = [
    "TOKEN_SEPARATOR",
    "is_mangled",
    "mangle",
    "unmangle",
    "unmangle_or_root",
]

TOKEN_SEPARATOR = "__"

# Lowercase, no leading zeros: the only hex form mangle() produces
_HEX_DIGITS = re.compile(r"0|[1-9a-f][0-9a-f]*")

_ORIGINS = {origin.value: origin for origin in PathOrigin}


def _is_plain(char: str) -> bool:
    return char.isascii() and char.isalnum()


def _escape(text: str) -> str:
    out: list[str] = []
    for char in text:
        if _is_plain(char):
            out.append(char)
        elif char == "_":
            out.append("_u")
        else:
            out.append(f"_x{ord(char):x}_")
    return "".join(out)


def mangle(path: ModulePath, name: str) -> str:
    """Mangle a module path and item name into one flat identifier.

    Args:
        path: Module the item belongs to (the root module is allowed)
        name: Item name, typically the shader file stem

    Returns:
        Identifier matching ``[A-Za-z][A-Za-z0-9_]*``

    Raises:
        ValueError: If name is empty
    """
    if not name:
        raise ValueError("cannot mangle an empty item name")
    tokens = [path.origin.value, *(_escape(c) for c in path.components), _escape(name)]
    return TOKEN_SEPARATOR.join(tokens)


def _split_tokens(mangled: str) -> list[str] | None:
    """Decode the token sequence, or None if any escape is malformed."""
    tokens: list[str] = []
    current: list[str] = []
    i = 0
    length = len(mangled)

    while i < length:
        char = mangled[i]
        if char != "_":
            if not _is_plain(char):
                return None
            current.append(char)
            i += 1
            continue

        if i + 1 >= length:
            return None
        marker = mangled[i + 1]
        if marker == "_":
            if not current:
                return None
            tokens.append("".join(current))
            current = []
            i += 2
        elif marker == "u":
            current.append("_")
            i += 2
        elif marker == "x":
            end = mangled.find("_", i + 2)
            if end == -1:
                return None
            digits = mangled[i + 2 : end]
            if not _HEX_DIGITS.fullmatch(digits):
                return None
            code = int(digits, 16)
            if code > 0x10FFFF:
                return None
            decoded = chr(code)
            # Characters mangle() never escapes this way
            if decoded == "_" or _is_plain(decoded):
                return None
            current.append(decoded)
            i = end + 1
        else:
            return None

    if not current:
        return None
    tokens.append("".join(current))
    return tokens


def unmangle(mangled: str) -> tuple[ModulePath, str] | None:
    """Recover ``(module path, item name)`` from a mangled identifier.

    Returns None for anything mangle() could not have produced (foreign
    naming conventions, malformed escapes, unknown origins). Never raises.
    """
    if not isinstance(mangled, str) or not mangled:
        return None

    tokens = _split_tokens(mangled)
    if tokens is None or len(tokens) < 2:
        return None

    origin = _ORIGINS.get(tokens[0])
    if origin is None:
        return None

    try:
        path = ModulePath(origin, tuple(tokens[1:-1]))
    except ValueError:
        # Decoded components contain a separator
        return None
    return path, tokens[-1]


def unmangle_or_root(mangled: str) -> tuple[ModulePath, str]:
    """Unmangle, falling back to the root module for foreign identifiers.

    Used by consumers that see arbitrary flat names (e.g. builtin WGSL
    types next to inlined declarations) and must place each one somewhere.
    """
    result = unmangle(mangled)
    if result is None:
        return ModulePath.root(), mangled
    return result


def is_mangled(name: str) -> bool:
    """Whether name was produced by mangle()."""
    return unmangle(name) is not None
