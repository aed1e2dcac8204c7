"""Identifier validation utilities.

Validation for file suffixes and for names that end up as Python module
names in generated code. Lives in core/ so config and extensions can share
it without cross-subsystem imports.
"""

from __future__ import annotations

import keyword
import re

_SUFFIX_PATTERN = re.compile(r"[A-Za-z0-9]+")


def validate_extension_suffixes(suffixes: list[str], context: str) -> None:
    """Validate bare file suffixes ("wgsl", not ".wgsl" or "a.b").

    Raises:
        ValueError: If any suffix is empty, contains other characters, or is duplicate
    """
    if not suffixes:
        raise ValueError(f"{context} must not be empty")
    seen: set[str] = set()
    for i, suffix in enumerate(suffixes):
        if not _SUFFIX_PATTERN.fullmatch(suffix):
            raise ValueError(f"{context}[{i}] '{suffix}' is not a valid file suffix")
        if suffix in seen:
            raise ValueError(f"Duplicate suffix '{suffix}' in {context}")
        seen.add(suffix)


def validate_module_identifier(name: str, context: str) -> None:
    """Validate a name used as a generated Python module.

    Raises:
        ValueError: If name is not a valid identifier or is a Python keyword
    """
    if not name.isidentifier():
        raise ValueError(f"{context} '{name}' is not a valid Python identifier")
    if keyword.iskeyword(name):
        raise ValueError(f"{context} '{name}' is a Python keyword")
