"""Annotation scanning for Lua modules.

Extracts two kinds of declarations from script text:

- ``require("pkg.mod")`` calls, which become dependency edges
- ``-- datafile: <token>`` comment lines, which are passed through to the
  image datafiles index without being resolved

Scanning is independent of hashing and indexing so the declaration syntax
can change without touching the rest of the pipeline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from nodemcu_imagegen.fsutil import read_text

REQUIRE_PATTERN = re.compile(
    r"""(?:^|\s)require\s*\(\s*(["'])([^"'\n]*)\1\s*\)""",
    re.MULTILINE,
)
DATAFILE_PATTERN = re.compile(r"^--\s*datafile:[ \t]*(.*?)\s*$", re.MULTILINE)


@dataclass(frozen=True)
class ModuleAnnotations:
    """Declarations found in one script file."""

    dependencies: frozenset[str] = field(default_factory=frozenset)
    datafiles: tuple[str, ...] = ()


def scan_annotations(code: str) -> ModuleAnnotations:
    """Extract dependency and datafile declarations from Lua source.

    Duplicate declarations collapse to one. Empty tokens are dropped.

    Args:
        code: Lua source text.

    Returns:
        ModuleAnnotations with the deduplicated declarations.
    """
    dependencies = {m.group(2) for m in REQUIRE_PATTERN.finditer(code) if m.group(2)}
    datafiles = {m.group(1) for m in DATAFILE_PATTERN.finditer(code) if m.group(1)}
    return ModuleAnnotations(
        dependencies=frozenset(dependencies),
        datafiles=tuple(sorted(datafiles)),
    )


def scan_file(path: Path) -> ModuleAnnotations:
    """Scan a script file on disk.

    Raises:
        FirmwareIOError: If the file cannot be read.
    """
    return scan_annotations(read_text(path))


__all__ = [
    "DATAFILE_PATTERN",
    "REQUIRE_PATTERN",
    "ModuleAnnotations",
    "scan_annotations",
    "scan_file",
]
