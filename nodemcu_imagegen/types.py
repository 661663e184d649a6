"""Shared type definitions for nodemcu_imagegen.

This module contains dataclasses, enums and constants shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Extension of script files that are scanned for annotations
SCRIPT_SUFFIX = ".lua"

# Name of the synthetic trailing record in every image
DATAFILES_RECORD = "datafiles.json"


class RootKind(str, Enum):
    """Role of an indexed root in the build."""

    CORE = "core"
    LIBRARY = "library"
    DEVICE = "device"


@dataclass(frozen=True)
class FileEntry:
    """A single indexed file.

    Attributes:
        path: POSIX path relative to the owning root.
        base: Base path of the owning root.
        hash: Hex digest of the file content.
        dependencies: Module names required by a script file.
        datafiles: Datafile tokens declared by a script file, sorted.
        origin: Source location when it differs from base / path
            (compiled LFS images live in the cache under a keyed name).
    """

    path: str
    base: Path
    hash: str
    dependencies: frozenset[str] = field(default_factory=frozenset)
    datafiles: tuple[str, ...] = ()
    origin: Path | None = None

    @property
    def source_path(self) -> Path:
        """Location of the file on disk."""
        if self.origin is not None:
            return self.origin
        return self.base / self.path

    @property
    def is_script(self) -> bool:
        """Whether the entry is a Lua script."""
        return self.path.endswith(SCRIPT_SUFFIX)


@dataclass(frozen=True)
class DeviceInfo:
    """Identity of a device."""

    name: str
    id: str


__all__ = [
    "DATAFILES_RECORD",
    "SCRIPT_SUFFIX",
    "DeviceInfo",
    "FileEntry",
    "RootKind",
]
