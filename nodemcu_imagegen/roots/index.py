"""Root indexing.

A root is one directory indexed as a unit: every regular file directly in
it is hashed, and Lua scripts are scanned for annotations. Sub-directories
are not descended into; the site layout indexes each library and device
folder as its own root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from nodemcu_imagegen.errors import FirmwareIOError, RootNotFoundError
from nodemcu_imagegen.fsutil import hash_file, list_files, list_subdirs
from nodemcu_imagegen.roots.scanner import scan_file
from nodemcu_imagegen.types import SCRIPT_SUFFIX, FileEntry, RootKind

if TYPE_CHECKING:
    from nodemcu_imagegen.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class Root:
    """An indexed directory.

    Attributes:
        name: Root name (library or device folder name, or "firmware").
        kind: Role of the root in the build.
        base_path: Directory the root was indexed from.
        files: Entries keyed by relative path.
    """

    name: str
    kind: RootKind
    base_path: Path
    files: dict[str, FileEntry] = field(default_factory=dict)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def get(self, path: str) -> FileEntry | None:
        return self.files.get(path)


@dataclass
class RootSet:
    """All roots indexed for one build invocation."""

    core: Root
    libraries: dict[str, Root] = field(default_factory=dict)
    devices: dict[str, Root] = field(default_factory=dict)

    def library(self, name: str) -> Root:
        """Return a library root by name.

        Raises:
            RootNotFoundError: If the library was never indexed.
        """
        try:
            return self.libraries[name]
        except KeyError:
            raise RootNotFoundError("library", name) from None

    def device(self, name: str) -> Root:
        """Return a device root by name.

        Raises:
            RootNotFoundError: If the device was never indexed.
        """
        try:
            return self.devices[name]
        except KeyError:
            raise RootNotFoundError("device", name) from None

    def all_roots(self) -> list[Root]:
        """All roots, core first, then libraries and devices by name."""
        return [
            self.core,
            *(self.libraries[n] for n in sorted(self.libraries)),
            *(self.devices[n] for n in sorted(self.devices)),
        ]


def build_entry(base_path: Path, rel_path: str) -> FileEntry:
    """Hash one file and scan it if it is a script."""
    source = base_path / rel_path
    file_hash = hash_file(source)
    if not rel_path.endswith(SCRIPT_SUFFIX):
        return FileEntry(path=rel_path, base=base_path, hash=file_hash)

    annotations = scan_file(source)
    return FileEntry(
        path=rel_path,
        base=base_path,
        hash=file_hash,
        dependencies=annotations.dependencies,
        datafiles=annotations.datafiles,
    )


def build_root(path: Path, name: str, kind: RootKind) -> Root:
    """Index the regular files directly inside a directory.

    Args:
        path: Directory to index.
        name: Name the root is registered under.
        kind: Role of the root.

    Returns:
        Root with one entry per file.

    Raises:
        FirmwareIOError: If the directory or a file cannot be read.
    """
    if not path.is_dir():
        raise FirmwareIOError(path, "root directory does not exist")

    root = Root(name=name, kind=kind, base_path=path)
    for file_name in list_files(path):
        root.files[file_name] = build_entry(path, file_name)

    logger.debug("Indexed %s root %s: %d files", kind.value, path, len(root.files))
    return root


def index_roots(settings: Settings) -> RootSet:
    """Index the core root and every site library and device folder.

    Args:
        settings: Settings with the input layout.

    Returns:
        RootSet for this build.

    Raises:
        FirmwareIOError: If the core root is missing or any file is unreadable.
    """
    root_set = RootSet(core=build_root(settings.firmware_dir, "firmware", RootKind.CORE))

    for lib_name in list_subdirs(settings.lib_dir):
        root_set.libraries[lib_name] = build_root(
            settings.lib_dir / lib_name, lib_name, RootKind.LIBRARY
        )

    for device_name in list_subdirs(settings.devices_dir):
        root_set.devices[device_name] = build_root(
            settings.devices_dir / device_name, device_name, RootKind.DEVICE
        )

    logger.info(
        "Indexed %d library roots and %d device roots",
        len(root_set.libraries),
        len(root_set.devices),
    )
    return root_set


__all__ = ["Root", "RootSet", "build_entry", "build_root", "index_roots"]
