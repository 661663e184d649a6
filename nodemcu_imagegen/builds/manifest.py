"""Firmware manifest generation.

The manifest lists every file selected for a device with its content hash.
It is the input the sync layer diffs against a device's current files, so
its serialization must not depend on module order, library order or
directory listing order: files are always sorted by path and JSON keys are
sorted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from nodemcu_imagegen.fsutil import dump_json
from nodemcu_imagegen.types import DeviceInfo, FileEntry

if TYPE_CHECKING:
    from nodemcu_imagegen.devices.schema import FirmwareDefinition


@dataclass
class FirmwareManifest:
    """Resolved file set of one device.

    Attributes:
        device: Device identity.
        files: Entries sorted by path.
        autostart: Modules started at boot, in declared order.
    """

    device: DeviceInfo
    files: list[FileEntry] = field(default_factory=list)
    autostart: list[str] = field(default_factory=list)

    @property
    def datafiles(self) -> list[str]:
        """Datafile tokens of every file, concatenated in path order.

        A token declared by several files is listed once per file.
        """
        return [
            token
            for entry in sorted(self.files, key=lambda e: e.path)
            for token in entry.datafiles
        ]


def build_manifest(
    definition: FirmwareDefinition,
    files: Mapping[str, FileEntry],
) -> FirmwareManifest:
    """Wrap a device's final file set into a manifest.

    Args:
        definition: Device definition providing identity and autostart flags.
        files: Final file set keyed by relative path.

    Returns:
        FirmwareManifest with files sorted by path.
    """
    return FirmwareManifest(
        device=definition.device_info,
        files=[files[path] for path in sorted(files)],
        autostart=definition.autostart_modules,
    )


def entry_to_dict(entry: FileEntry) -> dict[str, Any]:
    """Serialize one manifest entry."""
    data: dict[str, Any] = {
        "path": entry.path,
        "hash": entry.hash,
        "source": entry.source_path.as_posix(),
    }
    if entry.datafiles:
        data["datafiles"] = list(entry.datafiles)
    return data


def manifest_to_dict(manifest: FirmwareManifest) -> dict[str, Any]:
    """Convert a manifest to its JSON document form."""
    return {
        "name": manifest.device.name,
        "id": manifest.device.id,
        "autostart": list(manifest.autostart),
        "files": [
            entry_to_dict(e) for e in sorted(manifest.files, key=lambda e: e.path)
        ],
    }


def render_manifest(manifest: FirmwareManifest) -> bytes:
    """Serialize a manifest to canonical JSON bytes."""
    return dump_json(manifest_to_dict(manifest))


__all__ = [
    "FirmwareManifest",
    "build_manifest",
    "entry_to_dict",
    "manifest_to_dict",
    "render_manifest",
]
