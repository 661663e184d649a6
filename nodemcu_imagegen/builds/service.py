"""Build service module.

This module provides the high-level build API:
- build_all(): Main entry point - index roots and build every device
- build_device(): Resolve one device and write its manifest and image
- resolve_device(): Resolve one device without writing anything

Builds run strictly in sequence. The output directory is cleared at the
start of build_all(); the first failing device aborts the run, leaving the
artifacts of devices built before it in place.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from nodemcu_imagegen.builds.assembler import assemble_device_files
from nodemcu_imagegen.builds.image import image_checksum, render_image
from nodemcu_imagegen.builds.manifest import (
    FirmwareManifest,
    build_manifest,
    render_manifest,
)
from nodemcu_imagegen.config import get_settings
from nodemcu_imagegen.devices.io import load_definition
from nodemcu_imagegen.errors import ImageGenError
from nodemcu_imagegen.fsutil import remove_dir_contents, write_bytes
from nodemcu_imagegen.roots.index import index_roots

if TYPE_CHECKING:
    from nodemcu_imagegen.config import Settings
    from nodemcu_imagegen.devices.schema import FirmwareDefinition
    from nodemcu_imagegen.roots.index import RootSet

logger = logging.getLogger(__name__)


@dataclass
class DeviceBuildResult:
    """Artifacts written for one device.

    Attributes:
        device_name: Device folder name.
        device_id: Device identifier from its definition.
        manifest_path: Written manifest file.
        image_path: Written image file.
        file_count: Number of files in the manifest.
        checksum: Image checksum.
    """

    device_name: str
    device_id: str
    manifest_path: Path
    image_path: Path
    file_count: int
    checksum: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["manifest_path"] = str(self.manifest_path)
        data["image_path"] = str(self.image_path)
        return data


@dataclass
class BuildSummary:
    """Result of a full build run."""

    dist_dir: Path
    devices: list[DeviceBuildResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dist_dir": str(self.dist_dir),
            "devices": [d.to_dict() for d in self.devices],
        }


def load_device_definition(settings: Settings, device_name: str) -> FirmwareDefinition:
    """Load the definition document of a device folder.

    Raises:
        FirmwareIOError: If the document cannot be read.
        DefinitionParseError: If the document is invalid.
    """
    path = settings.devices_dir / device_name / settings.definition_filename
    try:
        return load_definition(path)
    except ImageGenError as e:
        e.add_context(f"device '{device_name}'")
        raise


def resolve_device(
    root_set: RootSet,
    device_name: str,
    settings: Settings,
) -> FirmwareManifest:
    """Resolve a device's manifest without writing any artifact.

    Args:
        root_set: Indexed roots.
        device_name: Device folder name.
        settings: Build settings.

    Returns:
        The device manifest.

    Raises:
        RootNotFoundError: If the device folder was never indexed.
        ImageGenError: If the definition or any dependency cannot be resolved.
    """
    root_set.device(device_name)
    definition = load_device_definition(settings, device_name)
    files = assemble_device_files(root_set, definition, device_name, settings)
    return build_manifest(definition, files)


def write_device_artifacts(
    manifest: FirmwareManifest,
    dist_dir: Path,
    device_name: str,
) -> DeviceBuildResult:
    """Write a device's manifest and image, both or neither.

    Both artifacts are rendered before anything is written; if the image
    cannot be written the manifest is removed again.

    Raises:
        FirmwareIOError: If a source file cannot be read or an output
            cannot be written.
    """
    device_id = manifest.device.id
    manifest_path = dist_dir / f"{device_id}.json"
    image_path = dist_dir / f"{device_id}.img"

    manifest_bytes = render_manifest(manifest)
    image_bytes = render_image(manifest)

    write_bytes(manifest_path, manifest_bytes)
    try:
        write_bytes(image_path, image_bytes)
    except ImageGenError:
        manifest_path.unlink(missing_ok=True)
        raise

    checksum = image_checksum(image_bytes)
    logger.info(
        "Wrote %s and %s (%d files, checksum %s)",
        manifest_path.name,
        image_path.name,
        len(manifest.files),
        checksum,
    )
    return DeviceBuildResult(
        device_name=device_name,
        device_id=device_id,
        manifest_path=manifest_path,
        image_path=image_path,
        file_count=len(manifest.files),
        checksum=checksum,
    )


def build_device(
    root_set: RootSet,
    device_name: str,
    settings: Settings,
) -> DeviceBuildResult:
    """Resolve one device and write its artifacts to the output directory.

    Raises:
        ImageGenError: On any failure, with the device as outer breadcrumb.
    """
    manifest = resolve_device(root_set, device_name, settings)
    return _write_with_context(manifest, settings, device_name)


def _write_with_context(
    manifest: FirmwareManifest,
    settings: Settings,
    device_name: str,
) -> DeviceBuildResult:
    try:
        return write_device_artifacts(manifest, settings.dist_dir, device_name)
    except ImageGenError as e:
        e.add_context(f"device '{device_name}'")
        raise


def build_all(settings: Settings | None = None) -> BuildSummary:
    """Build manifests and images for every device folder.

    Args:
        settings: Build settings; loaded from the environment if omitted.

    Returns:
        BuildSummary listing the artifacts of every device.

    Raises:
        ImageGenError: The first failure; no later device is attempted.
    """
    if settings is None:
        settings = get_settings()

    remove_dir_contents(settings.dist_dir)
    root_set = index_roots(settings)
    summary = BuildSummary(dist_dir=settings.dist_dir)

    built_ids: dict[str, str] = {}
    for device_name in sorted(root_set.devices):
        logger.info("Building device %s", device_name)
        manifest = resolve_device(root_set, device_name, settings)
        device_id = manifest.device.id
        if device_id in built_ids:
            raise ImageGenError(
                f"device id '{device_id}' is used by both "
                f"'{built_ids[device_id]}' and '{device_name}'",
                code="duplicate_device_id",
            )
        result = _write_with_context(manifest, settings, device_name)
        built_ids[device_id] = device_name
        summary.devices.append(result)

    logger.info("Built %d devices into %s", len(summary.devices), settings.dist_dir)
    return summary


__all__ = [
    "BuildSummary",
    "DeviceBuildResult",
    "build_all",
    "build_device",
    "load_device_definition",
    "resolve_device",
]
