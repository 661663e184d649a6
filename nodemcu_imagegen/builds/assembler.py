"""Device file-set assembly.

Merges the stages that contribute files to a device, later stages
overwriting earlier ones on path collision:

1. the ``require`` closure of every entry module
2. files matched by library include patterns
3. every file of LFS libraries: scripts compiled into the LFS image,
   other files shipped loose
4. every file in the device's own folder
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nodemcu_imagegen.builds.assets import add_library_assets
from nodemcu_imagegen.builds.lfs import bundle_lfs_scripts
from nodemcu_imagegen.builds.resolver import device_search_roots, resolve_module
from nodemcu_imagegen.errors import ImageGenError
from nodemcu_imagegen.types import FileEntry

if TYPE_CHECKING:
    from nodemcu_imagegen.config import Settings
    from nodemcu_imagegen.devices.schema import FirmwareDefinition
    from nodemcu_imagegen.roots.index import Root, RootSet

logger = logging.getLogger(__name__)


def add_device_files(device_root: Root, files: dict[str, FileEntry]) -> None:
    """Overlay every file of the device root; device files always win."""
    for path, entry in device_root.files.items():
        if path in files and files[path] is not entry:
            logger.debug(
                "Device file %s overrides %s", path, files[path].source_path
            )
        files[path] = entry


def assemble_device_files(
    root_set: RootSet,
    definition: FirmwareDefinition,
    device_name: str,
    settings: Settings | None = None,
) -> dict[str, FileEntry]:
    """Compute the final file set of a device.

    Args:
        root_set: Indexed roots.
        definition: Parsed device definition.
        device_name: Device folder name.
        settings: Needed only when a library is flagged for LFS.

    Returns:
        Mapping of relative path to entry, without duplicate paths.

    Raises:
        ImageGenError: Any resolution failure, with the device as outer
            breadcrumb.
    """
    files: dict[str, FileEntry] = {}
    try:
        device_root = root_set.device(device_name)
        roots = device_search_roots(root_set, definition.libs)
        for module in definition.modules:
            try:
                resolve_module(module.name, roots, files, device=device_name)
            except ImageGenError as e:
                e.add_context(f"entry module '{module.name}'")
                raise

        add_library_assets(root_set, definition.libs, files)

        lfs_libs = [lib for lib in definition.libs if lib.lfs]
        if lfs_libs:
            if settings is None:
                raise ImageGenError("LFS libraries require build settings")
            lfs_roots = [root_set.library(lib.name) for lib in lfs_libs]
            bundle_lfs_scripts(files, lfs_roots, definition.id, settings)

        add_device_files(device_root, files)
    except ImageGenError as e:
        e.add_context(f"device '{device_name}'")
        raise

    logger.info("Assembled %d files for device %s", len(files), device_name)
    return files


__all__ = ["add_device_files", "assemble_device_files"]
