"""Dependency resolution over ordered roots.

Module names map one-to-one to relative paths (``a.b`` -> ``a/b.lua``).
Resolution is a depth-first walk of ``require`` edges that records each
file in a shared path-keyed dict; a path already in the dict is never
resolved again, which terminates cycles and collapses diamonds.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from nodemcu_imagegen.errors import FileNotFoundInRootsError, ImageGenError
from nodemcu_imagegen.types import SCRIPT_SUFFIX, FileEntry

if TYPE_CHECKING:
    from nodemcu_imagegen.devices.schema import LibraryDefinition
    from nodemcu_imagegen.roots.index import Root, RootSet

logger = logging.getLogger(__name__)


def module_to_path(module_name: str) -> str:
    """Convert a dotted module name to its relative script path."""
    return module_name.replace(".", "/") + SCRIPT_SUFFIX


def find_in_roots(path: str, roots: Sequence[Root]) -> FileEntry | None:
    """Return the entry for a path from the first root that has it."""
    for root in roots:
        entry = root.get(path)
        if entry is not None:
            return entry
    return None


def device_search_roots(
    root_set: RootSet,
    libs: Sequence[LibraryDefinition],
) -> list[Root]:
    """Build the module search order for a device.

    Libraries that take part in dependency search come first, in declared
    order; the core root is searched last.

    Raises:
        RootNotFoundError: If a library was never indexed.
    """
    roots = [root_set.library(lib.name) for lib in libs if lib.include_lua]
    roots.append(root_set.core)
    return roots


def resolve_module(
    module_name: str,
    roots: Sequence[Root],
    files: dict[str, FileEntry],
    device: str | None = None,
) -> None:
    """Add a module and its transitive dependencies to a file set.

    Args:
        module_name: Dotted module name.
        roots: Roots in search order.
        files: Accumulated file set, keyed by relative path. Updated in place.
        device: Device being built, for error messages.

    Raises:
        FileNotFoundInRootsError: If the module or a dependency is missing.
    """
    path = module_to_path(module_name)
    if path in files:
        return

    entry = find_in_roots(path, roots)
    if entry is None:
        raise FileNotFoundInRootsError(module_name, path, device=device)

    files[path] = entry
    logger.debug("Resolved %s -> %s", module_name, entry.source_path)

    for dependency in sorted(entry.dependencies):
        try:
            resolve_module(dependency, roots, files, device=device)
        except ImageGenError as e:
            e.add_context(
                f"dependency '{dependency}' of module '{module_name}' ({entry.source_path})"
            )
            raise


__all__ = [
    "device_search_roots",
    "find_in_roots",
    "module_to_path",
    "resolve_module",
]
