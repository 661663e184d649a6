"""LFS image compilation with a content-addressed cache.

Every script of a library flagged ``lfs`` is compiled with ``luac.cross``
into a single Lua Flash Store image; the library's other files ship
loose. Compiling is slow, so images are kept under the cache directory
named ``<device-id>-lfs.img.<key>``, where the key is computed from the
content hashes of the bundled scripts. Cached images are only ever added,
never rewritten.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from nodemcu_imagegen.builds.cache_key import (
    compute_lfs_cache_key,
    lfs_cache_path,
    lfs_image_name,
)
from nodemcu_imagegen.errors import ExternalToolError
from nodemcu_imagegen.fsutil import hash_file
from nodemcu_imagegen.types import FileEntry

if TYPE_CHECKING:
    from nodemcu_imagegen.config import Settings
    from nodemcu_imagegen.roots.index import Root

logger = logging.getLogger(__name__)


def compose_luac_command(
    luac_cross: str,
    output: Path,
    sources: Sequence[Path],
) -> list[str]:
    """Compose the luac.cross command building an LFS image.

    Args:
        luac_cross: Compiler executable.
        output: Image file to write.
        sources: Lua sources, in bundle order.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [luac_cross, "-f", "-o", str(output), *(str(s) for s in sources)]


def run_luac(
    sources: Sequence[Path],
    output: Path,
    luac_cross: str = "luac.cross",
    timeout: int | None = None,
) -> None:
    """Compile Lua sources into an LFS image.

    Raises:
        ExternalToolError: If the compiler cannot be started, times out or
            exits non-zero.
    """
    cmd = compose_luac_command(luac_cross, output, sources)
    logger.info("Compiling LFS image: %s", shlex.join(cmd))

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(
            f"{luac_cross} timed out after {timeout} seconds", exit_code=-1
        ) from e
    except OSError as e:
        raise ExternalToolError(f"Failed to run {luac_cross}: {e}") from e

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise ExternalToolError(
            f"{luac_cross} failed with exit code {result.returncode}: {detail}",
            exit_code=result.returncode,
        )


def ensure_lfs_image(
    entries: Sequence[FileEntry],
    device_id: str,
    settings: Settings,
) -> Path:
    """Return a compiled LFS image for the given scripts, compiling on a miss.

    Args:
        entries: Scripts to bundle.
        device_id: Device the image is built for; names the image.
        settings: Settings with cache directory and compiler.

    Returns:
        Path of the cached image.

    Raises:
        ExternalToolError: If compilation fails.
    """
    cache_key = compute_lfs_cache_key({e.path: e.hash for e in entries})
    cached = lfs_cache_path(settings.cache_dir, lfs_image_name(device_id), cache_key)
    if cached.is_file():
        logger.info("LFS cache hit for %s: %s", device_id, cached.name)
        return cached

    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    tmp_path = cached.with_name(f".{cached.name}.tmp")
    sources = [e.source_path for e in sorted(entries, key=lambda e: e.path)]
    try:
        run_luac(
            sources,
            tmp_path,
            luac_cross=settings.luac_cross,
            timeout=settings.luac_timeout,
        )
        os.replace(tmp_path, cached)
    except OSError as e:
        raise ExternalToolError(f"Cannot store LFS image {cached}: {e}") from e
    finally:
        tmp_path.unlink(missing_ok=True)

    logger.info("Cached LFS image for %s: %s", device_id, cached.name)
    return cached


def bundle_lfs_scripts(
    files: dict[str, FileEntry],
    lfs_roots: Sequence[Root],
    device_id: str,
    settings: Settings,
) -> None:
    """Ship LFS libraries as one compiled image plus their loose assets.

    Every script of every root in ``lfs_roots`` is compiled into
    ``<device-id>-lfs.img``, whether or not it was resolved as a dependency.
    Scripts from those roots already in ``files`` are removed, and the
    libraries' other files are added as loose files. The first root in
    declared order wins when two libraries ship the same script path.
    Datafile tokens of the bundled scripts carry over to the image entry.

    Args:
        files: Accumulated file set. Updated in place.
        lfs_roots: Library roots flagged for LFS, in declared order.
        device_id: Device being built.
        settings: Settings with cache directory and compiler.

    Raises:
        ExternalToolError: If compilation fails.
        FirmwareIOError: If the compiled image cannot be hashed.
    """
    lfs_bases = {root.base_path for root in lfs_roots}
    scripts: dict[str, FileEntry] = {}
    for root in lfs_roots:
        for path in sorted(root.files):
            entry = root.files[path]
            if entry.is_script:
                scripts.setdefault(path, entry)
            else:
                files[path] = entry

    resolved = [p for p, e in files.items() if e.is_script and e.base in lfs_bases]
    for path in resolved:
        del files[path]

    if not scripts:
        logger.warning(
            "LFS libraries %s of device %s contain no scripts",
            ", ".join(root.name for root in lfs_roots),
            device_id,
        )
        return

    bundled = list(scripts.values())
    cached = ensure_lfs_image(bundled, device_id, settings)

    datafiles = sorted({token for e in bundled for token in e.datafiles})
    image_name = lfs_image_name(device_id)
    files[image_name] = FileEntry(
        path=image_name,
        base=settings.cache_dir,
        hash=hash_file(cached),
        datafiles=tuple(datafiles),
        origin=cached,
    )
    logger.debug("Bundled %d scripts into %s", len(bundled), image_name)


__all__ = [
    "bundle_lfs_scripts",
    "compose_luac_command",
    "ensure_lfs_image",
    "run_luac",
]
