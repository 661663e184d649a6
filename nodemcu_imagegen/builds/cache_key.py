"""Cache key computation for LFS images.

The key of an LFS image depends only on the content of the scripts it
bundles: the raw digests of the sources are concatenated in sorted path
order and hashed. Build order, root layout and device identity do not
enter the key, so identical script sets share one cached image.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from pathlib import Path

from nodemcu_imagegen.fsutil import HASH_ALGORITHM


def compute_lfs_cache_key(hashes: Mapping[str, str]) -> str:
    """Compute the cache key for a set of bundled scripts.

    Args:
        hashes: Mapping of relative path to hex content hash.

    Returns:
        Hex digest identifying the bundle.

    Raises:
        ValueError: If a hash is not valid hex.
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    for path in sorted(hashes):
        hasher.update(bytes.fromhex(hashes[path]))
    return hasher.hexdigest()


def lfs_image_name(device_id: str) -> str:
    """File name of a device's LFS image."""
    return f"{device_id}-lfs.img"


def lfs_cache_path(cache_dir: Path, image_name: str, cache_key: str) -> Path:
    """Location of a cached image for a key."""
    return cache_dir / f"{image_name}.{cache_key}"


__all__ = ["compute_lfs_cache_key", "lfs_cache_path", "lfs_image_name"]
