"""Filesystem helpers used by the build pipeline.

Thin wrappers over pathlib/shutil that convert OSError into
FirmwareIOError so callers can attach build context.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any

from nodemcu_imagegen.errors import FirmwareIOError

logger = logging.getLogger(__name__)

# Digest used for file hashes, cache keys and image checksums; the device
# side verifies with the same algorithm.
HASH_ALGORITHM = "sha1"

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


def hash_bytes(data: bytes) -> str:
    """Return the hex digest of a byte string."""
    return hashlib.new(HASH_ALGORITHM, data).hexdigest()


def hash_file(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute the hex digest of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        Hex digest of the file content.

    Raises:
        FirmwareIOError: If the file cannot be read.
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    try:
        with file_path.open("rb") as f:
            while chunk := f.read(chunk_size):
                hasher.update(chunk)
    except OSError as e:
        raise FirmwareIOError(file_path, f"cannot hash file: {e}") from e
    return hasher.hexdigest()


def read_bytes(file_path: Path) -> bytes:
    """Read a whole file, raising FirmwareIOError on failure."""
    try:
        return file_path.read_bytes()
    except OSError as e:
        raise FirmwareIOError(file_path, f"cannot read file: {e}") from e


def read_text(file_path: Path) -> str:
    """Read a text file as UTF-8, replacing undecodable bytes."""
    return read_bytes(file_path).decode("utf-8", errors="replace")


def list_files(directory: Path) -> list[str]:
    """List the names of regular files directly inside a directory.

    Args:
        directory: Directory to list.

    Returns:
        Sorted file names.

    Raises:
        FirmwareIOError: If the directory cannot be read.
    """
    try:
        return sorted(p.name for p in directory.iterdir() if p.is_file())
    except OSError as e:
        raise FirmwareIOError(directory, f"cannot list directory: {e}") from e


def list_subdirs(directory: Path) -> list[str]:
    """List the names of sub-directories, sorted; empty if absent."""
    if not directory.is_dir():
        return []
    try:
        return sorted(p.name for p in directory.iterdir() if p.is_dir())
    except OSError as e:
        raise FirmwareIOError(directory, f"cannot list directory: {e}") from e


def remove_dir_contents(directory: Path) -> None:
    """Remove everything inside a directory, creating it if needed."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
        for item in directory.iterdir():
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()
    except OSError as e:
        raise FirmwareIOError(directory, f"cannot clear directory: {e}") from e
    logger.debug("Cleared %s", directory)


def write_bytes(dest: Path, data: bytes) -> None:
    """Write a file atomically through a sibling temp file.

    Raises:
        FirmwareIOError: If the file cannot be written.
    """
    tmp_path = dest.with_name(f".{dest.name}.tmp")
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_bytes(data)
        os.replace(tmp_path, dest)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise FirmwareIOError(dest, f"cannot write file: {e}") from e


def dump_json(data: Any) -> bytes:
    """Serialize to the canonical on-disk JSON form."""
    return (json.dumps(data, indent=2, sort_keys=True) + "\n").encode("utf-8")


__all__ = [
    "HASH_ALGORITHM",
    "HASH_CHUNK_SIZE",
    "dump_json",
    "hash_bytes",
    "hash_file",
    "list_files",
    "list_subdirs",
    "read_bytes",
    "read_text",
    "remove_dir_contents",
    "write_bytes",
]
