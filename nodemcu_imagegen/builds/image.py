"""Firmware image packing.

An image is a single file a device can ingest in one transfer:

    Checksum: <digest of everything below>
    Version: 1 -- HomeNode Device Image File
    Device Id: <id>
    Device Name: <name>
    Total files: <file count + 1>
    <blank line>
    <path>
    <size in bytes>
    <raw content>...

One record follows per manifest file in path order, then a synthetic
``datafiles.json`` record holding a JSON array of every datafile token.
The checksum covers the header and all records, so identical inputs always
produce byte-identical images.
"""

from __future__ import annotations

import io
import json

from nodemcu_imagegen.builds.manifest import FirmwareManifest
from nodemcu_imagegen.fsutil import hash_bytes, read_bytes
from nodemcu_imagegen.types import DATAFILES_RECORD

IMAGE_FORMAT_VERSION = 1
IMAGE_BANNER = f"Version: {IMAGE_FORMAT_VERSION} -- HomeNode Device Image File"


def write_record(buf: io.BytesIO, path: str, content: bytes) -> None:
    """Append one path/size/content record."""
    buf.write(f"{path}\n{len(content)}\n".encode())
    buf.write(content)


def render_payload(manifest: FirmwareManifest) -> bytes:
    """Render the header and records covered by the checksum.

    Raises:
        FirmwareIOError: If a source file cannot be read.
    """
    files = sorted(manifest.files, key=lambda e: e.path)
    buf = io.BytesIO()
    header = (
        f"{IMAGE_BANNER}\n"
        f"Device Id: {manifest.device.id}\n"
        f"Device Name: {manifest.device.name}\n"
        f"Total files: {len(files) + 1}\n"
        "\n"
    )
    buf.write(header.encode())

    for entry in files:
        write_record(buf, entry.path, read_bytes(entry.source_path))

    datafiles = json.dumps(manifest.datafiles, separators=(",", ":"))
    write_record(buf, DATAFILES_RECORD, datafiles.encode())
    return buf.getvalue()


def render_image(manifest: FirmwareManifest) -> bytes:
    """Render a complete image: checksum line followed by the payload.

    Raises:
        FirmwareIOError: If a source file cannot be read.
    """
    payload = render_payload(manifest)
    return f"Checksum: {hash_bytes(payload)}\n".encode() + payload


def image_checksum(image: bytes) -> str:
    """Extract the checksum from a rendered image's first line."""
    first_line = image.split(b"\n", 1)[0].decode()
    prefix = "Checksum: "
    if not first_line.startswith(prefix):
        raise ValueError("image does not start with a checksum line")
    return first_line[len(prefix) :]


__all__ = [
    "IMAGE_BANNER",
    "IMAGE_FORMAT_VERSION",
    "image_checksum",
    "render_image",
    "render_payload",
    "write_record",
]
