"""Shared fixtures for building firmware source trees on disk."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from nodemcu_imagegen.config import Settings


def _write_file(base: Path, rel_path: str, content: str | bytes = "") -> Path:
    path = base / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    return path


@pytest.fixture
def write_file() -> Callable[..., Path]:
    """Write a file below a base directory, creating parent directories."""
    return _write_file


@pytest.fixture
def write_definition() -> Callable[[Settings, str, dict[str, Any]], Path]:
    """Write a device folder's definition document."""

    def _write_definition(settings: Settings, device: str, data: dict[str, Any]) -> Path:
        return _write_file(
            settings.devices_dir / device,
            settings.definition_filename,
            json.dumps(data),
        )

    return _write_definition


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at an empty source layout under tmp_path."""
    s = Settings(
        firmware_dir=tmp_path / "firmware",
        site_dir=tmp_path / "site",
        dist_dir=tmp_path / "dist",
        cache_dir=tmp_path / "imgcache",
    )
    s.firmware_dir.mkdir()
    s.lib_dir.mkdir(parents=True)
    s.devices_dir.mkdir(parents=True)
    return s
