"""Build orchestration module.

This module handles:
- Dependency resolution over ordered roots
- Library asset selection by glob pattern
- LFS image compilation and caching
- Manifest and image generation
"""

from nodemcu_imagegen.builds.manifest import FirmwareManifest
from nodemcu_imagegen.builds.service import BuildSummary, DeviceBuildResult

__all__ = ["BuildSummary", "DeviceBuildResult", "FirmwareManifest"]
