"""Device definitions.

This module handles:
- Pydantic models for firmware.json documents
- Loading definitions from JSON or YAML
"""

from nodemcu_imagegen.devices.schema import (
    FirmwareDefinition,
    LibraryDefinition,
    ModuleDefinition,
)

__all__ = ["FirmwareDefinition", "LibraryDefinition", "ModuleDefinition"]
