"""Pydantic models for device definition documents.

A device folder under ``site/devices/<name>/`` holds a ``firmware.json``
describing the device identity, the site libraries it uses and the entry
modules to resolve. Field names follow the on-disk JSON (``includeLua``);
the Python attribute names are snake_case.
"""

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nodemcu_imagegen.types import DeviceInfo

DEVICE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_.\-]+$")
MODULE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*(\.[A-Za-z_][A-Za-z0-9_\-]*)*$")
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x1f\x7f]")


class LibraryDefinition(BaseModel):
    """Schema for a library used by a device.

    Attributes:
        name: Folder name under site/lib.
        include_lua: Whether the library's Lua modules take part in
            dependency search.
        include: Glob patterns of extra files to ship from the library.
        lfs: Bundle this library's resolved scripts into the device's
            LFS image instead of shipping them as loose files.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: Annotated[str, Field(min_length=1, max_length=255)]
    include_lua: bool = Field(default=False, alias="includeLua")
    include: list[str] = Field(default_factory=list)
    lfs: bool = Field(default=False)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Library names are single folder names."""
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"library name must be a folder name, got '{v}'")
        return v

    @field_validator("include")
    @classmethod
    def validate_include(cls, v: list[str]) -> list[str]:
        """Validate patterns are non-empty strings."""
        for pattern in v:
            if not pattern:
                raise ValueError("include patterns must be non-empty strings")
        return v


class ModuleDefinition(BaseModel):
    """Schema for an entry module.

    Attributes:
        name: Dotted module name.
        autostart: Start the module at boot; passed through to the manifest.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, max_length=255)]
    autostart: bool = Field(default=False)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the module name is dotted identifiers."""
        if not MODULE_NAME_PATTERN.match(v):
            raise ValueError(f"invalid module name '{v}'")
        return v


class FirmwareDefinition(BaseModel):
    """Complete device definition.

    Attributes:
        name: Human-readable device name.
        id: Device identifier, used to name output artifacts.
        libs: Libraries in search order.
        modules: Entry modules in declared order.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, max_length=255)]
    id: Annotated[str, Field(min_length=1, max_length=255)]
    libs: list[LibraryDefinition] = Field(default_factory=list)
    modules: list[ModuleDefinition] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """The name is written as a single image header line."""
        if CONTROL_CHAR_PATTERN.search(v):
            raise ValueError("name must not contain control characters")
        return v

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is safe to use as a file name."""
        if not DEVICE_ID_PATTERN.match(v):
            raise ValueError(
                f"id must match pattern {DEVICE_ID_PATTERN.pattern}, got '{v}'"
            )
        return v

    @field_validator("libs")
    @classmethod
    def validate_unique_libs(
        cls, v: list[LibraryDefinition]
    ) -> list[LibraryDefinition]:
        """Each library may be listed once."""
        seen: set[str] = set()
        for lib in v:
            if lib.name in seen:
                raise ValueError(f"library '{lib.name}' listed more than once")
            seen.add(lib.name)
        return v

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(name=self.name, id=self.id)

    @property
    def autostart_modules(self) -> list[str]:
        """Names of modules flagged autostart, in declared order."""
        return [m.name for m in self.modules if m.autostart]


__all__ = [
    "CONTROL_CHAR_PATTERN",
    "DEVICE_ID_PATTERN",
    "MODULE_NAME_PATTERN",
    "FirmwareDefinition",
    "LibraryDefinition",
    "ModuleDefinition",
]
