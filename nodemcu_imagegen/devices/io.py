"""Device definition loading.

Definitions are normally JSON (``firmware.json``); YAML files are accepted
too so hand-written definitions can carry comments. Any parse or
validation failure is reported as DefinitionParseError.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nodemcu_imagegen.devices.schema import FirmwareDefinition
from nodemcu_imagegen.errors import DefinitionParseError, FirmwareIOError


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise FirmwareIOError(path, f"cannot read device definition: {e}") from e


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Raises:
        FirmwareIOError: If the file cannot be read.
        DefinitionParseError: If the file is not a YAML mapping.
    """
    try:
        data = yaml.safe_load(_read_text(path))
    except yaml.YAMLError as e:
        raise DefinitionParseError(path, f"invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DefinitionParseError(
            path, f"expected a YAML mapping, got {type(data).__name__}"
        )
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FirmwareIOError: If the file cannot be read.
        DefinitionParseError: If the file is not a JSON object.
    """
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise DefinitionParseError(path, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DefinitionParseError(
            path, f"expected a JSON object, got {type(data).__name__}"
        )
    return data


def parse_definition_data(data: dict[str, Any], path: Path) -> FirmwareDefinition:
    """Validate definition data against the schema.

    Args:
        data: Parsed document.
        path: Source path, for error messages.

    Raises:
        DefinitionParseError: If data does not match the schema.
    """
    try:
        return FirmwareDefinition.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise DefinitionParseError(path, errors) from e


def load_definition(path: Path) -> FirmwareDefinition:
    """Load and validate a device definition (JSON or YAML by extension).

    Raises:
        FirmwareIOError: If the file cannot be read.
        DefinitionParseError: If the extension is unsupported or content invalid.
    """
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = load_yaml(path)
    elif suffix == ".json":
        data = load_json(path)
    else:
        raise DefinitionParseError(
            path, f"unsupported file extension '{suffix}'. Use .json, .yaml or .yml"
        )
    return parse_definition_data(data, path)


__all__ = [
    "load_definition",
    "load_json",
    "load_yaml",
    "parse_definition_data",
]
