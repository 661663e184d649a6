"""Error definitions for nodemcu_imagegen.

Every error carries a stable ``code`` for programmatic handling and a list
of context breadcrumbs. Resolution code adds a breadcrumb at each level it
passes through (module, library, device), so the rendered message reads
from the outermost build step down to the root cause.
"""

from __future__ import annotations

from pathlib import Path

ROOT_NOT_FOUND = "root_not_found"
FILE_NOT_FOUND_IN_ROOTS = "file_not_found_in_roots"
GLOB_SYNTAX_ERROR = "glob_syntax_error"
DEFINITION_PARSE_ERROR = "definition_parse_error"
IO_ERROR = "io_error"
EXTERNAL_TOOL_ERROR = "external_tool_error"


class ImageGenError(Exception):
    """Base error for build pipeline failures."""

    def __init__(self, message: str, code: str = "imagegen_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.context: list[str] = []

    def add_context(self, context: str) -> None:
        """Record an outer breadcrumb; callers re-raise the same error."""
        self.context.append(context)

    def __str__(self) -> str:
        return ": ".join([*reversed(self.context), self.message])


class RootNotFoundError(ImageGenError):
    """Raised when a library or device root was never indexed."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Cannot find {kind} root '{name}'", code=ROOT_NOT_FOUND)
        self.kind = kind
        self.name = name


class FileNotFoundInRootsError(ImageGenError):
    """Raised when a module file is absent from every searched root."""

    def __init__(self, module: str, path: str, device: str | None = None) -> None:
        message = f"Cannot find module '{module}' ({path}) in firmware roots"
        if device:
            message += f" for device '{device}'"
        super().__init__(message, code=FILE_NOT_FOUND_IN_ROOTS)
        self.module = module
        self.path = path
        self.device = device


class GlobSyntaxError(ImageGenError):
    """Raised when a library include pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str, library: str | None = None) -> None:
        where = f" in library '{library}'" if library else ""
        super().__init__(
            f"Invalid include pattern '{pattern}'{where}: {reason}",
            code=GLOB_SYNTAX_ERROR,
        )
        self.pattern = pattern
        self.library = library


class DefinitionParseError(ImageGenError):
    """Raised when a device definition document is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"Invalid device definition {path}: {reason}",
            code=DEFINITION_PARSE_ERROR,
        )
        self.path = path


class FirmwareIOError(ImageGenError):
    """Raised when reading, hashing or writing a file fails."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"{path}: {reason}", code=IO_ERROR)
        self.path = Path(path)


class ExternalToolError(ImageGenError):
    """Raised when the bytecode compiler fails."""

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message, code=EXTERNAL_TOOL_ERROR)
        self.exit_code = exit_code


__all__ = [
    "DEFINITION_PARSE_ERROR",
    "EXTERNAL_TOOL_ERROR",
    "FILE_NOT_FOUND_IN_ROOTS",
    "GLOB_SYNTAX_ERROR",
    "IO_ERROR",
    "ROOT_NOT_FOUND",
    "DefinitionParseError",
    "ExternalToolError",
    "FileNotFoundInRootsError",
    "FirmwareIOError",
    "GlobSyntaxError",
    "ImageGenError",
    "RootNotFoundError",
]
