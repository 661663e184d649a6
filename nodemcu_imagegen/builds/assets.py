"""Library asset selection.

Libraries can ship files that no module requires (configuration, HTML,
certificates) by listing glob patterns under ``include``. Patterns are
matched against the relative paths of the library root and are
separator-aware:

- ``*`` matches any run of characters except ``/``
- ``**`` matches any run of characters including ``/``
- ``?`` matches one character except ``/``
- ``[abc]``, ``[a-z]``, ``[!abc]`` / ``[^abc]`` character classes
- ``{cfg,json}`` alternatives
- ``\\`` escapes the next character
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING

from nodemcu_imagegen.errors import GlobSyntaxError, ImageGenError
from nodemcu_imagegen.types import FileEntry

if TYPE_CHECKING:
    from nodemcu_imagegen.devices.schema import LibraryDefinition
    from nodemcu_imagegen.roots.index import RootSet

logger = logging.getLogger(__name__)

SEPARATOR = "/"


def _translate_class(
    pattern: str, start: int, library: str | None
) -> tuple[str, int]:
    """Translate a ``[...]`` class starting at ``start``.

    Returns:
        Tuple of (regex fragment, index just past the closing bracket).
    """
    i = start + 1
    negate = i < len(pattern) and pattern[i] in "!^"
    if negate:
        i += 1

    parts: list[str] = []
    while True:
        if i >= len(pattern):
            raise GlobSyntaxError(pattern, "unclosed '['", library)
        c = pattern[i]
        if c == "]":
            break
        if c == "\\":
            if i + 1 >= len(pattern):
                raise GlobSyntaxError(pattern, "trailing escape", library)
            c = pattern[i + 1]
            i += 1
        if i + 2 < len(pattern) and pattern[i + 1] == "-" and pattern[i + 2] != "]":
            hi = pattern[i + 2]
            if hi < c:
                raise GlobSyntaxError(pattern, f"invalid range '{c}-{hi}'", library)
            parts.append(f"{re.escape(c)}-{re.escape(hi)}")
            i += 3
            continue
        parts.append(re.escape(c))
        i += 1

    if not parts:
        raise GlobSyntaxError(pattern, "empty character class", library)
    body = "".join(parts)
    fragment = f"[^{body}{SEPARATOR}]" if negate else f"[{body}]"
    return fragment, i + 1


def compile_glob(pattern: str, library: str | None = None) -> re.Pattern[str]:
    """Compile a glob pattern into an anchored regular expression.

    Args:
        pattern: Glob pattern.
        library: Library the pattern belongs to, for error messages.

    Returns:
        Compiled pattern; use ``match`` on a relative path.

    Raises:
        GlobSyntaxError: If the pattern is malformed.
    """
    out: list[str] = []
    brace_depth = 0
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                out.append(".*")
                i += 2
                continue
            out.append(f"[^{SEPARATOR}]*")
        elif c == "?":
            out.append(f"[^{SEPARATOR}]")
        elif c == "[":
            fragment, i = _translate_class(pattern, i, library)
            out.append(fragment)
            continue
        elif c == "{":
            brace_depth += 1
            out.append("(?:")
        elif c == "}" and brace_depth:
            brace_depth -= 1
            out.append(")")
        elif c == "," and brace_depth:
            out.append("|")
        elif c == "\\":
            if i + 1 >= n:
                raise GlobSyntaxError(pattern, "trailing escape", library)
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        else:
            out.append(re.escape(c))
        i += 1

    if brace_depth:
        raise GlobSyntaxError(pattern, "unclosed '{'", library)
    return re.compile("(?s:" + "".join(out) + r")\Z")


def add_library_assets(
    root_set: RootSet,
    libs: Sequence[LibraryDefinition],
    files: dict[str, FileEntry],
) -> None:
    """Add files matched by library include patterns to a file set.

    Matched entries overwrite any entry already present at the same path.

    Args:
        root_set: Indexed roots.
        libs: Libraries of the device, in declared order.
        files: Accumulated file set. Updated in place.

    Raises:
        GlobSyntaxError: If a pattern is malformed.
        RootNotFoundError: If a library was never indexed.
    """
    for lib in libs:
        if not lib.include:
            continue
        try:
            matchers = [compile_glob(p, library=lib.name) for p in lib.include]
            root = root_set.library(lib.name)
        except ImageGenError as e:
            e.add_context(f"library '{lib.name}'")
            raise

        matched = 0
        for path in sorted(root.files):
            if any(m.match(path) for m in matchers):
                files[path] = root.files[path]
                matched += 1
        logger.debug("Library %s: %d files matched include patterns", lib.name, matched)


__all__ = ["add_library_assets", "compile_glob"]
