"""NodeMCU Image Generator - deterministic firmware packaging for Lua devices.

This package resolves which Lua modules and assets each device needs from a
shared core tree, site libraries and per-device folders, and packs the
result into a reproducible manifest and image file.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
