"""Error types for wiretag.

Compliance violations are reported as values; these exceptions signal
structural problems that stop a single check or scan step.
"""

from __future__ import annotations

from pathlib import Path


class WiretagError(RuntimeError):
    """Base class for fatal wiretag errors."""


class UnsupportedStructureError(WiretagError):
    """Raised when a value has no describable field structure."""

    def __init__(self, value: object):
        target = value if isinstance(value, type) else type(value)
        super().__init__(
            f"{target.__module__}.{target.__qualname__} is not a supported structure"
        )
        self.target = target


class ScanError(WiretagError):
    """Raised when a source file cannot be read or parsed during a scan."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"failed reading {str(path)!r}: {reason}")
        self.path = path
        self.reason = reason


class RegistryError(WiretagError):
    """Raised when an audit registry or target cannot be loaded."""
