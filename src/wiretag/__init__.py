"""wiretag package root."""

from wiretag.compliance import check
from wiretag.describe import describe
from wiretag.exceptions import RegistryError, ScanError, UnsupportedStructureError, WiretagError
from wiretag.naming import expected_tag
from wiretag.policy import ExceptionPolicy
from wiretag.registry import AuditEntry, AuditRegistry
from wiretag.scanner import gaps, scan

__all__ = [
    "__version__",
    "AuditEntry",
    "AuditRegistry",
    "ExceptionPolicy",
    "RegistryError",
    "ScanError",
    "UnsupportedStructureError",
    "WiretagError",
    "check",
    "describe",
    "expected_tag",
    "gaps",
    "scan",
]

__version__ = "0.1.0"
