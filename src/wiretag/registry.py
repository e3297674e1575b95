from __future__ import annotations

import importlib
import importlib.util
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from wiretag.describe import qualified_name
from wiretag.exceptions import RegistryError
from wiretag.policy import ExceptionPolicy, resolve_policy

DEFAULT_REGISTRY_ATTR = "REGISTRY"


@dataclass(frozen=True)
class AuditEntry:
    target: object
    policy: ExceptionPolicy | None = None
    name: str | None = None

    @property
    def qualified_name(self) -> str:
        if self.name:
            return self.name
        target = self.target if isinstance(self.target, type) else type(self.target)
        return qualified_name(target)

    @property
    def resolved_policy(self) -> ExceptionPolicy:
        return resolve_policy(self.policy)


class AuditRegistry:
    """The table of types the audit treats as checked.

    Entries keep their authoring order. A name registered twice is a
    configuration defect; ``duplicates`` reports it and the audit fails on
    it, but lookups keep the first entry.
    """

    def __init__(self, entries: Iterable[AuditEntry] = ()):
        self._entries = tuple(entries)
        for entry in self._entries:
            if not isinstance(entry, AuditEntry):
                raise RegistryError(f"registry entries must be AuditEntry, got {type(entry).__name__}")

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> set[str]:
        return {entry.qualified_name for entry in self._entries}

    def entry_for(self, name: str) -> AuditEntry | None:
        for entry in self._entries:
            if entry.qualified_name == name:
                return entry
        return None

    def policy_for(self, name: str) -> ExceptionPolicy | None:
        entry = self.entry_for(name)
        if entry is None:
            return None
        return entry.resolved_policy

    def duplicates(self) -> list[str]:
        counts = Counter(entry.qualified_name for entry in self._entries)
        ordered: list[str] = []
        for entry in self._entries:
            name = entry.qualified_name
            if counts[name] > 1 and name not in ordered:
                ordered.append(name)
        return ordered


def _split_spec(spec: str, default_attr: str | None) -> tuple[str, str]:
    location, sep, attr = spec.rpartition(":")
    if not sep or "/" in attr or "\\" in attr or attr.endswith(".py"):
        location, attr = spec, ""
    attr = attr or (default_attr or "")
    if not location or not attr:
        raise RegistryError(f"expected 'module:NAME' or 'path.py:NAME', got {spec!r}")
    return location, attr


def _load_module_from_path(path: Path):
    if not path.is_file():
        raise RegistryError(f"registry file {str(path)!r} does not exist")
    module_name = f"wiretag_registry_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise RegistryError(f"cannot load {str(path)!r}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(spec.name, None)
        raise RegistryError(f"failed loading {str(path)!r}: {exc}") from exc
    return module


def load_object(spec: str, *, default_attr: str | None = None) -> tuple[object, Path | None]:
    """Load ``module:NAME`` or ``path/to/file.py:NAME``.

    Returns the object and the source file it was defined in, when known.
    """
    location, attr = _split_spec(spec, default_attr)
    if location.endswith(".py"):
        path = Path(location).resolve()
        module = _load_module_from_path(path)
    else:
        try:
            module = importlib.import_module(location)
        except ImportError as exc:
            raise RegistryError(f"cannot import {location!r}: {exc}") from exc
        module_file = getattr(module, "__file__", None)
        path = Path(module_file).resolve() if module_file else None
    try:
        value = getattr(module, attr)
    except AttributeError as exc:
        raise RegistryError(f"{location!r} has no attribute {attr!r}") from exc
    return value, path


def load_registry(spec: str) -> tuple[AuditRegistry, Path | None]:
    value, path = load_object(spec, default_attr=DEFAULT_REGISTRY_ATTR)
    if callable(value) and not isinstance(value, AuditRegistry):
        value = value()
    if isinstance(value, AuditRegistry):
        return value, path
    if isinstance(value, (list, tuple)):
        return AuditRegistry(value), path
    raise RegistryError(f"{spec!r} is not an AuditRegistry")
