"""Coverage scanner.

Walks a source tree, finds every exported structure declaration outside the
audit machinery, and compares the result with the audit registry. The
recognition is syntactic: a module-level class counts as a structure when
its declaration carries a marker decorator (``@dataclass``), a marker base
(``BaseModel``), a base declared as a structure earlier in the same module,
or a ``__wire_fields__`` assignment. Cross-module inheritance is not
resolved.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

import structlog

from wiretag.exceptions import ScanError
from wiretag.model import DiscoveredType

DEFAULT_MARKER_DECORATORS: tuple[str, ...] = ("dataclass",)
DEFAULT_MARKER_BASES: tuple[str, ...] = ("BaseModel",)
TEST_DIRECTORIES = frozenset({"tests", "test"})
GENERATED_SUFFIXES: tuple[str, ...] = ("_pb2.py", "_pb2_grpc.py")
GENERATED_MARKERS: tuple[str, ...] = ("DO NOT EDIT", "@generated")
_GENERATED_HEADER_LINES = 5
_WIRE_FIELDS_ATTR = "__wire_fields__"

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ScanOptions:
    exclude_paths: tuple[str, ...] = ()
    exclude_files: tuple[str, ...] = ()
    audit_dir: Path | None = None
    registry_file: Path | None = None
    marker_bases: tuple[str, ...] = DEFAULT_MARKER_BASES
    marker_decorators: tuple[str, ...] = DEFAULT_MARKER_DECORATORS


def declaring_unit(path: Path) -> str:
    if path.stem == "__init__":
        return path.parent.name
    return path.stem


def _is_test_file(rel_path: Path) -> bool:
    name = rel_path.name
    if name == "conftest.py" or name.startswith("test_") or name.endswith("_test.py"):
        return True
    return any(part in TEST_DIRECTORIES for part in rel_path.parts[:-1])


def _is_excluded_file(rel_path: Path, exclude_files: Iterable[str]) -> bool:
    rel = rel_path.as_posix()
    for entry in exclude_files:
        candidate = entry.strip().strip("/")
        if not candidate:
            continue
        if rel_path.name == candidate or rel == candidate or rel.endswith("/" + candidate):
            return True
    return False


def skip_reason(path: Path, *, root: Path, options: ScanOptions) -> str | None:
    """Return why ``path`` is not scanned, or ``None`` when it is eligible."""
    rel_path = path.relative_to(root)
    if path.suffix != ".py":
        return "not a python source"
    if any(part == "__pycache__" or part.startswith(".") for part in rel_path.parts[:-1]):
        return "hidden or cache directory"
    if _is_test_file(rel_path):
        return "test file"
    if path.name.endswith(GENERATED_SUFFIXES):
        return "generated file"
    if options.audit_dir is not None and path.resolve().is_relative_to(options.audit_dir.resolve()):
        return "audit machinery"
    if options.registry_file is not None and path.resolve() == options.registry_file.resolve():
        return "audit machinery"
    padded = "/" + rel_path.as_posix()
    if any(fragment and fragment in padded for fragment in options.exclude_paths):
        return "excluded path"
    if _is_excluded_file(rel_path, options.exclude_files):
        return "excluded file"
    return None


def _dotted_name(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = _dotted_name(node.value)
        if parent is None:
            return None
        return f"{parent}.{node.attr}"
    if isinstance(node, ast.Subscript):
        return _dotted_name(node.value)
    return None


def _has_marker_decorator(node: ast.ClassDef, markers: tuple[str, ...]) -> bool:
    for decorator in node.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        dotted = _dotted_name(target)
        if dotted is not None and dotted.rsplit(".", 1)[-1] in markers:
            return True
    return False


def _has_marker_base(node: ast.ClassDef, markers: tuple[str, ...], local: set[str]) -> bool:
    for base in node.bases:
        dotted = _dotted_name(base)
        if dotted is None:
            continue
        if dotted in local or dotted.rsplit(".", 1)[-1] in markers:
            return True
    return False


def _declares_wire_fields(node: ast.ClassDef) -> bool:
    for statement in node.body:
        if isinstance(statement, ast.Assign):
            targets = statement.targets
        elif isinstance(statement, ast.AnnAssign):
            targets = [statement.target]
        else:
            continue
        if any(isinstance(target, ast.Name) and target.id == _WIRE_FIELDS_ATTR for target in targets):
            return True
    return False


def module_structures(tree: ast.Module, options: ScanOptions) -> list[tuple[str, int]]:
    """Return ``(name, line)`` for each exported module-level structure class."""
    local: set[str] = set()
    found: list[tuple[str, int]] = []
    for node in tree.body:
        if not isinstance(node, ast.ClassDef):
            continue
        if not (
            _has_marker_decorator(node, options.marker_decorators)
            or _has_marker_base(node, options.marker_bases, local)
            or _declares_wire_fields(node)
        ):
            continue
        local.add(node.name)
        if node.name.startswith("_"):
            continue
        found.append((node.name, node.lineno))
    return found


def _is_generated(source: str) -> bool:
    header = source.splitlines()[:_GENERATED_HEADER_LINES]
    return any(marker in line for line in header for marker in GENERATED_MARKERS)


def discover_file(
    path: Path,
    *,
    root: Path | None = None,
    options: ScanOptions | None = None,
) -> list[DiscoveredType]:
    options = options or ScanOptions()
    try:
        with path.open(encoding="utf-8") as handle:
            source = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ScanError(path, str(exc)) from exc
    if _is_generated(source):
        logger.debug("scan_file_skipped", path=str(path), reason="generated file")
        return []
    try:
        tree = ast.parse(source, filename=str(path))
    except SyntaxError as exc:
        raise ScanError(path, f"syntax error at line {exc.lineno}: {exc.msg}") from exc
    unit = declaring_unit(path)
    source_path = path.relative_to(root) if root is not None else path
    discovered = [
        DiscoveredType(qualified_name=f"{unit}.{name}", source=source_path, line=line)
        for name, line in module_structures(tree, options)
    ]
    for item in discovered:
        logger.debug("structure_discovered", type_name=item.qualified_name, path=item.source.as_posix())
    return discovered


def iter_source_files(root: Path, options: ScanOptions) -> Iterator[Path]:
    for path in sorted(root.rglob("*.py")):
        if not path.is_file():
            continue
        reason = skip_reason(path, root=root, options=options)
        if reason is not None:
            logger.debug("scan_file_skipped", path=str(path), reason=reason)
            continue
        yield path


def scan(root: Path, options: ScanOptions | None = None) -> tuple[DiscoveredType, ...]:
    """Discover exported structure types under ``root``.

    Types are returned in discovery order; a name seen again in a later
    file keeps its first location.
    """
    options = options or ScanOptions()
    root = Path(root)
    if not root.is_dir():
        raise ScanError(root, "scan root is not a directory")
    seen: dict[str, DiscoveredType] = {}
    for path in iter_source_files(root, options):
        for item in discover_file(path, root=root, options=options):
            seen.setdefault(item.qualified_name, item)
    return tuple(seen.values())


def gaps(discovered: Iterable[DiscoveredType], registered: Iterable[str]) -> list[str]:
    registered_names = set(registered)
    missing: list[str] = []
    for item in discovered:
        if item.qualified_name not in registered_names and item.qualified_name not in missing:
            missing.append(item.qualified_name)
    return missing


def construction_token_pattern(qualified_name: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(qualified_name)}(?!\w)")


def unreferenced(discovered: Iterable[DiscoveredType], registry_source: str) -> list[str]:
    """Return discovered names whose ``unit.Class`` token is absent from the registry text.

    This is a textual check only: an entry that names the right token but
    registers a different class still passes.
    """
    missing: list[str] = []
    for item in discovered:
        if item.qualified_name in missing:
            continue
        if construction_token_pattern(item.qualified_name).search(registry_source) is None:
            missing.append(item.qualified_name)
    return missing


def entry_skeleton(item: DiscoveredType) -> str:
    return f"AuditEntry({item.qualified_name}, ExceptionPolicy()),  # {item.source.as_posix()}:{item.line}"
