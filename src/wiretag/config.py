from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from wiretag.describe import DEFAULT_TAG_KEY
from wiretag.naming import DEFAULT_ACRONYMS
from wiretag.scanner import DEFAULT_MARKER_BASES, DEFAULT_MARKER_DECORATORS, ScanOptions

DEFAULT_CONFIG_NAME = "wiretag.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def naming_defaults(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "naming")


def check_defaults(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "check")


def scan_defaults(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "scan")


def audit_defaults(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "audit")


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def acronym_list(section: TomlTable | None) -> tuple[str, ...]:
    extra: list[str] = []
    if isinstance(section, dict):
        extra = _normalize_name_list(section.get("acronyms"))
    return tuple(dict.fromkeys([*DEFAULT_ACRONYMS, *extra]))


def tag_key(section: TomlTable | None) -> str:
    if not isinstance(section, dict):
        return DEFAULT_TAG_KEY
    value = section.get("tag_key")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_TAG_KEY


def scan_options(
    section: TomlTable | None,
    *,
    exclude_paths: list[str] | None = None,
    exclude_files: list[str] | None = None,
    audit_dir: Path | None = None,
) -> ScanOptions:
    """Build scan options from a ``[scan]`` section plus explicit additions."""
    section = section if isinstance(section, dict) else {}
    marker_bases = _normalize_name_list(section.get("marker_bases"))
    marker_decorators = _normalize_name_list(section.get("marker_decorators"))
    return ScanOptions(
        exclude_paths=tuple(
            dict.fromkeys([*_normalize_name_list(section.get("exclude_paths")), *(exclude_paths or [])])
        ),
        exclude_files=tuple(
            dict.fromkeys([*_normalize_name_list(section.get("exclude_files")), *(exclude_files or [])])
        ),
        audit_dir=audit_dir,
        marker_bases=tuple(dict.fromkeys([*DEFAULT_MARKER_BASES, *marker_bases])),
        marker_decorators=tuple(dict.fromkeys([*DEFAULT_MARKER_DECORATORS, *marker_decorators])),
    )


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged
