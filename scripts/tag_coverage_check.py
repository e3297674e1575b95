#!/usr/bin/env python3
"""Run the wire tag audit for CI and report a one-line summary."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from wiretag.audit import run_audit
from wiretag.config import (
    acronym_list,
    audit_defaults,
    check_defaults,
    merge_payload,
    naming_defaults,
    scan_defaults,
    scan_options,
    tag_key,
)
from wiretag.exceptions import WiretagError
from wiretag.registry import load_registry


def run(
    *,
    registry: str | None = None,
    root: Path | None = None,
    config: Path | None = None,
    exclude_paths: tuple[str, ...] = (),
    exclude_files: tuple[str, ...] = (),
) -> int:
    settings = merge_payload(
        {"registry": registry, "root": str(root) if root is not None else None},
        audit_defaults(root=root, config_path=config),
    )
    registry_spec = settings.get("registry")
    if not isinstance(registry_spec, str) or not registry_spec:
        print(
            "wire tag audit error: no registry given; pass --registry or set [audit] registry",
            file=sys.stderr,
        )
        return 2
    try:
        audit_registry, registry_path = load_registry(registry_spec)
        result = run_audit(
            audit_registry,
            root=Path(str(settings.get("root") or ".")),
            registry_path=registry_path,
            options=scan_options(
                scan_defaults(root=root, config_path=config),
                exclude_paths=list(exclude_paths),
                exclude_files=list(exclude_files),
            ),
            tag_key=tag_key(check_defaults(root=root, config_path=config)),
            acronyms=acronym_list(naming_defaults(root=root, config_path=config)),
        )
    except WiretagError as exc:
        print(f"wire tag audit error: {exc}", file=sys.stderr)
        return 2
    for line in result.render():
        print(line)
    return result.exit_code


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--registry", default=None)
    parser.add_argument("--root", default=None)
    parser.add_argument("--config", default=None)
    parser.add_argument("--exclude-path", action="append", default=[])
    parser.add_argument("--exclude-file", action="append", default=[])
    args = parser.parse_args(argv)
    return run(
        registry=args.registry,
        root=Path(args.root).resolve() if args.root else None,
        config=Path(args.config) if args.config else None,
        exclude_paths=tuple(args.exclude_path),
        exclude_files=tuple(args.exclude_file),
    )


if __name__ == "__main__":
    raise SystemExit(main())
