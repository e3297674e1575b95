from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from wiretag.audit import run_audit
from wiretag.compliance import check, render_report
from wiretag.config import (
    acronym_list,
    audit_defaults,
    check_defaults,
    merge_payload,
    naming_defaults,
    scan_defaults,
    scan_options,
    tag_key as configured_tag_key,
)
from wiretag.exceptions import WiretagError
from wiretag.log import configure_logging
from wiretag.naming import expected_tag
from wiretag.policy import ExceptionPolicy
from wiretag.registry import load_object, load_registry
from wiretag.scanner import scan
from wiretag.schema import AuditReportDTO, ComplianceReportDTO, ScanResponseDTO

app = typer.Typer(add_completion=False, help="Audit wire tags of data-transfer types.")


def _extend_import_path(paths: List[Path]) -> None:
    for path in reversed(paths):
        entry = str(path.resolve())
        if entry not in sys.path:
            sys.path.insert(0, entry)


def _fail(exc: WiretagError) -> NoReturn:
    typer.secho(str(exc), err=True, fg=typer.colors.RED)
    raise typer.Exit(code=2)


def _echo_json(payload: dict[str, object]) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug events to stderr."),
    log_json: bool = typer.Option(False, "--log-json", help="Render log events as JSON lines."),
) -> None:
    configure_logging("debug" if verbose else "warning", json_output=log_json)


@app.command("tag")
def tag(
    identifiers: List[str] = typer.Argument(..., help="Field identifiers."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print the wire tag expected for each identifier."""
    acronyms = acronym_list(naming_defaults(root=root, config_path=config))
    for identifier in identifiers:
        try:
            expected = expected_tag(identifier, acronyms)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(f"{identifier}\t{expected}")


@app.command("check")
def check_command(
    target: str = typer.Argument(..., help="Structure as module:Class or path.py:Class."),
    disable: bool = typer.Option(False, "--disable", help="Skip all checks for the type."),
    disable_mismatch: bool = typer.Option(False, "--disable-mismatch"),
    disable_missing: bool = typer.Option(False, "--disable-missing"),
    allow_field: List[str] = typer.Option([], "--allow-field", help="Field allowed to mismatch (repeatable)."),
    tag_key: Optional[str] = typer.Option(None, "--tag-key"),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    import_path: List[Path] = typer.Option([], "--import-path"),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable JSON."),
) -> None:
    """Check one structure's wire tags."""
    policy = ExceptionPolicy(
        disabled=disable,
        disable_mismatch=disable_mismatch,
        disable_missing_on_empty=disable_missing,
        allow_field_mismatch=bool(allow_field),
        allowed_fields=frozenset(allow_field),
    )
    _extend_import_path(import_path)
    try:
        value, _source = load_object(target)
        report = check(
            value,
            policy,
            tag_key=tag_key or configured_tag_key(check_defaults(root=root, config_path=config)),
            acronyms=acronym_list(naming_defaults(root=root, config_path=config)),
        )
    except WiretagError as exc:
        _fail(exc)
    if json_output:
        _echo_json(ComplianceReportDTO.model_validate(report.to_payload()).model_dump())
    else:
        for line in render_report(report):
            typer.echo(line)
    raise typer.Exit(code=0 if report.passed else 1)


@app.command("scan")
def scan_command(
    root: Path = typer.Option(Path("."), "--root"),
    exclude_path: List[str] = typer.Option([], "--exclude-path", help="Skip paths containing this text."),
    exclude_file: List[str] = typer.Option([], "--exclude-file", help="Skip this file name or relative path."),
    config: Optional[Path] = typer.Option(None, "--config"),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable JSON."),
) -> None:
    """List exported structure types found under a source tree."""
    options = scan_options(
        scan_defaults(root=root, config_path=config),
        exclude_paths=exclude_path,
        exclude_files=exclude_file,
    )
    try:
        discovered = scan(root, options)
    except WiretagError as exc:
        _fail(exc)
    if json_output:
        payload = {"root": str(root), "discovered": [item.to_payload() for item in discovered]}
        _echo_json(ScanResponseDTO.model_validate(payload).model_dump())
        return
    for item in discovered:
        typer.echo(item.render())


@app.command("audit")
def audit_command(
    registry: Optional[str] = typer.Option(
        None, "--registry", help="Registry as path.py[:NAME] or module[:NAME]."
    ),
    root: Optional[Path] = typer.Option(None, "--root", help="Source tree to scan."),
    exclude_path: List[str] = typer.Option([], "--exclude-path"),
    exclude_file: List[str] = typer.Option([], "--exclude-file"),
    config: Optional[Path] = typer.Option(None, "--config"),
    import_path: List[Path] = typer.Option([], "--import-path"),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable JSON."),
) -> None:
    """Check every registry entry and fail on uncovered structure types."""
    settings = merge_payload(
        {"registry": registry, "root": str(root) if root is not None else None},
        audit_defaults(root=root, config_path=config),
    )
    registry_spec = settings.get("registry")
    if not isinstance(registry_spec, str) or not registry_spec:
        raise typer.BadParameter("no registry given; pass --registry or set [audit] registry")
    scan_root = Path(str(settings.get("root") or "."))
    _extend_import_path(import_path)
    try:
        audit_registry, registry_path = load_registry(registry_spec)
        result = run_audit(
            audit_registry,
            root=scan_root,
            registry_path=registry_path,
            options=scan_options(
                scan_defaults(root=root, config_path=config),
                exclude_paths=exclude_path,
                exclude_files=exclude_file,
            ),
            tag_key=configured_tag_key(check_defaults(root=root, config_path=config)),
            acronyms=acronym_list(naming_defaults(root=root, config_path=config)),
        )
    except WiretagError as exc:
        _fail(exc)
    if json_output:
        _echo_json(AuditReportDTO.model_validate(result.to_payload()).model_dump())
    else:
        for line in result.render():
            typer.echo(line)
    raise typer.Exit(code=result.exit_code)
