from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import structlog

from wiretag.compliance import check, render_report
from wiretag.describe import DEFAULT_TAG_KEY
from wiretag.exceptions import ScanError
from wiretag.model import ComplianceReport, DiscoveredType
from wiretag.naming import DEFAULT_ACRONYMS
from wiretag.policy import ExceptionPolicy
from wiretag.registry import AuditRegistry
from wiretag.scanner import ScanOptions, entry_skeleton, gaps, scan, unreferenced

_FORMAT_VERSION = 1

logger = structlog.get_logger(__name__)


def _policy_flags(policy: ExceptionPolicy) -> str:
    flags = [
        name
        for name in ("disabled", "disable_mismatch", "disable_missing_on_empty")
        if getattr(policy, name)
    ]
    if policy.allow_field_mismatch:
        flags.append(f"allowed_fields={','.join(sorted(policy.allowed_fields))}")
    return " ".join(flags)


@dataclass(frozen=True)
class AuditResult:
    root: Path
    reports: tuple[ComplianceReport, ...]
    discovered: tuple[DiscoveredType, ...]
    gaps: tuple[str, ...]
    unreferenced: tuple[str, ...]
    duplicates: tuple[str, ...]
    policies: dict[str, ExceptionPolicy] = field(default_factory=dict)

    @property
    def failing_reports(self) -> tuple[ComplianceReport, ...]:
        return tuple(report for report in self.reports if not report.passed)

    @property
    def failed(self) -> bool:
        return bool(self.failing_reports or self.gaps or self.unreferenced or self.duplicates)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def _discovered_by_name(self) -> dict[str, DiscoveredType]:
        return {item.qualified_name: item for item in self.discovered}

    def relaxed_policies(self) -> dict[str, ExceptionPolicy]:
        return {
            name: policy for name, policy in sorted(self.policies.items()) if not policy.strict
        }

    def skeletons(self) -> list[str]:
        by_name = self._discovered_by_name()
        return [entry_skeleton(by_name[name]) for name in self.gaps if name in by_name]

    def render(self) -> list[str]:
        lines: list[str] = []
        for report in self.failing_reports:
            lines.extend(render_report(report))
            policy = self.policies.get(report.type_name)
            if policy is not None and not policy.strict:
                lines.append(f"  policy: {_policy_flags(policy)}")
        if self.duplicates:
            lines.append("registry lists these types more than once:")
            lines.extend(f"  - {name}" for name in self.duplicates)
        if self.gaps:
            lines.append("structures without a registry entry:")
            lines.extend(f"  - {name}" for name in self.gaps)
            lines.append("add the following entries:")
            lines.extend(f"    {skeleton}" for skeleton in self.skeletons())
        if self.unreferenced:
            lines.append("registered types whose construction token is absent from the registry source:")
            lines.extend(f"  - {name}" for name in self.unreferenced)
        passed = sum(1 for report in self.reports if report.passed)
        lines.append(
            f"wire tag audit: checked={len(self.reports)} passed={passed} "
            f"discovered={len(self.discovered)} gaps={len(self.gaps)} "
            f"result={'fail' if self.failed else 'pass'}"
        )
        return lines

    def to_payload(self) -> dict[str, object]:
        return {
            "format_version": _FORMAT_VERSION,
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "root": str(self.root),
            "outcome": "fail" if self.failed else "pass",
            "exit_code": self.exit_code,
            "reports": [report.to_payload() for report in self.reports],
            "discovered": [item.to_payload() for item in self.discovered],
            "gaps": list(self.gaps),
            "skeletons": self.skeletons(),
            "unreferenced": list(self.unreferenced),
            "duplicates": list(self.duplicates),
            "policies": {
                name: policy.to_payload() for name, policy in self.relaxed_policies().items()
            },
        }


def check_registry(
    registry: AuditRegistry,
    *,
    tag_key: str = DEFAULT_TAG_KEY,
    acronyms: Iterable[str] = DEFAULT_ACRONYMS,
) -> tuple[ComplianceReport, ...]:
    acronym_list = tuple(acronyms)
    return tuple(
        check(entry.target, entry.policy, tag_key=tag_key, acronyms=acronym_list)
        for entry in registry
    )


def run_audit(
    registry: AuditRegistry,
    *,
    root: Path,
    registry_path: Path | None = None,
    options: ScanOptions | None = None,
    tag_key: str = DEFAULT_TAG_KEY,
    acronyms: Iterable[str] = DEFAULT_ACRONYMS,
) -> AuditResult:
    """Check every registry entry and verify the registry covers ``root``.

    The registry file is never scanned. Its directory is excluded as well
    when it lies strictly inside ``root`` and ``options`` names no audit
    directory; a registry in ``root`` or above it excludes only itself.
    """
    options = options or ScanOptions()
    if registry_path is not None:
        options = replace(options, registry_file=registry_path)
        registry_dir = registry_path.parent.resolve()
        scan_root = Path(root).resolve()
        if (
            options.audit_dir is None
            and registry_dir != scan_root
            and registry_dir.is_relative_to(scan_root)
        ):
            options = replace(options, audit_dir=registry_dir)
    reports = check_registry(registry, tag_key=tag_key, acronyms=acronyms)
    discovered = scan(root, options)
    missing = gaps(discovered, registry.names())
    not_referenced: list[str] = []
    if registry_path is not None:
        covered = [item for item in discovered if item.qualified_name not in missing]
        try:
            registry_source = registry_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ScanError(registry_path, str(exc)) from exc
        not_referenced = unreferenced(covered, registry_source)
    result = AuditResult(
        root=Path(root),
        reports=reports,
        discovered=discovered,
        gaps=tuple(missing),
        unreferenced=tuple(not_referenced),
        duplicates=tuple(registry.duplicates()),
        policies={name: registry.policy_for(name) for name in registry.names()},
    )
    logger.info(
        "audit_completed",
        checked=len(reports),
        discovered=len(discovered),
        gaps=len(missing),
        outcome="fail" if result.failed else "pass",
    )
    return result
