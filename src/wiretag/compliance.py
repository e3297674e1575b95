"""Tag compliance engine.

``check`` compares each exported field's declared wire tag with the tag
derived from its identifier and returns every violation the exception
policy does not suppress. Non-compliance is a report, never an exception;
only a value without a describable structure raises.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from wiretag.describe import DEFAULT_TAG_KEY, describe, qualified_name, structure_type
from wiretag.model import ComplianceReport, FieldDescriptor, Violation, ViolationKind
from wiretag.naming import DEFAULT_ACRONYMS, expected_tag
from wiretag.policy import (
    ExceptionPolicy,
    resolve_policy,
    suppresses_mismatch,
    suppresses_missing,
)

logger = structlog.get_logger(__name__)


def field_violation(
    field: FieldDescriptor,
    policy: ExceptionPolicy,
    *,
    acronyms: Iterable[str] = DEFAULT_ACRONYMS,
) -> Violation | None:
    if field.omitted:
        return None
    expected = expected_tag(field.identifier, acronyms)
    if field.declared_tag is None:
        if suppresses_missing(policy):
            return None
        return Violation(identifier=field.identifier, kind=ViolationKind.MISSING, expected=expected)
    if field.declared_tag == expected:
        return None
    if suppresses_mismatch(policy, field.identifier, field.declared_tag):
        return None
    return Violation(
        identifier=field.identifier,
        kind=ViolationKind.MISMATCH,
        expected=expected,
        declared=field.declared_tag,
    )


def check(
    value: object,
    policy: ExceptionPolicy | None = None,
    *,
    tag_key: str = DEFAULT_TAG_KEY,
    acronyms: Iterable[str] = DEFAULT_ACRONYMS,
) -> ComplianceReport:
    """Check one structure's own exported fields.

    Nested structures are not descended into; each distinct type is checked
    through its own call. ``policy=None`` is the strict policy.
    """
    resolved = resolve_policy(policy)
    if resolved.disabled:
        name = qualified_name(structure_type(value))
        logger.debug("compliance_skipped", type_name=name)
        return ComplianceReport(type_name=name, skipped=True)
    descriptor = describe(value, tag_key=tag_key)
    acronym_list = tuple(acronyms)
    violations: list[Violation] = []
    for field in descriptor.fields:
        violation = field_violation(field, resolved, acronyms=acronym_list)
        if violation is not None:
            violations.append(violation)
    logger.debug(
        "compliance_checked",
        type_name=descriptor.name,
        kind=descriptor.kind,
        fields=len(descriptor.fields),
        violations=len(violations),
    )
    return ComplianceReport(type_name=descriptor.name, violations=tuple(violations))


def render_report(report: ComplianceReport) -> list[str]:
    if report.skipped:
        return [f"{report.type_name}: skipped (checks disabled)"]
    if report.passed:
        return [f"{report.type_name}: ok"]
    lines = [f"{report.type_name}: {len(report.violations)} violation(s)"]
    lines.extend(f"  - {message}" for message in report.messages)
    hints = ", ".join(f"{name} -> {tag}" for name, tag in report.suggestions().items())
    lines.append(f"  suggested tags: {hints}")
    return lines
