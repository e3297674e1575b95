from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Tuple

OMITTED_TAG = "-"


class FieldKind(str, Enum):
    PRIMITIVE = "primitive"
    STRUCTURE = "structure"
    COLLECTION = "collection"
    POINTER = "pointer"


class ViolationKind(str, Enum):
    MISSING = "missing"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class FieldDescriptor:
    identifier: str
    declared_tag: str | None = None
    kind: FieldKind = FieldKind.PRIMITIVE

    def __post_init__(self) -> None:
        if not self.identifier or self.identifier.startswith("_"):
            raise ValueError(f"field identifier {self.identifier!r} is not exported")

    @property
    def omitted(self) -> bool:
        return self.declared_tag == OMITTED_TAG


@dataclass(frozen=True)
class StructureDescriptor:
    name: str
    kind: str
    fields: Tuple[FieldDescriptor, ...] = ()


@dataclass(frozen=True)
class Violation:
    identifier: str
    kind: ViolationKind
    expected: str
    declared: str | None = None

    @property
    def message(self) -> str:
        if self.kind is ViolationKind.MISSING:
            return f'missing tag for field "{self.identifier}", expected "{self.expected}"'
        return (
            f'tag mismatch for field "{self.identifier}": '
            f'declared "{self.declared}", expected "{self.expected}"'
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "identifier": self.identifier,
            "kind": self.kind.value,
            "declared": self.declared,
            "expected": self.expected,
            "message": self.message,
        }


@dataclass(frozen=True)
class ComplianceReport:
    """Outcome of checking one structure.

    A report with no violations passes regardless of the policy that
    produced it.
    """

    type_name: str
    violations: Tuple[Violation, ...] = ()
    skipped: bool = False

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def outcome(self) -> str:
        return "pass" if self.passed else "fail"

    @property
    def messages(self) -> list[str]:
        return [violation.message for violation in self.violations]

    def suggestions(self) -> Dict[str, str]:
        return {violation.identifier: violation.expected for violation in self.violations}

    def to_payload(self) -> dict[str, object]:
        return {
            "type_name": self.type_name,
            "outcome": self.outcome,
            "skipped": self.skipped,
            "violations": [violation.to_payload() for violation in self.violations],
        }


@dataclass(frozen=True)
class DiscoveredType:
    """An exported structure declaration found in source.

    Equality and hashing use the qualified name only, so the same type seen
    in two files collapses into one entry.
    """

    qualified_name: str
    source: Path = field(default=Path("."), compare=False)
    line: int = field(default=0, compare=False)

    def render(self) -> str:
        return f"{self.source.as_posix()}:{self.line}: {self.qualified_name}"

    def to_payload(self) -> dict[str, object]:
        return {
            "qualified_name": self.qualified_name,
            "source": self.source.as_posix(),
            "line": self.line,
        }
