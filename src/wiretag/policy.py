"""Per-type exception policies for the tag compliance check.

Precedence, most permissive first: ``disabled`` skips the type entirely,
``disable_mismatch`` and ``disable_missing_on_empty`` suppress a whole
violation class, and ``allowed_fields`` (only with ``allow_field_mismatch``)
suppresses mismatches for the named fields. A named field must still
declare some tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping


def _normalize_allowed(value: object) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        names: Iterable[object] = [value]
    elif isinstance(value, Mapping):
        names = [key for key, enabled in value.items() if enabled]
    elif isinstance(value, Iterable):
        names = value
    else:
        raise TypeError(f"allowed_fields must be a mapping or iterable, got {type(value).__name__}")
    return frozenset(str(name).strip().lower() for name in names if str(name).strip())


@dataclass(frozen=True)
class ExceptionPolicy:
    disabled: bool = False
    disable_mismatch: bool = False
    disable_missing_on_empty: bool = False
    allow_field_mismatch: bool = False
    allowed_fields: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_fields", _normalize_allowed(self.allowed_fields))

    @property
    def strict(self) -> bool:
        return self == STRICT_POLICY

    def to_payload(self) -> dict[str, object]:
        return {
            "disabled": self.disabled,
            "disable_mismatch": self.disable_mismatch,
            "disable_missing_on_empty": self.disable_missing_on_empty,
            "allow_field_mismatch": self.allow_field_mismatch,
            "allowed_fields": sorted(self.allowed_fields),
        }


STRICT_POLICY = ExceptionPolicy()


def resolve_policy(policy: ExceptionPolicy | None) -> ExceptionPolicy:
    if policy is None:
        return STRICT_POLICY
    if not isinstance(policy, ExceptionPolicy):
        raise TypeError(f"expected ExceptionPolicy or None, got {type(policy).__name__}")
    return policy


def suppresses_missing(policy: ExceptionPolicy) -> bool:
    return policy.disabled or policy.disable_missing_on_empty


def suppresses_mismatch(
    policy: ExceptionPolicy,
    identifier: str,
    declared_tag: str | None = None,
) -> bool:
    if policy.disabled or policy.disable_mismatch:
        return True
    if not policy.allow_field_mismatch:
        return False
    if identifier.lower() in policy.allowed_fields:
        return True
    return declared_tag is not None and declared_tag.lower() in policy.allowed_fields
