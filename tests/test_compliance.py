from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from pydantic import BaseModel, Field

from wiretag.compliance import check, field_violation, render_report
from wiretag.exceptions import UnsupportedStructureError
from wiretag.model import FieldDescriptor, ViolationKind
from wiretag.policy import ExceptionPolicy


@dataclass
class CompliantKey:
    FingerprintMD5: str = field(default="", metadata={"json": "fingerprint_md5"})
    usage: str = field(default="", metadata={"json": "usage"})


@dataclass
class SquashedKey:
    FingerprintMD5: str = field(default="", metadata={"json": "fingerprintmd5"})


@dataclass
class Untagged:
    min_length: int = 0
    max_length: int = 0


@dataclass
class UserGroup:
    DN: str = field(default="", metadata={"json": "dn"})
    Name: str = field(default="", metadata={"json": "name"})


@dataclass
class Empty:
    pass


class Messy(BaseModel):
    user_name: str = Field(default="", alias="userName")
    email: str = ""
    full_name: str = Field(default="", alias="full_name")


class TenMismatches:
    __wire_fields__ = [(f"Field{index}", f"f{index}") for index in range(10)]


def test_compliant_structure_passes_under_strict_policy() -> None:
    report = check(CompliantKey())
    assert report.passed
    assert report.outcome == "pass"
    assert report.messages == []
    assert report.type_name == "test_compliance.CompliantKey"


def test_squashed_tag_reports_one_mismatch() -> None:
    report = check(SquashedKey())
    assert report.outcome == "fail"
    assert report.messages == [
        'tag mismatch for field "FingerprintMD5": declared "fingerprintmd5", expected "fingerprint_md5"'
    ]
    assert report.suggestions() == {"FingerprintMD5": "fingerprint_md5"}


def test_missing_tags_are_reported_unless_disabled() -> None:
    strict = check(Untagged())
    assert [violation.kind for violation in strict.violations] == [
        ViolationKind.MISSING,
        ViolationKind.MISSING,
    ]
    assert strict.messages[0] == 'missing tag for field "min_length", expected "min_length"'
    relaxed = check(Untagged(), ExceptionPolicy(disable_missing_on_empty=True))
    assert relaxed.passed


def test_allowed_field_passes_acronym_mismatch() -> None:
    assert check(UserGroup()).messages == [
        'tag mismatch for field "DN": declared "dn", expected "d_n"'
    ]
    policy = ExceptionPolicy(allow_field_mismatch=True, allowed_fields={"dn": True})
    assert check(UserGroup(), policy).passed


def test_disable_mismatch_keeps_missing_class() -> None:
    report = check(Messy, ExceptionPolicy(disable_mismatch=True))
    assert report.messages == ['missing tag for field "email", expected "email"']


def test_allowed_field_still_needs_some_tag() -> None:
    policy = ExceptionPolicy(allow_field_mismatch=True, allowed_fields=["email", "user_name"])
    report = check(Messy, policy)
    assert [violation.identifier for violation in report.violations] == ["email"]
    assert report.violations[0].kind is ViolationKind.MISSING


@pytest.mark.parametrize("value", [TenMismatches, Empty(), Untagged, 42])
def test_disabled_policy_always_passes(value: object) -> None:
    report = check(value, ExceptionPolicy(disabled=True))
    assert report.passed
    assert report.skipped


def test_zero_field_structure_passes() -> None:
    assert check(Empty()).passed


def test_every_mismatch_is_reported_in_field_order() -> None:
    report = check(TenMismatches)
    assert [violation.identifier for violation in report.violations] == [
        f"Field{index}" for index in range(10)
    ]


def test_non_structure_is_a_contract_violation() -> None:
    with pytest.raises(UnsupportedStructureError):
        check(object())
    with pytest.raises(UnsupportedStructureError):
        check({"json": "dict"})


def test_omitted_fields_are_not_checked() -> None:
    field_descriptor = FieldDescriptor(identifier="Password", declared_tag="-")
    assert field_violation(field_descriptor, ExceptionPolicy()) is None


def test_custom_tag_key_and_acronyms() -> None:
    @dataclass
    class Directory:
        DN: str = field(default="", metadata={"wire": "dn"})

    assert not check(Directory).passed
    assert check(Directory, tag_key="wire", acronyms=("DN",)).passed


def test_render_report_lines() -> None:
    assert render_report(check(CompliantKey)) == ["test_compliance.CompliantKey: ok"]
    assert render_report(check(Untagged, ExceptionPolicy(disabled=True))) == [
        "test_compliance.Untagged: skipped (checks disabled)"
    ]
    lines = render_report(check(SquashedKey))
    assert lines[0] == "test_compliance.SquashedKey: 1 violation(s)"
    assert lines[-1] == "  suggested tags: FingerprintMD5 -> fingerprint_md5"
