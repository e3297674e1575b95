from __future__ import annotations

from pathlib import Path

from sample_app import cache, requests

from wiretag.audit import check_registry, run_audit
from wiretag.policy import ExceptionPolicy
from wiretag.registry import AuditEntry, AuditRegistry, load_registry
from wiretag.scanner import ScanOptions


def test_sample_project_audit_passes(sample_root: Path, sample_registry_path: Path) -> None:
    registry, registry_path = load_registry(str(sample_registry_path))
    result = run_audit(
        registry,
        root=sample_root,
        registry_path=registry_path,
        options=ScanOptions(exclude_files=("content.py",)),
    )
    assert not result.failed, "\n".join(result.render())
    assert result.exit_code == 0
    assert result.gaps == ()
    assert result.unreferenced == ()
    assert len(result.reports) == 12
    assert result.render()[-1] == (
        "wire tag audit: checked=12 passed=12 discovered=12 gaps=0 result=pass"
    )


def test_unregistered_type_is_a_gap_with_skeleton(sample_root: Path, sample_registry_path: Path) -> None:
    full, _ = load_registry(str(sample_registry_path))
    registry = AuditRegistry(
        [entry for entry in full if entry.qualified_name != "cache.ReadOnlySession"]
    )
    result = run_audit(
        registry,
        root=sample_root,
        options=ScanOptions(audit_dir=sample_registry_path.parent, exclude_files=("content.py",)),
    )
    assert result.failed
    assert result.gaps == ("cache.ReadOnlySession",)
    assert result.skeletons() == [
        "AuditEntry(cache.ReadOnlySession, ExceptionPolicy()),  # cache.py:20"
    ]
    rendered = "\n".join(result.render())
    assert "structures without a registry entry:" in rendered
    assert "AuditEntry(cache.ReadOnlySession, ExceptionPolicy())" in rendered


def test_excluded_file_counts_once_included(sample_root: Path, sample_registry_path: Path) -> None:
    registry, registry_path = load_registry(str(sample_registry_path))
    result = run_audit(registry, root=sample_root, registry_path=registry_path)
    assert result.gaps == ("content.Content",)


def test_textual_cross_check_flags_unreferenced_entries(
    tmp_path: Path, sample_root: Path, write_source
) -> None:
    registry_path = write_source(
        tmp_path / "audit" / "registry.py",
        "from sample_app.cache import SessionCache\n"
        "REGISTRY = [SessionCache]\n",
    )
    registry = AuditRegistry([AuditEntry(cache.SessionCache)])
    scan_root = tmp_path / "src"
    write_source(
        scan_root / "cache.py",
        "from dataclasses import dataclass\n\n@dataclass\nclass SessionCache:\n    pass\n",
    )
    result = run_audit(registry, root=scan_root, registry_path=registry_path)
    assert result.gaps == ()
    assert result.unreferenced == ("cache.SessionCache",)
    assert result.failed


def test_registry_in_scan_root_excludes_only_itself(tmp_path: Path, write_source) -> None:
    write_source(
        tmp_path / "requests.py",
        "from dataclasses import dataclass\n\n@dataclass\nclass Key:\n    pass\n",
    )
    registry_path = write_source(
        tmp_path / "wire_registry.py",
        "from dataclasses import dataclass\n\n"
        "@dataclass\nclass Helper:\n    pass\n\n"
        "# AuditEntry(requests.Key)\n",
    )
    registry = AuditRegistry([AuditEntry(requests.Key)])
    result = run_audit(registry, root=tmp_path, registry_path=registry_path)
    assert [item.qualified_name for item in result.discovered] == ["requests.Key"]
    assert not result.failed


def test_failing_reports_and_duplicates_fail_the_audit(tmp_path: Path) -> None:
    registry = AuditRegistry(
        [
            AuditEntry(requests.Key),
            AuditEntry(requests.Key),
            AuditEntry(cache.SessionCache, name="cache.Renamed"),
        ]
    )
    (tmp_path / "src").mkdir()
    result = run_audit(registry, root=tmp_path / "src")
    assert result.duplicates == ("requests.Key",)
    assert result.failed
    payload = result.to_payload()
    assert payload["outcome"] == "fail"
    assert payload["duplicates"] == ["requests.Key"]
    assert payload["discovered"] == []


def test_check_registry_reports_violations(tmp_path: Path) -> None:
    from sample_app import identity

    registry = AuditRegistry([AuditEntry(identity.UserPolicy), AuditEntry(requests.Key)])
    reports = check_registry(registry)
    assert [report.outcome for report in reports] == ["fail", "pass"]
    assert reports[0].messages[0] == 'missing tag for field "min_length", expected "min_length"'


def test_registry_above_scan_root_excludes_only_itself(tmp_path: Path, write_source) -> None:
    write_source(
        tmp_path / "src" / "models.py",
        "from dataclasses import dataclass\n\n@dataclass\nclass User:\n    pass\n",
    )
    registry_path = write_source(tmp_path / "wire_registry.py", "REGISTRY = []\n")
    result = run_audit(AuditRegistry([]), root=tmp_path / "src", registry_path=registry_path)
    assert [item.qualified_name for item in result.discovered] == ["models.User"]
    assert result.gaps == ("models.User",)
    assert result.failed


def test_registry_in_root_keeps_same_named_files_elsewhere(tmp_path: Path, write_source) -> None:
    registry_path = write_source(tmp_path / "registry.py", "REGISTRY = []\n")
    write_source(
        tmp_path / "pkg" / "registry.py",
        "from dataclasses import dataclass\n\n@dataclass\nclass Entry:\n    pass\n",
    )
    result = run_audit(AuditRegistry([]), root=tmp_path, registry_path=registry_path)
    assert result.gaps == ("registry.Entry",)
    assert result.discovered[0].source == Path("pkg/registry.py")


def test_relaxed_policies_are_shown_with_failures(tmp_path: Path) -> None:
    from sample_app import identity, ldap

    registry = AuditRegistry(
        [
            AuditEntry(identity.UserPolicy, ExceptionPolicy(disable_mismatch=True)),
            AuditEntry(ldap.UserGroup, ExceptionPolicy(allow_field_mismatch=True, allowed_fields=["dn"])),
            AuditEntry(requests.Key),
        ]
    )
    (tmp_path / "src").mkdir()
    result = run_audit(registry, root=tmp_path / "src")
    rendered = result.render()
    assert rendered[0] == "identity.UserPolicy: 3 violation(s)"
    assert "  policy: disable_mismatch" in rendered
    assert sorted(result.relaxed_policies()) == ["identity.UserPolicy", "ldap.UserGroup"]
    payload = result.to_payload()
    assert payload["policies"]["ldap.UserGroup"]["allowed_fields"] == ["dn"]
    assert "requests.Key" not in payload["policies"]
