from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class ViolationDTO(BaseModel):
    identifier: str
    kind: str
    declared: Optional[str] = None
    expected: str
    message: str


class ExceptionPolicyDTO(BaseModel):
    disabled: bool = False
    disable_mismatch: bool = False
    disable_missing_on_empty: bool = False
    allow_field_mismatch: bool = False
    allowed_fields: List[str] = []


class ComplianceReportDTO(BaseModel):
    type_name: str
    outcome: str
    skipped: bool = False
    violations: List[ViolationDTO] = []


class DiscoveredTypeDTO(BaseModel):
    qualified_name: str
    source: str
    line: int


class ScanResponseDTO(BaseModel):
    root: str
    discovered: List[DiscoveredTypeDTO] = []


class AuditReportDTO(BaseModel):
    format_version: int
    generated_at_utc: str
    root: str
    outcome: str
    exit_code: int
    reports: List[ComplianceReportDTO] = []
    discovered: List[DiscoveredTypeDTO] = []
    gaps: List[str] = []
    skeletons: List[str] = []
    unreferenced: List[str] = []
    duplicates: List[str] = []
    policies: Dict[str, ExceptionPolicyDTO] = {}
