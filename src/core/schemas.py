from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OverallStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    PARTIAL = "PARTIAL"
    NON_COMPLIANT = "NON_COMPLIANT"
    CRITICAL = "CRITICAL"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class FindingStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    GAP = "GAP"
    PARTIAL = "PARTIAL"
    NOT_ADDRESSED = "NOT_ADDRESSED"


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (matches the dashboard client)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Finding(CamelModel):
    id: int | str
    title: str
    severity: Severity
    status: FindingStatus
    area: str | None = None
    description: str | None = None
    evidence: str | None = None
    regulation: str | None = None
    recommendation: str | None = None
    priority: int | float | None = None


class ValidationMeta(CamelModel):
    warning_count: int
    fix_count: int
    validated: bool = True


class ValidatedAnalysis(CamelModel):
    overall_score: int = Field(..., ge=0, le=100)
    overall_status: OverallStatus
    risk_level: RiskLevel
    summary: str
    findings: list[Finding] = Field(default_factory=list)
    strengths: list[Any] = Field(default_factory=list)
    critical_gaps: list[Any] = Field(default_factory=list)
    action_plan: list[Any] = Field(default_factory=list)
    compliance_by_area: list[Any] = Field(default_factory=list)
    regulatory_references: list[Any] = Field(default_factory=list)
    next_audit_focus: list[Any] = Field(default_factory=list)
    sector: str
    analyzed_at: datetime
    validation_meta: ValidationMeta


class ValidationResult(BaseModel):
    valid: bool
    data: ValidatedAnalysis | None = None
    warnings: list[str] = Field(default_factory=list)
    fixes: list[str] = Field(default_factory=list)


class AnalysisRequest(CamelModel):
    document_text: str = ""
    sector: str = ""
    document_type: str | None = None
    document_name: str | None = None


class AnalysisResponse(ValidatedAnalysis):
    regulatory_authority: str
    analysis_id: str | None = None
    findings_created: int = 0
    warnings: list[str] = Field(default_factory=list)
    fixes: list[str] = Field(default_factory=list)


class PersistedAnalysisRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    sector: str
    document_type: str
    document_name: str
    overall_score: int
    overall_status: str
    risk_level: str
    summary: str
    findings: list[dict[str, Any]]
    strengths: list[Any]
    critical_gaps: list[Any]
    action_plan: list[Any]
    compliance_by_area: list[Any]
    raw_analysis: dict[str, Any]


class FindingRecord(BaseModel):
    user_id: str
    title: str
    description: str
    severity: Literal["critical", "high", "medium", "low"]
    category: str
    status: Literal["open", "in_progress", "resolved"] = "open"
    analysis_id: str | None = None
    due_date: str | None = None


class FindingCounts(BaseModel):
    total: int = 0
    open: int = 0
    critical: int = 0
    high: int = 0
    resolved: int = 0


class NotificationPayload(BaseModel):
    title: str
    message: str
    type: Literal["analysis_complete", "finding_critical", "finding_overdue", "legislation_change", "info"]
    link: str | None = None


class LegislationPassage(BaseModel):
    id: str
    title: str
    content: str
    section_number: str | None = None
    section_title: str | None = None
    sector: str | None = None
    score: float = 0.0


class Completion(BaseModel):
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatEvent(BaseModel):
    type: Literal["delta", "done", "error"]
    content: str | None = None
    metadata: dict[str, Any] | None = None
    error: str | None = None


class PolicyRequest(CamelModel):
    policy_type: str = ""
    company_name: str | None = None
    company_type: str | None = None
    standard_number: str | None = None
    sector: str = "ndis"


class PolicyResponse(BaseModel):
    policy: str
    content: str


class AuditSector(CamelModel):
    id: str
    name: str
    full_name: str
    authority: str
    regulations: list[str]


class AuditSummary(CamelModel):
    average_score: int
    total_analyses: int
    total_documents: int
    coverage_percent: int
    risk_level: RiskLevel


class AuditFindingItem(CamelModel):
    title: str
    severity: str
    category: str
    status: str
    description: str
    due_date: str | None = None


class AuditFindings(CamelModel):
    total: int = 0
    open: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    resolved: int = 0
    items: list[AuditFindingItem] = Field(default_factory=list)


class AreaCoverage(CamelModel):
    area: str
    score: int
    status: Literal["Covered", "Partial", "No Evidence"]
    document_count: int


class RecentAnalysis(CamelModel):
    document_name: str | None = None
    score: int | float | None = None
    status: str | None = None
    date: str | None = None


class AuditReport(CamelModel):
    generated_at: datetime
    sector: AuditSector
    summary: AuditSummary
    findings: AuditFindings
    evidence_coverage: list[AreaCoverage]
    action_plan: list[Any] = Field(default_factory=list)
    recent_analyses: list[RecentAnalysis] = Field(default_factory=list)
