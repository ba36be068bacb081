from __future__ import annotations

from src.core.schemas import Finding, FindingCounts, FindingRecord, FindingStatus

# INFO has no persisted counterpart and falls through to the default.
SEVERITY_MAP = {
    "CRITICAL": "critical",
    "HIGH": "high",
    "MEDIUM": "medium",
    "LOW": "low",
}
DEFAULT_SEVERITY = "medium"
UNTITLED = "Untitled Finding"


def map_severity(value) -> str:
    raw = getattr(value, "value", value)
    if not isinstance(raw, str):
        return DEFAULT_SEVERITY
    return SEVERITY_MAP.get(raw.upper(), DEFAULT_SEVERITY)


def build_description(finding: Finding, document_name: str | None = None) -> str:
    desc = finding.description or ""
    if finding.regulation:
        desc += f"\n\nRegulation: {finding.regulation}"
    if finding.recommendation:
        desc += f"\n\nRecommendation: {finding.recommendation}"
    if document_name:
        desc += f"\n\nSource: {document_name}"
    return desc.strip()


def project_findings(
    findings: list[Finding],
    user_id: str,
    sector: str,
    document_name: str | None = None,
    analysis_id: str | None = None,
) -> list[FindingRecord]:
    """Turn every non-compliant finding into an open, trackable item."""
    return [
        FindingRecord(
            user_id=user_id,
            title=f.title or UNTITLED,
            description=build_description(f, document_name),
            severity=map_severity(f.severity),
            category=f.area or sector,
            status="open",
            analysis_id=analysis_id or None,
        )
        for f in findings
        if f.status != FindingStatus.COMPLIANT
    ]


def summarize_finding_records(records: list[FindingRecord]) -> FindingCounts:
    active = [r for r in records if r.status != "resolved"]
    return FindingCounts(
        total=len(records),
        open=sum(1 for r in records if r.status in ("open", "in_progress")),
        critical=sum(1 for r in active if r.severity == "critical"),
        high=sum(1 for r in active if r.severity == "high"),
        resolved=len(records) - len(active),
    )
