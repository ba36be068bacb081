from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from src.core.schemas import (
    AreaCoverage,
    AuditFindingItem,
    AuditFindings,
    AuditReport,
    AuditSector,
    AuditSummary,
    FindingRecord,
    RecentAnalysis,
    RiskLevel,
)
from src.core.sectors import SECTORS, get_sector_config

logger = logging.getLogger("compliance.audit")

REPORT_ANALYSES = 20
REPORT_FINDINGS = 100
REPORT_FINDING_ITEMS = 20
REPORT_RECENT_ANALYSES = 10
COVERED_SCORE = 70


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _number(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def _area_matches(key_area: str, reported: str) -> bool:
    a, r = key_area.lower(), reported.lower()
    return r in a or a in r


def _area_scores(analysis: dict, key_area: str) -> list[float]:
    return [
        _number(ca.get("score"))
        for ca in analysis.get("compliance_by_area") or []
        if isinstance(ca, dict) and isinstance(ca.get("area"), str) and _area_matches(key_area, ca["area"])
    ]


def evidence_coverage(analyses: list[dict], key_areas) -> list[AreaCoverage]:
    """Average reported score per key area across analyses; >=70 counts as covered."""
    out = []
    for area in key_areas:
        per_analysis = [_area_scores(a, area) for a in analyses]
        scores = [s for group in per_analysis for s in group]
        avg = _round(sum(scores) / len(scores)) if scores else 0
        if not scores:
            status = "No Evidence"
        else:
            status = "Covered" if avg >= COVERED_SCORE else "Partial"
        out.append(AreaCoverage(
            area=area,
            score=avg,
            status=status,
            document_count=sum(1 for group in per_analysis if group),
        ))
    return out


def _report_risk(critical: int, high: int, open_: int) -> RiskLevel:
    if critical:
        return RiskLevel.CRITICAL
    if high:
        return RiskLevel.HIGH
    if open_:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _action_plan(latest: dict | None) -> list:
    if not latest:
        return []
    plan = latest.get("action_plan") or (latest.get("raw_analysis") or {}).get("actionPlan")
    return plan if isinstance(plan, list) else []


def build_audit_report(
    sector: str | None,
    analyses: list[dict],
    findings: list[FindingRecord],
    document_count: int,
) -> AuditReport:
    """
    Aggregate a user's stored analyses and findings into an audit pack.

    `analyses` are newest first (at most REPORT_ANALYSES are used), `findings`
    newest first (at most REPORT_FINDINGS). Unknown sectors report against the
    NDIS catalog entry but keep the requested id.
    """
    sector_id = sector or "ndis"
    cfg = get_sector_config(sector_id) or SECTORS["ndis"]
    analyses = analyses[:REPORT_ANALYSES]
    findings = findings[:REPORT_FINDINGS]

    avg_score = _round(sum(_number(a.get("overall_score")) for a in analyses) / len(analyses)) if analyses else 0

    open_findings = [f for f in findings if f.status != "resolved"]
    critical = [f for f in open_findings if f.severity == "critical"]
    high = [f for f in open_findings if f.severity == "high"]

    coverage = evidence_coverage(analyses, cfg.key_areas)
    covered = sum(1 for c in coverage if c.status == "Covered")
    coverage_percent = _round(covered / len(coverage) * 100) if coverage else 0

    return AuditReport(
        generated_at=datetime.now(timezone.utc),
        sector=AuditSector(
            id=sector_id,
            name=cfg.name,
            full_name=cfg.full_name,
            authority=cfg.authority,
            regulations=list(cfg.regulations),
        ),
        summary=AuditSummary(
            average_score=avg_score,
            total_analyses=len(analyses),
            total_documents=document_count,
            coverage_percent=coverage_percent,
            risk_level=_report_risk(len(critical), len(high), len(open_findings)),
        ),
        findings=AuditFindings(
            total=len(findings),
            open=len(open_findings),
            critical=len(critical),
            high=len(high),
            medium=sum(1 for f in open_findings if f.severity == "medium"),
            low=sum(1 for f in open_findings if f.severity == "low"),
            resolved=sum(1 for f in findings if f.status == "resolved"),
            items=[
                AuditFindingItem(
                    title=f.title,
                    severity=f.severity,
                    category=f.category,
                    status=f.status,
                    description=f.description,
                    due_date=f.due_date,
                )
                for f in open_findings[:REPORT_FINDING_ITEMS]
            ],
        ),
        evidence_coverage=coverage,
        action_plan=_action_plan(analyses[0] if analyses else None),
        recent_analyses=[
            RecentAnalysis(
                document_name=a.get("document_name"),
                score=a.get("overall_score"),
                status=a.get("overall_status"),
                date=a.get("created_at"),
            )
            for a in analyses[:REPORT_RECENT_ANALYSES]
        ],
    )


def audit_report_for_user(store, user_id: str, sector: str | None) -> AuditReport:
    """Pull the user's records from the store and aggregate them."""
    sector_id = sector or "ndis"
    analyses = store.list_analyses(user_id, sector=sector_id, limit=REPORT_ANALYSES)
    findings = list(reversed(store.list_findings(user_id)))
    # No separate document library: distinct analysed documents stand in for it.
    documents = {a.get("document_name") for a in store.list_analyses(user_id, limit=10_000) if a.get("document_name")}
    logger.info(f"Audit report for {user_id}/{sector_id}: {len(analyses)} analyses, {len(findings)} findings")
    return build_audit_report(sector_id, analyses, findings, len(documents))
