from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any

from src.core.schemas import (
    Finding,
    FindingStatus,
    OverallStatus,
    RiskLevel,
    Severity,
    ValidatedAnalysis,
    ValidationMeta,
    ValidationResult,
)

logger = logging.getLogger("compliance.guardrails")

VALID_STATUSES = tuple(s.value for s in OverallStatus)
VALID_RISK_LEVELS = tuple(r.value for r in RiskLevel)
VALID_SEVERITIES = tuple(s.value for s in Severity)
VALID_FINDING_STATUSES = tuple(s.value for s in FindingStatus)

DEFAULT_SCORE = 50
SUMMARY_PLACEHOLDER = "Analysis completed."
MIN_SUMMARY_CHARS = 10
MIN_RECOMMENDATION_CHARS = 5

# Keys that must always come back as lists; missing or malformed values become [].
OPTIONAL_ARRAYS = {
    "strengths": "strengths",
    "criticalGaps": "critical_gaps",
    "actionPlan": "action_plan",
    "complianceByArea": "compliance_by_area",
    "regulatoryReferences": "regulatory_references",
    "nextAuditFocus": "next_audit_focus",
}

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _reject_constant(token: str):
    # json.loads accepts NaN/Infinity by default; the model contract is strict JSON.
    raise ValueError(f"non-standard JSON constant: {token}")


def _parse_int(token: str) -> int | float:
    # Integers past the interpreter's digit limit overflow to inf and get clamped later.
    try:
        return int(token)
    except ValueError:
        return float(token)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _status_from_score(score: int) -> OverallStatus:
    if score >= 80:
        return OverallStatus.COMPLIANT
    if score >= 50:
        return OverallStatus.PARTIAL
    if score >= 25:
        return OverallStatus.NON_COMPLIANT
    return OverallStatus.CRITICAL


def _risk_from_score(score: int) -> RiskLevel:
    if score >= 80:
        return RiskLevel.LOW
    if score >= 50:
        return RiskLevel.MEDIUM
    if score >= 25:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _coerce_id(value: Any) -> int | str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int) or isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return _as_text(value)


def extract_json_text(raw_text: str) -> tuple[str, bool]:
    """Return the JSON source text and whether it was pulled out of a code fence."""
    m = _CODE_FENCE.search(raw_text)
    if m:
        return m.group(1), True
    return raw_text, False


def _repair_findings(raw_findings: list, fixes: list[str], warnings: list[str]) -> list[Finding]:
    findings: list[Finding] = []
    for i, raw in enumerate(raw_findings):
        f = dict(raw) if isinstance(raw, dict) else {}

        if not f.get("title"):
            f["title"] = f"Finding {i + 1}"
            fixes.append(f"Finding {i + 1}: missing title")
        title = _as_text(f["title"])

        severity = f.get("severity")
        if severity not in VALID_SEVERITIES:
            severity = Severity.MEDIUM.value
            fixes.append(f'Finding "{title}": invalid severity, defaulted to MEDIUM')

        # Status is corrected without a fix entry, unlike severity.
        status = f.get("status")
        if status not in VALID_FINDING_STATUSES:
            status = FindingStatus.GAP.value

        rec = f.get("recommendation")
        if not rec or (isinstance(rec, (str, list)) and len(rec) < MIN_RECOMMENDATION_CHARS):
            warnings.append(f'Finding "{title}": recommendation is too short or missing')

        # Only gaps are filled; supplied ids are trusted even when they collide.
        finding_id = f.get("id") or (i + 1)

        priority = f.get("priority")
        findings.append(Finding(
            id=_coerce_id(finding_id),
            title=title,
            severity=severity,
            status=status,
            area=_as_text(f.get("area")),
            description=_as_text(f.get("description")),
            evidence=_as_text(f.get("evidence")),
            regulation=_as_text(f.get("regulation")),
            recommendation=_as_text(rec),
            priority=priority if _is_number(priority) else None,
        ))
    return findings


def _consistency_warnings(score: int, findings: list[Finding]) -> list[str]:
    critical = sum(1 for f in findings if f.severity == Severity.CRITICAL)
    high = sum(1 for f in findings if f.severity == Severity.HIGH)
    out: list[str] = []
    if critical > 0 and score > 60:
        out.append(
            f"Score is {score} but there are {critical} critical findings; score may be too high"
        )
    if critical == 0 and high == 0 and score < 40:
        out.append(f"Score is {score} but no critical/high findings; score may be too low")
    return out


def validate_analysis_output(raw_text: str, sector: str) -> ValidationResult:
    """
    Parse the model's analysis text and repair it into a ValidatedAnalysis.

    Rules:
    1) Unparsable JSON is fatal: valid=False, data=None, one warning, no fixes.
    2) Structural defects with a deterministic fallback are repaired and
       recorded in `fixes` (score, status, risk, summary, findings shape,
       finding title/severity). Finding status falls back to GAP without a fix.
    3) Content concerns are recorded in `warnings` only; data is left as-is
       (short summary, short recommendation, score/findings mismatch).
    4) `sector` and `analyzedAt` are always stamped here, never taken from the model.
    """
    warnings: list[str] = []
    fixes: list[str] = []

    json_text, fenced = extract_json_text(raw_text or "")
    if fenced:
        fixes.append("Extracted JSON from code block")

    try:
        # Leading byte-order marks count as whitespace here.
        source = json_text.strip().lstrip("\ufeff").strip()
        data = json.loads(source, parse_int=_parse_int, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return ValidationResult(valid=False, data=None, warnings=["AI response was not valid JSON"], fixes=[])

    if not isinstance(data, dict):
        return ValidationResult(valid=False, data=None, warnings=["AI response was not a JSON object"], fixes=[])

    # Score
    score = data.get("overallScore")
    if not _is_number(score):
        score = DEFAULT_SCORE
        fixes.append(f"overallScore was not a number, defaulted to {DEFAULT_SCORE}")
    elif score < 0:
        score = 0
        fixes.append("overallScore was negative, clamped to 0")
    elif score > 100:
        score = 100
        fixes.append("overallScore exceeded 100, clamped to 100")
    score = _round_half_up(score)

    # Status and risk, derived from the repaired score when invalid
    status = data.get("overallStatus")
    if status not in VALID_STATUSES:
        status = _status_from_score(score).value
        fixes.append(f"overallStatus was invalid, derived from score: {status}")

    risk = data.get("riskLevel")
    if risk not in VALID_RISK_LEVELS:
        risk = _risk_from_score(score).value
        fixes.append(f"riskLevel was invalid, derived from score: {risk}")

    summary = data.get("summary")
    if not summary or not isinstance(summary, str):
        summary = SUMMARY_PLACEHOLDER
        fixes.append("summary was missing, added placeholder")
    elif len(summary) < MIN_SUMMARY_CHARS:
        warnings.append("summary is very short")

    raw_findings = data.get("findings")
    if not isinstance(raw_findings, list):
        findings: list[Finding] = []
        fixes.append("findings was not an array, defaulted to empty")
    else:
        findings = _repair_findings(raw_findings, fixes, warnings)

    warnings.extend(_consistency_warnings(score, findings))

    arrays = {
        field: (data.get(key) if isinstance(data.get(key), list) else [])
        for key, field in OPTIONAL_ARRAYS.items()
    }

    analysis = ValidatedAnalysis(
        overall_score=score,
        overall_status=status,
        risk_level=risk,
        summary=summary,
        findings=findings,
        sector=sector,
        analyzed_at=datetime.now(timezone.utc),
        validation_meta=ValidationMeta(warning_count=len(warnings), fix_count=len(fixes)),
        **arrays,
    )
    logger.debug("Validated analysis for %s: %d fixes, %d warnings", sector, len(fixes), len(warnings))
    return ValidationResult(valid=True, data=analysis, warnings=warnings, fixes=fixes)
