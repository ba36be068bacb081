import pytest

from src.core.schemas import Finding, FindingRecord
from src.services.findings_service import (
    build_description,
    map_severity,
    project_findings,
    summarize_finding_records,
)


def _finding(**kw):
    base = {"id": 1, "title": "Worker screening checks", "severity": "HIGH", "status": "GAP"}
    base.update(kw)
    return Finding(**base)


@pytest.mark.parametrize("raw, expected", [
    ("CRITICAL", "critical"),
    ("HIGH", "high"),
    ("MEDIUM", "medium"),
    ("LOW", "low"),
    ("INFO", "medium"),
    ("urgent", "medium"),
    ("high", "high"),
    (None, "medium"),
    (3, "medium"),
])
def test_map_severity(raw, expected):
    assert map_severity(raw) == expected


def test_map_severity_accepts_enum_members():
    assert map_severity(_finding(severity="CRITICAL").severity) == "critical"
    assert map_severity(_finding(severity="INFO").severity) == "medium"


def test_compliant_findings_are_not_tracked():
    findings = [
        _finding(id=1, status="COMPLIANT"),
        _finding(id=2, status="GAP"),
        _finding(id=3, status="PARTIAL"),
        _finding(id=4, status="NOT_ADDRESSED"),
    ]
    records = project_findings(findings, "user-1", "ndis")
    assert len(records) == 3
    assert all(r.status == "open" for r in records)


def test_record_fields():
    f = _finding(area="Worker Screening", severity="CRITICAL")
    (rec,) = project_findings([f], "user-1", "ndis", "Screening Policy.pdf", "analysis-9")
    assert rec.user_id == "user-1"
    assert rec.title == "Worker screening checks"
    assert rec.severity == "critical"
    assert rec.category == "Worker Screening"
    assert rec.analysis_id == "analysis-9"


def test_category_falls_back_to_sector():
    (rec,) = project_findings([_finding()], "user-1", "aged_care")
    assert rec.category == "aged_care"


def test_description_sections():
    f = _finding(
        description="Screening clearances are not verified.",
        regulation="NDIS (Worker Screening) Rules 2018",
        recommendation="Verify clearances before rostering.",
    )
    assert build_description(f, "HR Policy.docx") == (
        "Screening clearances are not verified.\n\n"
        "Regulation: NDIS (Worker Screening) Rules 2018\n\n"
        "Recommendation: Verify clearances before rostering.\n\n"
        "Source: HR Policy.docx"
    )


def test_description_omits_absent_sections_and_trims():
    f = _finding(description=None, recommendation="Verify clearances.")
    assert build_description(f) == "Recommendation: Verify clearances."
    assert build_description(_finding(description="  Only text  ")) == "Only text"


def test_summary_counts():
    records = [
        FindingRecord(user_id="u", title="a", description="", severity="critical", category="c"),
        FindingRecord(user_id="u", title="b", description="", severity="high", category="c", status="in_progress"),
        FindingRecord(user_id="u", title="c", description="", severity="critical", category="c", status="resolved"),
        FindingRecord(user_id="u", title="d", description="", severity="low", category="c"),
    ]
    counts = summarize_finding_records(records)
    assert counts.total == 4
    assert counts.open == 3
    assert counts.critical == 1
    assert counts.high == 1
    assert counts.resolved == 1
