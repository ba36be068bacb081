"""
Shared fixtures: in-process stand-ins for the completion provider, the
analysis store, the notifier and the legislation searcher, plus a clean
analysis payload that passes the guardrail without fixes or warnings.
"""
import copy
import json
import threading

import pytest

from src.core.errors import UpstreamGenerationError
from src.core.schemas import Completion, LegislationPassage
from src.services.notification_service import Notifier
from src.services.storage_service import AnalysisStore


CLEAN_ANALYSIS = {
    "sector": "ndis",
    "sectorName": "NDIS",
    "documentType": "Incident Management Policy",
    "overallScore": 72,
    "overallStatus": "PARTIAL",
    "riskLevel": "MEDIUM",
    "summary": "The policy covers most incident management requirements but lacks timeframes for reportable incidents.",
    "findings": [
        {
            "id": 1,
            "area": "Incident Management",
            "title": "Reportable incident timeframes missing",
            "severity": "HIGH",
            "status": "GAP",
            "description": "The policy does not state the 24 hour notification window.",
            "evidence": None,
            "regulation": "NDIS (Incident Management and Reportable Incidents) Rules 2018",
            "recommendation": "Add the 24 hour and 5 business day reporting timeframes.",
            "priority": 2,
        },
        {
            "id": 2,
            "area": "Complaints Management",
            "title": "Complaints register maintained",
            "severity": "LOW",
            "status": "COMPLIANT",
            "description": "A complaints register is described and reviewed monthly.",
            "evidence": "Complaints are logged in the register and reviewed monthly.",
            "regulation": "NDIS Practice Standards - Complaints Management",
            "recommendation": "Keep the monthly review cadence.",
            "priority": 8,
        },
    ],
    "strengths": [{"area": "Complaints Management", "description": "Clear complaints register."}],
    "criticalGaps": ["Reportable incident timeframes"],
    "actionPlan": [{"priority": 1, "action": "Update policy", "timeframe": "7 days", "responsibility": "Quality Manager"}],
    "complianceByArea": [{"area": "Incident Management", "score": 55, "status": "PARTIAL"}],
    "regulatoryReferences": [{"reference": "Rules 2018 s16", "description": "Notification timeframes"}],
    "nextAuditFocus": ["Incident reporting drills"],
}


@pytest.fixture
def clean_analysis():
    return copy.deepcopy(CLEAN_ANALYSIS)


@pytest.fixture
def clean_analysis_text(clean_analysis):
    return json.dumps(clean_analysis)


class FakeCompletionClient:
    def __init__(self, text="", error=None, chunks=None, stream_error=None):
        self.text = text
        self.error = error
        self.chunks = chunks or []
        self.stream_error = stream_error
        self.calls = []

    def complete(self, system, messages, max_tokens=4096, temperature=0.3):
        self.calls.append({"system": system, "messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return Completion(text=self.text, model="fake-model", input_tokens=10, output_tokens=20)

    def stream(self, system, messages, max_tokens=4096, temperature=0.7):
        self.calls.append({"system": system, "messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        for c in self.chunks:
            yield c
        if self.stream_error is not None:
            raise self.stream_error


class FakeStore(AnalysisStore):
    def __init__(self, fail_analysis=False, fail_findings=False, accept_findings=None):
        self.analyses = []
        self.findings = []
        self.fail_analysis = fail_analysis
        self.fail_findings = fail_findings
        self.accept_findings = accept_findings

    def save_analysis(self, record):
        if self.fail_analysis:
            raise ConnectionError("database unavailable")
        self.analyses.append(record)
        return f"analysis-{len(self.analyses)}"

    def save_findings(self, user_id, analysis_id, records):
        if self.fail_findings:
            raise ConnectionError("database unavailable")
        accepted = records if self.accept_findings is None else records[: self.accept_findings]
        self.findings.extend(accepted)
        return len(accepted)

    def list_analyses(self, user_id, sector=None, limit=50):
        return []

    def list_findings(self, user_id):
        return [r for r in self.findings if r.user_id == user_id]


class FakeNotifier(Notifier):
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail
        self.done = threading.Event()

    def notify(self, user_id, payload):
        try:
            if self.fail:
                raise RuntimeError("notification table missing")
            self.sent.append((user_id, payload))
        finally:
            self.done.set()


class FakeSearcher:
    def __init__(self, passages=None, error=None):
        self.passages = passages or []
        self.error = error
        self.queries = []

    def search(self, query, top_k=5, sector=None, min_score=0.1):
        self.queries.append({"query": query, "top_k": top_k, "sector": sector})
        if self.error is not None:
            raise self.error
        return list(self.passages)


def passage(pid, title="NDIS Practice Standards", content="Providers must notify the Commission.", **kw):
    return LegislationPassage(id=pid, title=title, content=content, **kw)


@pytest.fixture
def upstream_error():
    return UpstreamGenerationError("provider timeout")
