"""
Orchestration tests: the strict half (sector, completion, parse failures
raise) and the lenient half (search, storage and notification failures
are logged and the analysis is still returned).
"""
import json

import pytest

from src.core.errors import (
    InvalidSectorError,
    OutputIntegrityError,
    RequestValidationError,
    UpstreamGenerationError,
)
from src.core.schemas import AnalysisRequest, OverallStatus, Severity
from src.services.analysis_service import AnalysisOrchestrator

from conftest import FakeCompletionClient, FakeNotifier, FakeSearcher, FakeStore, passage


def _request(**kw):
    base = {
        "document_text": "Incidents are reported to the manager.",
        "sector": "ndis",
        "document_type": "Incident Policy",
        "document_name": "incident-policy.pdf",
    }
    base.update(kw)
    return AnalysisRequest(**base)


def _orchestrator(client, store=None, notifier=None, searcher=None, **kw):
    return AnalysisOrchestrator(client, store=store, notifier=notifier, searcher=searcher, **kw)


def test_happy_path(clean_analysis_text):
    client = FakeCompletionClient(text=clean_analysis_text)
    store, notifier = FakeStore(), FakeNotifier()
    result = _orchestrator(client, store, notifier).analyze(_request(), "user-1")

    assert result.overall_score == 72
    assert result.regulatory_authority == "NDIS Quality and Safeguards Commission"
    assert result.analysis_id == "analysis-1"
    # One GAP finding is tracked; the COMPLIANT one is not
    assert result.findings_created == 1
    assert result.fixes == [] and result.warnings == []

    (record,) = store.analyses
    assert record.user_id == "user-1"
    assert record.document_type == "Incident Policy"
    assert record.document_name == "incident-policy.pdf"
    assert record.overall_status == "PARTIAL"
    assert record.raw_analysis["regulatoryAuthority"] == "NDIS Quality and Safeguards Commission"
    assert record.findings[0]["title"] == "Reportable incident timeframes missing"

    (tracked,) = store.findings
    assert tracked.severity == "high"
    assert tracked.analysis_id == "analysis-1"
    assert tracked.description.endswith("Source: incident-policy.pdf")

    assert notifier.done.wait(2)
    user_id, payload = notifier.sent[0]
    assert user_id == "user-1"
    assert payload.message == 'Your NDIS document "incident-policy.pdf" scored 72%. 1 finding created.'


def test_completion_call_parameters(clean_analysis_text):
    client = FakeCompletionClient(text=clean_analysis_text)
    _orchestrator(client, max_tokens=1234, temperature=0.1).analyze(_request(), "u")
    (call,) = client.calls
    assert call["max_tokens"] == 1234
    assert call["temperature"] == 0.1
    assert "Respond only in valid JSON" in call["system"]
    assert call["messages"][0].role == "user"
    assert "Incidents are reported to the manager." in call["messages"][0].content


def test_unknown_sector_fails_before_any_call():
    client = FakeCompletionClient(text="{}")
    with pytest.raises(InvalidSectorError) as exc:
        _orchestrator(client).analyze(_request(sector="mining"), "u")
    assert isinstance(exc.value, RequestValidationError)
    assert "ndis" in str(exc.value)
    assert client.calls == []


def test_blank_document_is_rejected():
    client = FakeCompletionClient(text="{}")
    with pytest.raises(RequestValidationError):
        _orchestrator(client).analyze(_request(document_text="   "), "u")
    assert client.calls == []


def test_completion_failure_is_upstream_error(upstream_error):
    store = FakeStore()
    with pytest.raises(UpstreamGenerationError):
        _orchestrator(FakeCompletionClient(error=upstream_error), store).analyze(_request(), "u")
    assert store.analyses == []


def test_unexpected_client_exception_is_wrapped():
    with pytest.raises(UpstreamGenerationError):
        _orchestrator(FakeCompletionClient(error=TimeoutError("took too long"))).analyze(_request(), "u")


def test_garbage_output_is_integrity_error_and_not_persisted():
    store, notifier = FakeStore(), FakeNotifier()
    with pytest.raises(OutputIntegrityError) as exc:
        _orchestrator(FakeCompletionClient(text="{not json"), store, notifier).analyze(_request(), "u")
    assert exc.value.warnings == ["AI response was not valid JSON"]
    assert store.analyses == [] and store.findings == []
    assert notifier.sent == []


def test_document_is_truncated_in_prompt(clean_analysis_text):
    client = FakeCompletionClient(text=clean_analysis_text)
    doc = "x" * 30 + "TAIL-MARKER"
    _orchestrator(client, max_document_chars=30).analyze(_request(document_text=doc), "u")
    assert "TAIL-MARKER" not in client.calls[0]["messages"][0].content


def test_storage_failure_still_returns_analysis(clean_analysis_text):
    store = FakeStore(fail_analysis=True, fail_findings=True)
    result = _orchestrator(FakeCompletionClient(text=clean_analysis_text), store).analyze(_request(), "u")
    assert result.analysis_id is None
    assert result.findings_created == 0
    assert result.overall_score == 72


def test_findings_created_counts_accepted_records(clean_analysis):
    clean_analysis["findings"][1]["status"] = "GAP"
    store = FakeStore(accept_findings=1)
    result = _orchestrator(FakeCompletionClient(text=json.dumps(clean_analysis)), store).analyze(_request(), "u")
    assert result.findings_created == 1


def test_notification_failure_is_swallowed(clean_analysis_text):
    notifier = FakeNotifier(fail=True)
    result = _orchestrator(FakeCompletionClient(text=clean_analysis_text), FakeStore(), notifier).analyze(_request(), "u")
    assert notifier.done.wait(2)
    assert notifier.sent == []
    assert result.overall_score == 72


def test_legislation_context_reaches_prompt(clean_analysis_text):
    client = FakeCompletionClient(text=clean_analysis_text)
    searcher = FakeSearcher([passage("s1", section_number="73F")])
    _orchestrator(client, searcher=searcher).analyze(_request(), "u")
    prompt = client.calls[0]["messages"][0].content
    assert "[1] NDIS Practice Standards - Section 73F" in prompt
    assert searcher.queries[0]["query"] == "ndis compliance requirements"
    assert [q["query"] for q in searcher.queries[1:]] == [
        "Rights and Responsibilities",
        "Governance and Operational Management",
        "Provision of Supports",
    ]


def test_search_failure_means_empty_context(clean_analysis_text):
    client = FakeCompletionClient(text=clean_analysis_text)
    result = _orchestrator(client, searcher=FakeSearcher(error=ConnectionError("index offline"))).analyze(_request(), "u")
    assert "RELEVANT LEGISLATION" not in client.calls[0]["messages"][0].content
    assert result.overall_score == 72


def test_end_to_end_repairs_model_output():
    raw = json.dumps({"overallScore": 105, "overallStatus": "BAD", "findings": [{"severity": "urgent"}]})
    store, notifier = FakeStore(), FakeNotifier()
    result = _orchestrator(FakeCompletionClient(text=raw), store, notifier).analyze(_request(), "user-7")

    assert result.overall_score == 100
    assert result.overall_status == OverallStatus.COMPLIANT
    (finding,) = result.findings
    assert finding.severity == Severity.MEDIUM
    assert finding.status.value == "GAP"
    assert finding.title == "Finding 1"
    assert result.warnings
    assert len(result.fixes) >= 4
    assert result.sector == "ndis"

    (tracked,) = store.findings
    assert tracked.title == "Finding 1"
    assert tracked.severity == "medium"
    assert notifier.done.wait(2)
