from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import pandas as pd
from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from src.api.schemas import (
    AnalysesResponse,
    AuditReportRequest,
    ChatRequest,
    HealthResponse,
    NotificationsResponse,
    NotificationUpdate,
    SectorInfo,
    SectorsResponse,
    SuccessResponse,
)
from src.core.config import settings
from src.core.errors import OutputIntegrityError, RequestValidationError, UpstreamGenerationError
from src.core.schemas import AnalysisRequest, AnalysisResponse, AuditReport, FindingCounts, PolicyRequest, PolicyResponse
from src.core.sectors import SECTORS
from src.services.analysis_service import AnalysisOrchestrator
from src.services.audit_service import audit_report_for_user
from src.services.chat_service import stream_chat, to_sse
from src.services.document_service import load_document_text
from src.services.findings_service import project_findings, summarize_finding_records
from src.services.llm_services import CompletionClient
from src.services.notification_service import JsonlNotifier
from src.services.policy_service import generate_policy
from src.services.retrieval_service import LegislationSearcher, load_index
from src.services.storage_service import JsonlAnalysisStore
from src.utils.io import dataframe_to_excel_bytes
from src.utils.temp import unique_temp_path

logger = logging.getLogger("compliance.api")

APP_CACHE = Path(".cache")

UPSTREAM_FAILED = {"error": "upstream_generation_failed", "message": "AI analysis failed. Please try again."}
INVALID_OUTPUT = {"error": "invalid_ai_output", "message": "AI produced invalid output. Please try again."}
POLICY_FAILED = {"error": "upstream_generation_failed", "message": "Policy generation failed. Please try again."}


router = APIRouter()


@lru_cache
def get_completion_client() -> CompletionClient:
    return CompletionClient()


@lru_cache
def get_searcher() -> LegislationSearcher | None:
    index_dir = settings.legislation_index_dir
    if not settings.use_legislation_search or not index_dir or not Path(index_dir).exists():
        return None
    try:
        return LegislationSearcher(load_index(index_dir))
    except Exception as e:
        # Analyses still run without legislation context
        logger.error(f"Could not load legislation index from {index_dir}: {e}")
        return None


@lru_cache
def get_store() -> JsonlAnalysisStore:
    return JsonlAnalysisStore(settings.store_dir)


@lru_cache
def get_notifier() -> JsonlNotifier:
    return JsonlNotifier(settings.store_dir)


@lru_cache
def get_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        get_completion_client(),
        store=get_store(),
        notifier=get_notifier(),
        searcher=get_searcher(),
    )


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def _run_analysis(orchestrator: AnalysisOrchestrator, req: AnalysisRequest, user_id: str) -> AnalysisResponse:
    try:
        return orchestrator.analyze(req, user_id)
    except RequestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamGenerationError:
        raise HTTPException(status_code=502, detail=UPSTREAM_FAILED)
    except OutputIntegrityError:
        raise HTTPException(status_code=502, detail=INVALID_OUTPUT)


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/sectors", response_model=SectorsResponse)
def list_sectors() -> SectorsResponse:
    items = [
        SectorInfo(
            id=s.id,
            name=s.name,
            full_name=s.full_name,
            authority=s.authority,
            key_areas=list(s.key_areas),
            regulations=list(s.regulations),
            authorities=list(s.authorities),
            suggested_prompts=list(s.suggested_prompts),
        )
        for s in SECTORS.values()
    ]
    return SectorsResponse(count=len(items), sectors=items)


@router.post("/analyze", response_model=AnalysisResponse)
def analyze_document(
    body: AnalysisRequest,
    user_id: str = Depends(require_user),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisResponse:
    return _run_analysis(orchestrator, body, user_id)


@router.post("/analyze/upload", response_model=AnalysisResponse)
async def analyze_upload(
    document: UploadFile = File(...),
    sector: str = Form(...),
    document_type: str | None = Form(default=None),
    excel: bool | None = Query(default=False, description="Return the tracked findings as an Excel file"),
    user_id: str = Depends(require_user),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisResponse | StreamingResponse:
    if not document.filename:
        raise HTTPException(status_code=400, detail="Please upload a document.")

    tmp_path = unique_temp_path(APP_CACHE, suffix=Path(document.filename).suffix.lower())
    tmp_path.write_bytes(await document.read())
    try:
        text = await run_in_threadpool(load_document_text, tmp_path)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Could not read document: {e}")
    finally:
        tmp_path.unlink(missing_ok=True)

    if not text:
        raise HTTPException(status_code=400, detail="No extractable text found in the document.")

    req = AnalysisRequest(
        document_text=text,
        sector=sector,
        document_type=document_type,
        document_name=document.filename,
    )
    result = await run_in_threadpool(_run_analysis, orchestrator, req, user_id)

    if excel:
        records = project_findings(result.findings, user_id, result.sector, document.filename, result.analysis_id)
        df = pd.DataFrame({
            "Finding": list(range(1, len(records) + 1)),
            "Title": [r.title for r in records],
            "Severity": [r.severity for r in records],
            "Category": [r.category for r in records],
            "Status": [r.status for r in records],
            "Description": [r.description for r in records],
        })
        filename = (Path(document.filename).stem or "document") + "_findings.xlsx"
        return StreamingResponse(
            iter([dataframe_to_excel_bytes(df)]),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
        )
    return result


@router.get("/analyses", response_model=AnalysesResponse)
def list_analyses(
    sector: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    user_id: str = Depends(require_user),
    store: JsonlAnalysisStore = Depends(get_store),
) -> AnalysesResponse:
    rows = store.list_analyses(user_id, sector=sector, limit=limit)
    return AnalysesResponse(count=len(rows), items=rows)


@router.get("/findings/summary", response_model=FindingCounts)
def findings_summary(
    user_id: str = Depends(require_user),
    store: JsonlAnalysisStore = Depends(get_store),
) -> FindingCounts:
    return summarize_finding_records(store.list_findings(user_id))


@router.post("/chat")
def chat(
    body: ChatRequest,
    client: CompletionClient = Depends(get_completion_client),
    searcher: LegislationSearcher | None = Depends(get_searcher),
) -> StreamingResponse:
    try:
        events = stream_chat(
            client,
            body.message,
            sector=body.sector,
            history=body.conversation_history,
            searcher=searcher if body.use_rag else None,
        )
    except RequestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StreamingResponse(
        (to_sse(ev) for ev in events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/notifications", response_model=NotificationsResponse)
def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(require_user),
    notifier: JsonlNotifier = Depends(get_notifier),
) -> NotificationsResponse:
    return NotificationsResponse(
        notifications=notifier.list_notifications(user_id, limit=limit),
        unread_count=notifier.unread_count(user_id),
    )


@router.patch("/notifications", response_model=SuccessResponse)
def update_notifications(
    body: NotificationUpdate,
    user_id: str = Depends(require_user),
    notifier: JsonlNotifier = Depends(get_notifier),
) -> SuccessResponse:
    updated = 0
    if body.mark_all:
        updated = notifier.mark_all_as_read(user_id)
    elif body.notification_id:
        updated = notifier.mark_as_read(body.notification_id, user_id)
    return SuccessResponse(success=True, updated=updated)


@router.post("/generate-policy", response_model=PolicyResponse)
def generate_policy_document(
    body: PolicyRequest,
    client: CompletionClient = Depends(get_completion_client),
    searcher: LegislationSearcher | None = Depends(get_searcher),
) -> PolicyResponse:
    try:
        return generate_policy(client, body, searcher=searcher)
    except RequestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamGenerationError:
        raise HTTPException(status_code=502, detail=POLICY_FAILED)


@router.post("/audit-report", response_model=AuditReport)
def audit_report(
    body: AuditReportRequest,
    user_id: str = Depends(require_user),
    store: JsonlAnalysisStore = Depends(get_store),
) -> AuditReport:
    return audit_report_for_user(store, user_id, body.sector)
