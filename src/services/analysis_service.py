from __future__ import annotations

import logging

from langsmith import traceable

from src.core.config import settings
from src.core.errors import (
    InvalidSectorError,
    OutputIntegrityError,
    RequestValidationError,
    UpstreamGenerationError,
)
from src.core.schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ChatMessage,
    PersistedAnalysisRecord,
    Severity,
    ValidatedAnalysis,
)
from src.core.sectors import SECTOR_IDS, get_sector_config
from src.services.findings_service import project_findings
from src.services.guardrails_service import validate_analysis_output
from src.services.notification_service import build_analysis_notification, dispatch_notification
from src.services.prompt_service import (
    ANALYSIS_SYSTEM_PROMPT,
    DEFAULT_DOCUMENT_TYPE,
    build_analysis_prompt,
    format_legislation_context,
)
from src.services.retrieval_service import gather_legislation_context

logger = logging.getLogger("compliance.analysis")

UNTITLED_DOCUMENT = "Untitled"


def build_persisted_record(
    analysis: ValidatedAnalysis,
    request: AnalysisRequest,
    user_id: str,
    regulatory_authority: str,
) -> PersistedAnalysisRecord:
    raw = analysis.model_dump(by_alias=True, mode="json")
    raw["regulatoryAuthority"] = regulatory_authority
    return PersistedAnalysisRecord(
        user_id=user_id,
        sector=analysis.sector,
        document_type=request.document_type or DEFAULT_DOCUMENT_TYPE,
        document_name=request.document_name or UNTITLED_DOCUMENT,
        overall_score=analysis.overall_score,
        overall_status=analysis.overall_status.value,
        risk_level=analysis.risk_level.value,
        summary=analysis.summary,
        findings=raw["findings"],
        strengths=raw["strengths"],
        critical_gaps=raw["criticalGaps"],
        action_plan=raw["actionPlan"],
        compliance_by_area=raw["complianceByArea"],
        raw_analysis=raw,
    )


class AnalysisOrchestrator:
    """
    Runs one document analysis end to end:
    sector lookup -> legislation context -> prompt -> completion -> guardrail
    -> persist analysis -> persist findings -> notify.

    Strict about generation and parsing (those raise); lenient about storage and
    notifications (those are logged and the analysis is still returned).
    """

    def __init__(
        self,
        completion_client,
        store=None,
        notifier=None,
        searcher=None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        max_document_chars: int | None = None,
    ):
        self.client = completion_client
        self.store = store
        self.notifier = notifier
        self.searcher = searcher
        self.max_tokens = max_tokens or settings.analysis_max_tokens
        self.temperature = settings.analysis_temperature if temperature is None else temperature
        self.max_document_chars = max_document_chars or settings.max_document_chars

    def _generate(self, prompt: str) -> str:
        try:
            completion = self.client.complete(
                ANALYSIS_SYSTEM_PROMPT,
                [ChatMessage(role="user", content=prompt)],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except UpstreamGenerationError:
            raise
        except Exception as e:
            logger.error(f"LLM error: {e}")
            raise UpstreamGenerationError(str(e)) from e
        return completion.text

    def _save_analysis(self, record: PersistedAnalysisRecord) -> str | None:
        if self.store is None:
            return None
        try:
            analysis_id = self.store.save_analysis(record)
        except Exception as e:
            logger.error(f"Analysis save error: {e}")
            return None
        if analysis_id is None:
            logger.warning("Analysis was not persisted; returning it to the caller anyway")
        return analysis_id

    def _save_findings(self, user_id: str, analysis_id: str | None, records) -> int:
        if self.store is None or not records:
            return 0
        try:
            return int(self.store.save_findings(user_id, analysis_id, records) or 0)
        except Exception as e:
            logger.error(f"Failed to save findings: {e}")
            return 0

    @traceable(name="analyze_document")
    def analyze(self, request: AnalysisRequest, user_id: str) -> AnalysisResponse:
        sector = request.sector
        cfg = get_sector_config(sector)
        if cfg is None:
            raise InvalidSectorError(sector, SECTOR_IDS)
        if not isinstance(request.document_text, str) or not request.document_text.strip():
            raise RequestValidationError("documentText is required")

        passages = gather_legislation_context(self.searcher, sector, cfg)
        prompt = build_analysis_prompt(
            request.document_text,
            sector,
            cfg,
            document_type=request.document_type,
            legislation_context=format_legislation_context(passages),
            max_chars=self.max_document_chars,
        )

        raw_text = self._generate(prompt)

        validation = validate_analysis_output(raw_text, sector)
        if not validation.valid:
            logger.error(f"Analysis validation failed: {validation.warnings}")
            raise OutputIntegrityError("AI produced invalid output", validation.warnings)
        if validation.warnings:
            logger.warning(f"Analysis validation warnings: {validation.warnings}")
        if validation.fixes:
            logger.info(f"Analysis validation fixes: {validation.fixes}")

        analysis = validation.data
        record = build_persisted_record(analysis, request, user_id, cfg.authority)
        analysis_id = self._save_analysis(record)

        finding_records = project_findings(
            analysis.findings, user_id, sector, request.document_name, analysis_id
        )
        created = self._save_findings(user_id, analysis_id, finding_records)

        critical = sum(1 for f in analysis.findings if f.severity == Severity.CRITICAL)
        dispatch_notification(
            self.notifier,
            user_id,
            build_analysis_notification(
                analysis.overall_score,
                cfg.name,
                request.document_name or UNTITLED_DOCUMENT,
                created,
                critical,
            ),
        )

        return AnalysisResponse(
            **analysis.model_dump(),
            regulatory_authority=cfg.authority,
            analysis_id=analysis_id,
            findings_created=created,
            warnings=validation.warnings,
            fixes=validation.fixes,
        )
