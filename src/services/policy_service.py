from __future__ import annotations

import logging

from langsmith import traceable

from src.core.config import settings
from src.core.errors import RequestValidationError
from src.core.schemas import ChatMessage, LegislationPassage, PolicyRequest, PolicyResponse
from src.core.sectors import SECTORS, get_sector_config
from src.services.prompt_service import POLICY_SYSTEM_PROMPT, build_policy_prompt, format_policy_requirements

logger = logging.getLogger("compliance.policy")

POLICY_CONTEXT_TOP_K = 5


def _policy_requirements(searcher, policy_type: str, sector: str) -> list[LegislationPassage]:
    if searcher is None:
        return []
    try:
        return searcher.search(f"{policy_type} policy requirements", top_k=POLICY_CONTEXT_TOP_K, sector=sector) or []
    except Exception as e:
        logger.error(f"Legislation search failed for policy '{policy_type}': {e}")
        return []


@traceable(name="generate_policy")
def generate_policy(
    client,
    request: PolicyRequest,
    searcher=None,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> PolicyResponse:
    """
    Draft a sector policy document with the completion client.

    Unknown sectors fall back to the NDIS catalog entry. Legislation search is
    best effort; completion failures surface as UpstreamGenerationError.
    """
    policy_type = (request.policy_type or "").strip()
    if not policy_type:
        raise RequestValidationError("Policy type is required")

    cfg = get_sector_config(request.sector) or SECTORS["ndis"]
    passages = _policy_requirements(searcher, policy_type, request.sector)
    prompt = build_policy_prompt(
        policy_type,
        cfg,
        company_name=request.company_name,
        company_type=request.company_type,
        standard_number=request.standard_number,
        legislation_context=format_policy_requirements(passages, cfg.authority),
    )

    completion = client.complete(
        POLICY_SYSTEM_PROMPT,
        [ChatMessage(role="user", content=prompt)],
        max_tokens=max_tokens or settings.analysis_max_tokens,
        temperature=settings.analysis_temperature if temperature is None else temperature,
    )
    logger.info(f"Generated {policy_type} policy for {cfg.id} ({len(completion.text)} chars)")
    return PolicyResponse(policy=completion.text, content=completion.text)
