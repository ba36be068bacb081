from __future__ import annotations

import logging
import re
from typing import Iterator

from src.core.config import settings
from src.core.errors import RequestValidationError
from src.core.schemas import ChatEvent, ChatMessage
from src.services.prompt_service import build_chat_system_prompt, format_legislation_context

logger = logging.getLogger("compliance.chat")

CHAT_CONTEXT_HEADING = "RELEVANT LEGISLATION & STANDARDS (cite these in your response)"
MAX_REFERENCES = 10

# First match wins, checked in this order.
RISK_PATTERNS = [
    ("critical", re.compile(r"\b(critical|severe|immediate action required)\b", re.IGNORECASE)),
    ("high", re.compile(r"\b(high risk|significant risk|urgent)\b", re.IGNORECASE)),
    ("medium", re.compile(r"\b(medium risk|moderate|should address)\b", re.IGNORECASE)),
    ("low", re.compile(r"\b(low risk|minor|consider)\b", re.IGNORECASE)),
]

REFERENCE_PATTERNS = [
    re.compile(r"HVNL\s+(?:Section\s+)?(\d+[A-Z]?)", re.IGNORECASE),
    re.compile(r"NDIS\s+(?:Practice\s+)?Standard(?:s)?\s+(\d+(?:\.\d+)?)?", re.IGNORECASE),
    re.compile(r"WHS\s+(?:Act|Regulations?)(?:\s+Section\s+)?(\d+)?", re.IGNORECASE),
    re.compile(r"Quality\s+Indicator(?:s)?\s+(\d+(?:\.\d+)*)", re.IGNORECASE),
    re.compile(r"Section\s+(\d+(?:\.\d+)*)", re.IGNORECASE),
]


def extract_chat_metadata(content: str, citations: list[dict] | None = None) -> dict:
    metadata: dict = {}
    if citations:
        metadata["citations"] = citations

    for level, pattern in RISK_PATTERNS:
        if pattern.search(content):
            metadata["riskLevel"] = level
            break

    refs = []
    for pattern in REFERENCE_PATTERNS:
        for m in pattern.finditer(content):
            refs.append({"id": f"ref-{len(refs)}", "name": m.group(0), "section": m.group(1) or m.group(0)})

    if refs:
        metadata["regulationRefs"] = refs[:MAX_REFERENCES]
        metadata["confidence"] = min(0.85 + len(refs) * 0.02, 0.95)
    return metadata


def _chat_context(searcher, message: str, sector: str | None) -> tuple[str, list[dict]]:
    if searcher is None:
        return "", []
    try:
        passages = searcher.search(message, top_k=5, sector=sector, min_score=0.1)
    except Exception as e:
        logger.error(f"RAG search error: {e}")
        return "", []
    citations = [
        {"source": p.title, "section": p.section_number or p.section_title, "score": p.score}
        for p in passages
    ]
    return format_legislation_context(passages, heading=CHAT_CONTEXT_HEADING), citations


def _events(client, system: str, messages: list[ChatMessage], citations: list[dict]) -> Iterator[ChatEvent]:
    parts: list[str] = []
    try:
        for chunk in client.stream(
            system, messages, max_tokens=settings.chat_max_tokens, temperature=settings.chat_temperature
        ):
            parts.append(chunk)
            yield ChatEvent(type="delta", content=chunk)
    except Exception as e:
        logger.error(f"Streaming error: {e}")
        yield ChatEvent(type="error", error=str(e) or "Unknown error")
        return

    full = "".join(parts)
    yield ChatEvent(type="done", content=full, metadata=extract_chat_metadata(full, citations))


def stream_chat(
    client,
    message: str,
    sector: str | None = None,
    history: list[ChatMessage] | None = None,
    searcher=None,
) -> Iterator[ChatEvent]:
    """Validate eagerly, then return the event stream: deltas in order, then one done (or error) event."""
    if not message or not message.strip():
        raise RequestValidationError("Message is required")

    rag_context, citations = _chat_context(searcher, message, sector)
    system = build_chat_system_prompt(sector) + rag_context
    messages = [*(history or []), ChatMessage(role="user", content=message)]
    return _events(client, system, messages, citations)


def to_sse(event: ChatEvent) -> str:
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"
