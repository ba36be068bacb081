from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from langsmith import traceable

from src.core.config import settings
from src.core.errors import UpstreamGenerationError
from src.core.schemas import ChatMessage, Completion

logger = logging.getLogger("compliance.llm")


def get_chat_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0,
    max_tokens: Optional[int] = None,
):
    if provider and provider.lower() != "openai":
        raise ValueError("Only 'openai' provider is supported.")
    mdl = model or settings.llm_model
    return ChatOpenAI(
        model=mdl,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=settings.llm_timeout_s,
        max_retries=settings.llm_max_retries,
    )


def _to_messages(system: str, messages: list[ChatMessage]) -> list[BaseMessage]:
    out: list[BaseMessage] = [SystemMessage(content=system)]
    for m in messages:
        out.append(HumanMessage(content=m.content) if m.role == "user" else AIMessage(content=m.content))
    return out


def _text_of(content) -> str:
    if isinstance(content, str):
        return content
    # Content-block lists: keep only text parts
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class CompletionClient:
    """One long-lived chat model handle, built at startup and passed to the services that need it."""

    def __init__(self, model: Optional[str] = None, provider: Optional[str] = None):
        self.model = model or settings.llm_model
        self.provider = provider
        self._models: dict[tuple[int, float], ChatOpenAI] = {}
        self._lock = threading.Lock()

    def _llm(self, max_tokens: int, temperature: float) -> ChatOpenAI:
        key = (max_tokens, temperature)
        with self._lock:
            if key not in self._models:
                self._models[key] = get_chat_llm(self.provider, self.model, temperature=temperature, max_tokens=max_tokens)
            return self._models[key]

    @traceable
    def complete(
        self,
        system: str,
        messages: list[ChatMessage],
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> Completion:
        try:
            resp = self._llm(max_tokens, temperature).invoke(_to_messages(system, messages))
        except Exception as e:
            logger.error(f"Completion failed ({self.model}): {e}")
            raise UpstreamGenerationError(str(e)) from e

        usage = getattr(resp, "usage_metadata", None) or {}
        return Completion(
            text=_text_of(resp.content),
            model=self.model,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )

    def stream(
        self,
        system: str,
        messages: list[ChatMessage],
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> Iterator[str]:
        try:
            for chunk in self._llm(max_tokens, temperature).stream(_to_messages(system, messages)):
                text = _text_of(chunk.content)
                if text:
                    yield text
        except Exception as e:
            logger.error(f"Completion stream failed ({self.model}): {e}")
            raise UpstreamGenerationError(str(e)) from e
