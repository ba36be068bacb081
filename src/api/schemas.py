from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, List

from src.core.schemas import CamelModel, ChatMessage


class HealthResponse(BaseModel):
    status: str


class SectorInfo(CamelModel):
    id: str
    name: str
    full_name: str
    authority: str
    key_areas: List[str]
    regulations: List[str]
    authorities: List[str]
    suggested_prompts: List[str]


class SectorsResponse(BaseModel):
    count: int
    sectors: List[SectorInfo]


class ChatRequest(CamelModel):
    message: str = ""
    sector: str | None = None
    conversation_history: List[ChatMessage] = Field(default_factory=list)
    use_rag: bool = True


class AnalysesResponse(BaseModel):
    count: int
    items: List[dict[str, Any]]


class NotificationsResponse(CamelModel):
    notifications: List[dict[str, Any]]
    unread_count: int


class NotificationUpdate(CamelModel):
    notification_id: str | None = None
    mark_all: bool = False


class SuccessResponse(BaseModel):
    success: bool
    updated: int = 0


class AuditReportRequest(BaseModel):
    sector: str | None = None
