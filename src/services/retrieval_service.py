from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from langchain_community.vectorstores import FAISS
from langchain_core.documents import Document
from langchain_core.vectorstores import VectorStore
from langchain_openai import OpenAIEmbeddings

from src.core.config import settings
from src.core.schemas import LegislationPassage
from src.core.sectors import SectorConfig

logger = logging.getLogger("compliance.retrieval")

CONTEXT_QUERIES_PER_SECTOR = 3
CONTEXT_TOP_K = 5
CONTEXT_MAX_PASSAGES = 15

TABLE_COLUMNS = ["title", "content", "section_number", "section_title", "sector"]


def _clean(value) -> str | None:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    s = str(value).strip()
    return s or None


def _documents_from_table(df: pd.DataFrame) -> list[Document]:
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = {"title", "content"} - set(df.columns)
    if missing:
        raise ValueError(f"Legislation table is missing columns: {', '.join(sorted(missing))}")

    docs = []
    for i, row in enumerate(df.to_dict(orient="records"), start=1):
        content = _clean(row.get("content"))
        if not content:
            continue
        docs.append(Document(
            page_content=content,
            metadata={
                "id": _clean(row.get("id")) or f"leg-{i}",
                "title": _clean(row.get("title")) or "Untitled source",
                "section_number": _clean(row.get("section_number")),
                "section_title": _clean(row.get("section_title")),
                "sector": _clean(row.get("sector")),
            },
        ))
    return docs


def read_legislation_table(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if p.suffix.lower() in {".xlsx", ".xls"}:
        return pd.read_excel(p)
    return pd.read_csv(p)


def build_index_from_table(path: str | Path, embed_model: str | None = None) -> FAISS:
    docs = _documents_from_table(read_legislation_table(path))
    if not docs:
        raise ValueError(f"No legislation passages found in {path}")
    emb = OpenAIEmbeddings(model=embed_model or settings.embed_model)
    return FAISS.from_documents(docs, emb)


def save_index(vs: FAISS, path: str):
    vs.save_local(path)


def load_index(path: str, embed_model: str | None = None) -> FAISS:
    model = (embed_model or settings.embed_model)
    return FAISS.load_local(path, OpenAIEmbeddings(model=model), allow_dangerous_deserialization=True)


class LegislationSearcher:
    """Ranked passage lookup over a legislation vector index."""

    def __init__(self, index: VectorStore):
        self.index = index

    def search(
        self,
        query: str,
        top_k: int = CONTEXT_TOP_K,
        sector: str | None = None,
        min_score: float = 0.1,
    ) -> list[LegislationPassage]:
        kwargs = {"k": top_k, "score_threshold": min_score}
        if sector:
            kwargs["filter"] = {"sector": sector}
        hits = self.index.similarity_search_with_relevance_scores(query, **kwargs)
        return [
            LegislationPassage(
                id=str(doc.metadata.get("id") or doc.page_content[:40]),
                title=doc.metadata.get("title") or "Untitled source",
                content=doc.page_content,
                section_number=doc.metadata.get("section_number"),
                section_title=doc.metadata.get("section_title"),
                sector=doc.metadata.get("sector"),
                score=float(score),
            )
            for doc, score in hits
        ]


def gather_legislation_context(searcher, sector: str, sector_config: SectorConfig) -> list[LegislationPassage]:
    """Best-effort retrieval for an analysis prompt. Never raises; failures yield no context."""
    if searcher is None:
        return []
    queries = [f"{sector} compliance requirements", *sector_config.key_areas[:CONTEXT_QUERIES_PER_SECTOR]]
    try:
        hits: list[LegislationPassage] = []
        for q in queries:
            hits.extend(searcher.search(q, top_k=CONTEXT_TOP_K, sector=sector) or [])
    except Exception as e:
        logger.error(f"Legislation search failed for {sector}: {e}")
        return []

    # First position wins the order, last occurrence wins the value.
    unique: dict[str, LegislationPassage] = {}
    for p in hits:
        unique[p.id] = p
    return list(unique.values())[:CONTEXT_MAX_PASSAGES]
