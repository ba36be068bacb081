from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from src.core.schemas import FindingRecord, PersistedAnalysisRecord

logger = logging.getLogger("compliance.storage")


class AnalysisStore:
    """Persistence boundary for analyses and trackable findings.

    Implementations must not raise from the save methods: a failed write returns
    None / 0 so the caller can still hand the analysis back to the user.
    """

    def save_analysis(self, record: PersistedAnalysisRecord) -> str | None:
        raise NotImplementedError

    def save_findings(self, user_id: str, analysis_id: str | None, records: list[FindingRecord]) -> int:
        raise NotImplementedError

    def list_analyses(self, user_id: str, sector: str | None = None, limit: int = 50) -> list[dict]:
        raise NotImplementedError

    def list_findings(self, user_id: str) -> list[FindingRecord]:
        raise NotImplementedError


class JsonlAnalysisStore(AnalysisStore):
    """Append-only JSONL files: one for analyses, one for findings."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.analyses_path = self.directory / "compliance_analyses.jsonl"
        self.findings_path = self.directory / "findings.jsonl"
        self._lock = threading.Lock()

    def _append(self, path: Path, rows: list[dict]) -> None:
        with self._lock, path.open("a", encoding="utf-8") as f:
            for row in rows:
                f.write(json.dumps(row, ensure_ascii=False, default=str) + "\n")

    def _read(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        rows = []
        with path.open(encoding="utf-8") as f:
            for n, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    row = json.loads(line)
                except ValueError as e:
                    # A torn append; the rest of the file is still usable
                    logger.warning(f"Skipping unreadable line {n} in {path.name}: {e}")
                    continue
                if isinstance(row, dict):
                    rows.append(row)
        return rows

    def save_analysis(self, record: PersistedAnalysisRecord) -> str | None:
        analysis_id = uuid.uuid4().hex
        row = {"id": analysis_id, "created_at": datetime.now(timezone.utc).isoformat(), **record.model_dump(mode="json")}
        try:
            self._append(self.analyses_path, [row])
        except OSError as e:
            logger.error(f"Failed to save analysis: {e}")
            return None
        return analysis_id

    def save_findings(self, user_id: str, analysis_id: str | None, records: list[FindingRecord]) -> int:
        if not records:
            return 0
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            {"id": uuid.uuid4().hex, "created_at": now, **r.model_dump(mode="json"), "analysis_id": analysis_id}
            for r in records
        ]
        try:
            self._append(self.findings_path, rows)
        except OSError as e:
            logger.error(f"Failed to save findings: {e}")
            return 0
        return len(rows)

    def list_analyses(self, user_id: str, sector: str | None = None, limit: int = 50) -> list[dict]:
        rows = [r for r in self._read(self.analyses_path) if r.get("user_id") == user_id]
        if sector:
            rows = [r for r in rows if r.get("sector") == sector]
        rows.sort(key=lambda r: r.get("created_at", ""), reverse=True)
        return rows[:limit]

    def list_findings(self, user_id: str) -> list[FindingRecord]:
        return [
            FindingRecord.model_validate(r)
            for r in self._read(self.findings_path)
            if r.get("user_id") == user_id
        ]
