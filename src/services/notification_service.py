from __future__ import annotations

import json
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

from src.core.schemas import NotificationPayload

logger = logging.getLogger("compliance.notifications")

FINDINGS_LINK = "/dashboard/findings"

# Notifications never block a response; a small shared pool is enough.
_POOL = ThreadPoolExecutor(max_workers=2, thread_name_prefix="notify")


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n > 1 else ''}"


def _score_label(score: int) -> str:
    if score >= 80:
        return "[OK]"
    if score >= 60:
        return "[REVIEW]"
    return "[ACTION]"


def build_analysis_notification(
    score: int,
    sector_name: str,
    document_name: str,
    findings_count: int,
    critical_count: int,
) -> NotificationPayload:
    message = f'Your {sector_name} document "{document_name}" scored {score}%.'
    if critical_count > 0:
        message += f" {_plural(critical_count, 'critical finding')} need attention."
    elif findings_count > 0:
        message += f" {_plural(findings_count, 'finding')} created."
    return NotificationPayload(
        title=f"{_score_label(score)} Analysis Complete: {score}%",
        message=message,
        type="analysis_complete",
        link=FINDINGS_LINK,
    )


class Notifier:
    def notify(self, user_id: str, payload: NotificationPayload) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    def notify(self, user_id: str, payload: NotificationPayload) -> None:
        logger.info(f"Notify {user_id}: {payload.title} | {payload.message}")


class JsonlNotifier(Notifier):
    """Notification inbox kept in one JSONL file. Writes append; read flags rewrite the file."""

    def __init__(self, directory: str | Path):
        self.path = Path(directory) / "notifications.jsonl"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def notify(self, user_id: str, payload: NotificationPayload) -> None:
        row = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "read": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
            **payload.model_dump(),
        }
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")

    def _rows(self) -> list[dict]:
        if not self.path.exists():
            return []
        rows = []
        with self.path.open(encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    rows.append(json.loads(line))
                except ValueError:
                    logger.warning(f"Skipping unreadable notification row in {self.path.name}")
        return rows

    def _rewrite(self, rows: list[dict]) -> None:
        tmp = self.path.with_suffix(".jsonl.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            for row in rows:
                f.write(json.dumps(row, ensure_ascii=False) + "\n")
        tmp.replace(self.path)

    def list_notifications(self, user_id: str, limit: int = 10) -> list[dict]:
        with self._lock:
            rows = [r for r in self._rows() if r.get("user_id") == user_id]
        rows.sort(key=lambda r: r.get("created_at", ""), reverse=True)
        return rows[:limit]

    def unread_count(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for r in self._rows() if r.get("user_id") == user_id and not r.get("read"))

    def _mark(self, user_id: str, notification_id: str | None = None) -> int:
        with self._lock:
            rows = self._rows()
            changed = 0
            for r in rows:
                if r.get("user_id") != user_id or r.get("read"):
                    continue
                if notification_id is not None and r.get("id") != notification_id:
                    continue
                r["read"] = True
                changed += 1
            if changed:
                self._rewrite(rows)
        return changed

    def mark_as_read(self, notification_id: str, user_id: str) -> int:
        """Only the owner's notification is touched; unknown ids are a no-op."""
        return self._mark(user_id, notification_id)

    def mark_all_as_read(self, user_id: str) -> int:
        return self._mark(user_id)


def _deliver(notifier: Notifier, user_id: str, payload: NotificationPayload) -> bool:
    try:
        notifier.notify(user_id, payload)
        return True
    except Exception as e:
        logger.warning(f"Notification failed (non-fatal) for {user_id}: {e}")
        return False


def dispatch_notification(notifier: Notifier | None, user_id: str, payload: NotificationPayload) -> Future | None:
    """Fire-and-forget delivery. The returned future resolves to True/False and never raises."""
    if notifier is None:
        return None
    try:
        return _POOL.submit(_deliver, notifier, user_id, payload)
    except RuntimeError as e:
        # Pool already shut down (interpreter exit)
        logger.warning(f"Notification not dispatched: {e}")
        return None
