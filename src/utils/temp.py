from __future__ import annotations

from pathlib import Path
import uuid


def unique_temp_path(directory: str | Path, suffix: str = "", prefix: str = "upload") -> Path:
    """Fresh path for an uploaded document; the caller removes it after extraction."""
    d = Path(directory); d.mkdir(parents=True, exist_ok=True)
    return d / f"{prefix}_{uuid.uuid4().hex}{suffix}"
