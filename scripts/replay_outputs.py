#!/usr/bin/env python3
import argparse
from collections import Counter
from pathlib import Path

import pandas as pd

# Ensure local imports work when run from repo root
import sys
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.core.sectors import SECTOR_IDS
from src.services.guardrails_service import validate_analysis_output


def replay(raw_dir: Path, sector: str, pattern: str = "*.txt") -> pd.DataFrame:
    """Run every captured model response in raw_dir through the guardrail."""
    rows = []
    for path in sorted(raw_dir.glob(pattern)):
        result = validate_analysis_output(path.read_text(encoding="utf-8"), sector)
        data = result.data
        rows.append({
            "file": path.name,
            "valid": result.valid,
            "score": data.overall_score if data else None,
            "status": data.overall_status.value if data else None,
            "risk": data.risk_level.value if data else None,
            "findings": len(data.findings) if data else 0,
            "fix_count": len(result.fixes),
            "warning_count": len(result.warnings),
            "fixes": " | ".join(result.fixes),
            "warnings": " | ".join(result.warnings),
        })
    return pd.DataFrame(rows)


def main():
    parser = argparse.ArgumentParser(description="Replay captured analysis responses through the output guardrail.")
    parser.add_argument("raw_dir", type=str, help="Directory of raw model responses")
    parser.add_argument("--sector", type=str, default="ndis", choices=SECTOR_IDS)
    parser.add_argument("--glob", type=str, default="*.txt")
    parser.add_argument("--out", type=str, default=str(REPO_ROOT / "outputs" / "guardrail_replay.csv"))
    args = parser.parse_args()

    raw_dir = Path(args.raw_dir)
    if not raw_dir.is_dir():
        raise FileNotFoundError(f"Not a directory: {raw_dir}")

    df = replay(raw_dir, args.sector, args.glob)
    if df.empty:
        print("No responses found.")
        raise SystemExit(2)

    rejected = int((~df["valid"]).sum())
    print(f"Responses: {len(df)}  rejected: {rejected}  repaired: {int((df['fix_count'] > 0).sum())}")

    fix_kinds = Counter(f.split(",")[0] for cell in df["fixes"] for f in cell.split(" | ") if f)
    for kind, n in fix_kinds.most_common(10):
        print(f"  {n:4d}  {kind}")

    out = Path(args.out)
    out.parent.mkdir(exist_ok=True)
    df.to_csv(out, index=False)
    print(f"Saved per-response report to: {out}")


if __name__ == "__main__":
    main()
