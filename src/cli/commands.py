import argparse
import json
import logging
from pathlib import Path

import pandas as pd
from rich import print

from src.core.config import settings
from src.core.errors import ComplianceError
from src.core.schemas import AnalysisRequest
from src.core.sectors import SECTORS
from src.services.analysis_service import AnalysisOrchestrator
from src.services.document_service import load_document_text
from src.services.findings_service import project_findings
from src.services.guardrails_service import validate_analysis_output
from src.services.llm_services import CompletionClient
from src.services.notification_service import LogNotifier
from src.services.retrieval_service import LegislationSearcher, build_index_from_table, load_index, save_index
from src.services.storage_service import JsonlAnalysisStore
from src.utils.io import write_table


CLI_USER = "cli"


def cmd_sectors(args):
    for s in SECTORS.values():
        print(f"[bold]{s.id}[/bold]  {s.full_name}  [dim]({s.authority})[/dim]")


def cmd_validate(args):
    raw = Path(args.raw).read_text(encoding="utf-8")
    result = validate_analysis_output(raw, args.sector)
    for f in result.fixes:
        print(f"[yellow]fix[/yellow]     {f}")
    for w in result.warnings:
        print(f"[magenta]warning[/magenta] {w}")
    if not result.valid:
        print("[red]Rejected: response could not be parsed.")
        raise SystemExit(1)
    print(f"[green]Valid[/green] score={result.data.overall_score} status={result.data.overall_status.value} "
          f"risk={result.data.risk_level.value} findings={len(result.data.findings)}")
    if args.out:
        Path(args.out).write_text(result.data.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        print(f"[green]Wrote validated analysis → {args.out}")


def cmd_analyze(args):
    text = load_document_text(args.doc)
    searcher = None
    index_dir = args.index or settings.legislation_index_dir
    if index_dir and Path(index_dir).exists():
        searcher = LegislationSearcher(load_index(index_dir))

    orchestrator = AnalysisOrchestrator(
        CompletionClient(model=args.model),
        store=JsonlAnalysisStore(args.store or settings.store_dir),
        notifier=LogNotifier(),
        searcher=searcher,
    )
    req = AnalysisRequest(
        document_text=text,
        sector=args.sector,
        document_type=args.type,
        document_name=Path(args.doc).name,
    )
    try:
        result = orchestrator.analyze(req, CLI_USER)
    except ComplianceError as e:
        print(f"[red]{type(e).__name__}: {e}")
        raise SystemExit(2)

    print(f"[bold]{result.overall_score}%[/bold] {result.overall_status.value} (risk {result.risk_level.value})")
    print(result.summary)
    print(f"[yellow]{len(result.fixes)} fixes, {len(result.warnings)} warnings, "
          f"{result.findings_created} findings tracked")

    if args.out:
        records = project_findings(result.findings, CLI_USER, result.sector, req.document_name, result.analysis_id)
        df = pd.DataFrame([r.model_dump() for r in records])
        out = write_table(df, args.out)
        print(f"[green]Wrote findings → {out}")
    if args.json:
        Path(args.json).write_text(json.dumps(result.model_dump(by_alias=True, mode="json"), indent=2), encoding="utf-8")


def cmd_build_index(args):
    vs = build_index_from_table(args.table, embed_model=args.embed_model)
    save_index(vs, args.out)
    print(f"[green]Saved legislation index to {args.out}")


def build_argparser():
    ap = argparse.ArgumentParser(prog="compliance")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_s = sub.add_parser("sectors", help="List supported regulatory sectors")
    ap_s.set_defaults(func=cmd_sectors)

    ap_v = sub.add_parser("validate", help="Run the output guardrail over a captured model response")
    ap_v.add_argument("--raw", required=True)
    ap_v.add_argument("--sector", required=True)
    ap_v.add_argument("--out", required=False, help="Write the validated analysis JSON here")
    ap_v.set_defaults(func=cmd_validate)

    ap_a = sub.add_parser("analyze", help="Analyze a policy document end to end")
    ap_a.add_argument("--doc", required=True)
    ap_a.add_argument("--sector", required=True, choices=list(SECTORS))
    ap_a.add_argument("--type", required=False, help="Document type label, e.g. 'Incident Policy'")
    ap_a.add_argument("--index", required=False, help="Legislation index directory")
    ap_a.add_argument("--store", required=False, help="Directory for the local analysis store")
    ap_a.add_argument("--model", required=False, help="LLM model for analysis")
    ap_a.add_argument("--out", required=False, help="Findings table (.csv or .xlsx)")
    ap_a.add_argument("--json", required=False, help="Full analysis response as JSON")
    ap_a.set_defaults(func=cmd_analyze)

    ap_b = sub.add_parser("build-index", help="Build the legislation vector index from a table")
    ap_b.add_argument("--table", required=True, help="CSV/XLSX with title, content, section_number, section_title, sector")
    ap_b.add_argument("--out", required=True)
    ap_b.add_argument("--embed-model", required=False)
    ap_b.set_defaults(func=cmd_build_index)

    return ap


def main():
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    ap = build_argparser()
    args = ap.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
