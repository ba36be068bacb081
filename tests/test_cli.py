import json

import pytest

from src.cli.commands import build_argparser


def _run(argv):
    args = build_argparser().parse_args(argv)
    args.func(args)


def test_validate_writes_repaired_analysis(tmp_path, capsys):
    raw = tmp_path / "resp.txt"
    raw.write_text('```json\n{"overallScore": 55.5, "summary": "Short"}\n```', encoding="utf-8")
    out = tmp_path / "validated.json"

    _run(["validate", "--raw", str(raw), "--sector", "aged_care", "--out", str(out)])

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["overallScore"] == 56
    assert data["overallStatus"] == "PARTIAL"
    assert data["sector"] == "aged_care"
    assert "Extracted JSON from code block" in capsys.readouterr().out


def test_validate_rejects_unparseable_response(tmp_path):
    raw = tmp_path / "resp.txt"
    raw.write_text("I could not analyse this document.", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        _run(["validate", "--raw", str(raw), "--sector", "ndis"])
    assert exc.value.code == 1


def test_analyze_requires_known_sector():
    with pytest.raises(SystemExit):
        build_argparser().parse_args(["analyze", "--doc", "x.pdf", "--sector", "mining"])
