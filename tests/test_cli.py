"""Tests for CLI parser options and commands."""

import json
import sys

import pytest

from devpool_pipeline import cli
from devpool_pipeline.cli import _format_duration, _IssueProgressPrinter, build_parser


def test_run_parser_accepts_flags():
    args = build_parser().parse_args(
        [
            "run",
            "--input",
            "data/issues.json",
            "--output-dir",
            "out",
            "--limit",
            "5",
            "--drop-boilerplate",
        ]
    )
    assert args.command == "run"
    assert args.input == "data/issues.json"
    assert args.output_dir == "out"
    assert args.limit == 5
    assert args.drop_boilerplate is True


def test_validate_parser_defaults():
    args = build_parser().parse_args(["validate-input"])
    assert args.command == "validate-input"
    assert args.input is None
    assert args.max_errors == 100


def test_log_level_option():
    args = build_parser().parse_args(["--log-level", "DEBUG", "info"])
    assert args.log_level == "DEBUG"


def test_progress_printer_throttles_middle_issues(capsys):
    printer = _IssueProgressPrinter(min_interval_seconds=3600.0)
    printer(1, 4, "#42: 3 item(s)")
    printer(2, 4, "#43: 1 item(s)")
    printer(3, 4, "skipped #44")
    printer(4, 4, "#45: 2 item(s)")

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert "issue 1/4 | #42: 3 item(s)" in lines[0]
    assert "issue 4/4 | #45: 2 item(s)" in lines[1]
    assert lines[1].endswith("left 00:00")


def test_progress_printer_without_interval_prints_every_issue(capsys):
    printer = _IssueProgressPrinter(min_interval_seconds=0.0)
    for done in range(1, 4):
        printer(done, 3, "")

    lines = capsys.readouterr().out.splitlines()
    assert [line.split(" | ")[0].strip() for line in lines] == [
        "issue 1/3",
        "issue 2/3",
        "issue 3/3",
    ]


def test_format_duration():
    assert _format_duration(65) == "01:05"
    assert _format_duration(3725) == "1:02:05"
    assert _format_duration(float("inf")) == "--:--"


def test_run_rejects_negative_limit(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("GITHUB_TOKEN", "gh")
    monkeypatch.setenv("VOYAGE_API_KEY", "vo")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["devpool", "run", "--limit", "-1"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 2
    assert "--limit must be >= 0" in capsys.readouterr().out



def test_run_exits_when_secrets_missing(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("VOYAGE_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["devpool", "run"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 2
    assert "GITHUB_TOKEN" in capsys.readouterr().out


def test_validate_input_writes_report(monkeypatch, tmp_path, capsys):
    input_path = tmp_path / "issues.json"
    input_path.write_text(
        json.dumps(
            [
                {
                    "number": 1,
                    "node_id": "I_1",
                    "body": "",
                    "user": {"login": "alice"},
                    "repository_url": "https://api.github.com/repos/acme/widgets",
                }
            ]
        ),
        encoding="utf-8",
    )
    report_path = tmp_path / "report.json"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "devpool",
            "validate-input",
            "--input",
            str(input_path),
            "--report-json",
            str(report_path),
        ],
    )

    cli.main()

    out = capsys.readouterr().out
    assert "Validation passed" in out
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["empty_body_count"] == 1
