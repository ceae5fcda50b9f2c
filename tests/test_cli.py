"""CLI integration tests for movement-summary."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook
from typer.testing import CliRunner

import movement_summary.cli as cli_mod
from movement_summary import __version__
from movement_summary.cli import app

runner = CliRunner()


def _write_workbook(path: Path, rows: list[list[object]]) -> Path:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    ws.append(["CUSTOMER", "REGISTRATION-DATE", "AMOUNT"])
    for row in rows:
        ws.append(row)
    for cell in ws["B"]:
        if isinstance(cell.value, datetime):
            cell.number_format = "yyyy-mm-dd"
    wb.save(path)
    return path


def _movements(tmp_path: Path) -> Path:
    return _write_workbook(
        tmp_path / "movements.xlsx",
        [
            ["A00001", datetime(2023, 12, 5), 100],
            ["A00001", datetime(2023, 12, 20), 50],
            ["A00002", "2023-12-01", 30],
        ],
    )


@pytest.fixture(autouse=True)
def _fixed_local_date(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_mod, "local_date_iso", lambda: "2024-01-10")


def test_run_writes_summary_and_manifest(tmp_path: Path) -> None:
    input_path = _movements(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(input_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0, result.output
    ws = load_workbook(out_dir / "summary.xlsx")["Summary"]
    values = [list(row) for row in ws.iter_rows(values_only=True)]
    assert values[0][0] == "SUMMARY"
    assert values[1][:2] == ["FECHA:", "2024-01-10"]
    assert {tuple(row) for row in values[2:]} == {
        ("A00001", "2023-12", "150"),
        ("A00002", "2023-12", "30"),
    }

    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert manifest["status"] == "success"
    assert manifest["error_code"] is None
    assert manifest["cells_in"] == 12
    assert manifest["movements"] == 3
    assert manifest["summary_rows"] == 2
    assert manifest["version"] == __version__
    assert manifest["output_path"].endswith("summary.xlsx")
    assert len(manifest["sha256"]) == 64


def test_run_caption_option(tmp_path: Path) -> None:
    input_path = _movements(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["run", "-i", str(input_path), "-o", str(out_dir), "--caption", "Diciembre", "-q"],
    )

    assert result.exit_code == 0, result.output
    ws = load_workbook(out_dir / "summary.xlsx")["Summary"]
    assert ws["A1"].value == "Diciembre"


def test_run_verbose_prints_summary_table(tmp_path: Path) -> None:
    input_path = _movements(tmp_path)

    result = runner.invoke(
        app, ["run", "--input", str(input_path), "--out-dir", str(tmp_path / "out")]
    )

    assert result.exit_code == 0, result.output
    assert "Pipeline Complete" in result.output
    assert "A00002" in result.output


def test_run_orphan_amount_fails_without_summary(tmp_path: Path) -> None:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    ws["A1"] = "CUSTOMER"
    ws["C2"] = 100
    ws["A3"] = "A00001"
    input_path = tmp_path / "orphan.xlsx"
    wb.save(input_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(input_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert not (out_dir / "summary.xlsx").exists()
    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == 2
    assert "C2" in manifest["error_message"]


def test_run_unparseable_date_fails_without_summary(tmp_path: Path) -> None:
    input_path = _write_workbook(tmp_path / "bad_date.xlsx", [["A00001", "someday", 10]])
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(input_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert not (out_dir / "summary.xlsx").exists()
    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert "someday" in manifest["error_message"]


def test_run_unreadable_workbook_fails(tmp_path: Path) -> None:
    input_path = tmp_path / "broken.xlsx"
    input_path.write_bytes(b"nope")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--input", str(input_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert manifest["status"] == "failed"
    assert manifest["cells_in"] == 0


def test_run_unexpected_error_exits_1(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    input_path = _movements(tmp_path)
    out_dir = tmp_path / "out"

    def _boom(_movements: object) -> list[object]:
        raise RuntimeError("kaput")

    monkeypatch.setattr(cli_mod, "aggregate_movements", _boom)

    result = runner.invoke(
        app, ["run", "--input", str(input_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 1
    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert manifest["error_message"] == "Unexpected internal error: kaput"
    assert not (out_dir / "summary.xlsx").exists()


def test_run_missing_input_is_rejected_by_typer(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--input", str(tmp_path / "missing.xlsx")])

    assert result.exit_code == 2


def test_validate_writes_manifest_only(tmp_path: Path) -> None:
    input_path = _movements(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["validate", "--input", str(input_path), "--out-dir", str(out_dir)]
    )

    assert result.exit_code == 0, result.output
    assert "PASS" in result.output
    assert not (out_dir / "summary.xlsx").exists()
    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert manifest["summary_rows"] == 2
    assert manifest["output_path"] == ""


def test_validate_reports_structural_failure(tmp_path: Path) -> None:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    ws["B2"] = "2023-12-05"
    input_path = tmp_path / "orphan.xlsx"
    wb.save(input_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["validate", "--input", str(input_path), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    manifest = json.loads((out_dir / "run_manifest.json").read_text())
    assert manifest["status"] == "failed"


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"movement-summary v{__version__}" in result.output
