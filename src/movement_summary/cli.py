"""CLI entry point for movement-summary."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from movement_summary import __version__
from movement_summary.cells import is_metadata_key
from movement_summary.errors import MovementSummaryError
from movement_summary.io import load_cell_map, write_json
from movement_summary.models import Movement, RunManifest, SummaryRow
from movement_summary.pipeline import aggregate_movements, reconstruct_movements
from movement_summary.report import (
    SUMMARY_CAPTION,
    build_summary_table,
    format_amount,
    write_summary_workbook,
)
from movement_summary.utils import local_date_iso, sha256_file, utcnow_iso

MANIFEST_FILENAME = "run_manifest.json"

app = typer.Typer(
    name="msummary",
    help="movement-summary — Monthly per-customer totals from a movements workbook.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"movement-summary v{__version__}")
        raise typer.Exit()


def _count_cells(cells: dict[str, Any]) -> int:
    return sum(1 for key in cells if not is_metadata_key(key))


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    output_path: Path | None = None,
    cells_in: int = 0,
    movements: int = 0,
    summary_rows: int = 0,
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    sha256 = ""
    try:
        sha256 = sha256_file(input_file)
    except OSError:
        pass

    manifest = RunManifest(
        version=__version__,
        input_path=str(input_file.resolve()),
        output_path=str(output_path.resolve()) if output_path else "",
        created_at_utc=created_at,
        cells_in=cells_in,
        movements=movements,
        summary_rows=summary_rows,
        sha256=sha256,
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / MANIFEST_FILENAME, manifest.to_dict())


def _fail(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    message: str,
    cells_in: int = 0,
    error_code: int = 2,
) -> typer.Exit:
    manifest_path = _write_manifest(
        out_dir,
        input_file,
        created_at,
        cells_in=cells_in,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    _err(message)
    console.print(f"  Manifest -> {manifest_path}")
    return typer.Exit(code=error_code)


def _summary_table(rows: list[SummaryRow], title: str) -> RichTable:
    tbl = RichTable(title=title, show_lines=False)
    tbl.add_column("Customer", style="bold")
    tbl.add_column("Year-Month")
    tbl.add_column("Amount", justify="right")
    for row in rows:
        tbl.add_row(row.customer, row.year_month, format_amount(row.amount))
    return tbl


def _process(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    echo: Callable[..., None],
) -> tuple[int, list[Movement], list[SummaryRow]]:
    """Load, reconstruct and aggregate; on failure write the manifest and exit."""
    echo("[blue]>[/blue] Loading input workbook …")
    try:
        cells = load_cell_map(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, created_at, message=str(exc)) from exc

    cells_in = _count_cells(cells)
    echo(f"  {cells_in} cells")

    try:
        echo("[blue]>[/blue] Rebuilding movements …")
        movements = reconstruct_movements(cells)
        echo(f"  {len(movements)} movements")

        echo("[blue]>[/blue] Aggregating by customer and month …")
        summary_rows = aggregate_movements(movements)
        echo(f"  {len(summary_rows)} summary rows")
    except MovementSummaryError as exc:
        raise _fail(
            out_dir, input_file, created_at, message=str(exc), cells_in=cells_in
        ) from exc
    except Exception as exc:
        raise _fail(
            out_dir,
            input_file,
            created_at,
            message=f"Unexpected internal error: {exc}",
            cells_in=cells_in,
            error_code=1,
        ) from exc

    return cells_in, movements, summary_rows


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """movement-summary CLI."""


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to the movements workbook (.xlsx).",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for summary.xlsx + manifest.",
    ),
    caption: str = typer.Option(
        SUMMARY_CAPTION, "--caption",
        help="Title written in the first row of the summary sheet.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Summarize a movements workbook into monthly per-customer totals."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)

    if not quiet:
        console.print(Panel(
            f"[bold]movement-summary[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir}",
            title="Pipeline Start", border_style="blue",
        ))

    cells_in, movements, summary_rows = _process(out_dir, input_file, created_at, echo)

    echo("[blue]>[/blue] Writing summary.xlsx …")
    try:
        table = build_summary_table(summary_rows, local_date_iso(), caption=caption)
        report_path = write_summary_workbook(out_dir, table)
    except OSError as exc:
        raise _fail(
            out_dir,
            input_file,
            created_at,
            message=f"Could not write summary: {exc}",
            cells_in=cells_in,
            error_code=1,
        ) from exc
    echo(f"  Summary  -> {report_path}")

    manifest_path = _write_manifest(
        out_dir,
        input_file,
        created_at,
        output_path=report_path,
        cells_in=cells_in,
        movements=len(movements),
        summary_rows=len(summary_rows),
    )
    echo(f"  Manifest -> {manifest_path}")

    if not quiet:
        console.print(_summary_table(summary_rows, caption))
        console.print(Panel(
            f"[green]Done[/green] — {len(summary_rows)} rows -> {report_path}",
            title="Pipeline Complete", border_style="green",
        ))


# ── validate command ─────────────────────────────────────────────


@app.command()
def validate(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to the movements workbook (.xlsx).",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the manifest.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes the manifest.",
    ),
) -> None:
    """Check that a workbook summarizes cleanly without writing summary.xlsx.

    Exit 0 = OK, exit 2 = input failure.
    """
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)

    if not quiet:
        console.print(Panel(
            f"[bold]movement-summary[/bold] v{__version__}  [dim]validate mode[/dim]\n"
            f"Input: {input_file}",
            title="Validate", border_style="cyan",
        ))

    cells_in, movements, summary_rows = _process(out_dir, input_file, created_at, echo)

    manifest_path = _write_manifest(
        out_dir,
        input_file,
        created_at,
        cells_in=cells_in,
        movements=len(movements),
        summary_rows=len(summary_rows),
    )
    if not quiet:
        console.print(_summary_table(summary_rows, "Validation Summary"))
        console.print("  Status: [green]PASS[/green]")
    console.print(f"  Manifest -> {manifest_path}")
