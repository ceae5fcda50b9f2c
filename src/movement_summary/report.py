"""Summary table formatting and the summary.xlsx writer."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from movement_summary.models import SummaryRow

SUMMARY_SHEET_TITLE = "Summary"
SUMMARY_FILENAME = "summary.xlsx"
SUMMARY_CAPTION = "SUMMARY"
GENERATED_ON_LABEL = "FECHA:"

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)

_AUTO_WIDTH_SAMPLE_ROWS = 300

# ── Formatting ───────────────────────────────────────────────────


def format_amount(amount: float) -> str:
    """Render an amount as text, without a trailing ``.0`` for whole numbers."""
    value = float(amount)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def build_summary_table(
    rows: Iterable[SummaryRow],
    generated_on: str,
    caption: str = SUMMARY_CAPTION,
) -> list[list[str]]:
    """Lay out the summary sheet as rows of cells.

    Row 1 holds *caption*, row 2 the generation date, then one
    ``[customer, year_month, amount]`` row per summary row.
    """
    table: list[list[str]] = [[caption], [GENERATED_ON_LABEL, generated_on]]
    for row in rows:
        table.append([row.customer, row.year_month, format_amount(row.amount)])
    return table


# ── Writing ──────────────────────────────────────────────────────


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS)
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, 30)


def _fill_sheet(ws: Worksheet, table: Sequence[Sequence[object]]) -> None:
    for r_idx, values in enumerate(table, 1):
        for c_idx, value in enumerate(values, 1):
            cell = ws.cell(row=r_idx, column=c_idx, value=value)
            # Text that looks like a formula stays text.
            if isinstance(value, str) and value.startswith("="):
                cell.data_type = "s"
    if ws.max_row >= 1:
        ws.cell(row=1, column=1).font = TITLE_FONT
    if ws.max_row >= 2:
        ws.cell(row=2, column=1).font = LABEL_FONT


def write_summary_workbook(
    out_dir: Path,
    table: Sequence[Sequence[object]],
    filename: str = SUMMARY_FILENAME,
) -> Path:
    """Write *table* to a one-sheet workbook in *out_dir* and return the path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / filename

    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = SUMMARY_SHEET_TITLE
    _fill_sheet(ws, table)
    _auto_width(ws)

    tmp_path = out_dir / f"{report_path.stem}.tmp{report_path.suffix}"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
