"""I/O helpers — load a workbook as a sparse cell map, write JSON artifacts."""

from __future__ import annotations

import json
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.datetime import to_excel
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from movement_summary.models import Cell

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")

# Number formats rendered for date cells; anything else is left unformatted.
_DATE_FORMATS: dict[str, str] = {
    "yyyy-mm-dd": "%Y-%m-%d",
    "yyyy/mm/dd": "%Y/%m/%d",
    "dd/mm/yyyy": "%d/%m/%Y",
    "mm/dd/yyyy": "%m/%d/%Y",
    "dd-mm-yyyy": "%d-%m-%Y",
    "mm-dd-yy": "%m-%d-%y",
    "d/m/yyyy": "%d/%m/%Y",
}

# ── Loading ──────────────────────────────────────────────────────


def _render_date(value: datetime | date, number_format: str) -> str | None:
    pattern = _DATE_FORMATS.get(number_format.lower().replace("\\", ""))
    if pattern is None:
        return None
    return value.strftime(pattern)


def _to_cell(value: Any, data_type: str, number_format: str) -> Cell:
    if isinstance(value, (datetime, date)):
        # Dates come back as 1900-system serials, as they are stored on disk.
        return Cell(
            value=to_excel(value),
            kind="n",
            formatted=_render_date(value, number_format),
        )
    if isinstance(value, bool):
        return Cell(value=value, kind="b", formatted=str(value).upper())
    if isinstance(value, (int, float)):
        return Cell(value=value, kind="n", formatted=str(value))
    if data_type == "e":
        return Cell(value=value, kind="e", formatted=str(value))
    return Cell(value=str(value), kind="s", formatted=str(value))


def _sheet_to_cell_map(ws: Worksheet) -> dict[str, Any]:
    cells: dict[str, Any] = {"!ref": ws.dimensions}
    merged = [str(rng) for rng in ws.merged_cells.ranges]
    if merged:
        cells["!merges"] = merged
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            cells[cell.coordinate] = _to_cell(cell.value, cell.data_type, cell.number_format)
    return cells


def load_cell_map(path: Path) -> dict[str, Any]:
    """Read the first worksheet of *path* into an ``address -> Cell`` map.

    Empty cells are absent.  Sheet-wide properties are stored under
    ``!``-prefixed keys (``!ref``, and ``!merges`` when the sheet has merged
    ranges).

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is a directory, has an unsupported extension, or cannot be
        read as a workbook.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ValueError(f"Input path is a directory, not a file: {path}")

    suffix = path.suffix.lower()
    if suffix not in WORKBOOK_SUFFIXES:
        raise ValueError(
            f"Unsupported file type: {suffix!r}. Use {', '.join(WORKBOOK_SUFFIXES)}"
        )

    try:
        wb = load_workbook(path, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
        raise ValueError(f"Could not read workbook {path}") from exc

    try:
        if not wb.worksheets:
            raise ValueError(f"Workbook has no worksheets: {path}")
        return _sheet_to_cell_map(wb.worksheets[0])
    finally:
        wb.close()


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
