"""Reconstruction + aggregation pipeline — pure functions, no side effects."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from numbers import Real
from typing import Any

import pandas as pd
from openpyxl.utils import column_index_from_string

from movement_summary import AMOUNT_COLUMN, CUSTOMER_COLUMN, DATE_COLUMN, HEADER_ROW
from movement_summary.cells import (
    excel_serial_to_iso,
    is_formatted_date,
    is_metadata_key,
    split_address,
)
from movement_summary.errors import (
    MalformedAddressError,
    StructuralInputError,
    UnparseableDateError,
)
from movement_summary.models import AggregationKey, Cell, Movement, SummaryRow

# ── Cell ordering ───────────────────────────────────────────────


@dataclass(frozen=True)
class _PlacedCell:
    address: str
    column: str
    row: int
    cell: Cell

    @property
    def sort_key(self) -> tuple[int, int]:
        return self.row, column_index_from_string(self.column)


def _placed_cells(cells: Mapping[str, Any]) -> list[_PlacedCell]:
    """Drop markers and malformed keys, then order by (row, column)."""
    placed: list[_PlacedCell] = []
    for address, cell in cells.items():
        if is_metadata_key(address):
            continue
        try:
            column, row = split_address(address)
        except MalformedAddressError:
            continue
        placed.append(_PlacedCell(address=address, column=column, row=int(row), cell=cell))
    placed.sort(key=lambda p: p.sort_key)
    return placed


# ── Reconstruction ──────────────────────────────────────────────


@dataclass
class _OpenMovement:
    row: int
    customer: str
    registration_date: str = ""
    amount: float = 0.0

    def close(self) -> Movement:
        return Movement(
            customer=self.customer,
            registration_date=self.registration_date,
            amount=self.amount,
        )


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _date_value(cell: Cell) -> str:
    if is_formatted_date(cell.value, cell.kind, cell.formatted):
        return excel_serial_to_iso(cell.value)
    return _as_text(cell.value)


def _amount_value(placed: _PlacedCell) -> float:
    value = placed.cell.value
    if isinstance(value, bool) or not isinstance(value, Real):
        raise StructuralInputError(
            f"Amount cell {placed.address} is not numeric: {value!r}"
        )
    return float(value)


def _require_open(current: _OpenMovement | None, placed: _PlacedCell) -> _OpenMovement:
    if current is None:
        raise StructuralInputError(
            f"Cell {placed.address} has no customer cell before it in column "
            f"{CUSTOMER_COLUMN}"
        )
    if current.row != placed.row:
        raise StructuralInputError(
            f"Cell {placed.address} has no customer cell in row {placed.row} "
            f"(last customer was in row {current.row})"
        )
    return current


def reconstruct_movements(cells: Mapping[str, Any]) -> list[Movement]:
    """Rebuild movements from a sparse ``address -> Cell`` map.

    Column A opens a movement, B sets its registration date and C its
    amount.  Row 1 is the header.  Columns past C are ignored.

    Raises
    ------
    StructuralInputError
        If a date or amount cell has no customer cell on its row, or an
        amount is not a number.
    """
    movements: list[Movement] = []
    current: _OpenMovement | None = None

    for placed in _placed_cells(cells):
        if placed.row == HEADER_ROW:
            continue

        if placed.column == CUSTOMER_COLUMN:
            if current is not None:
                movements.append(current.close())
            current = _OpenMovement(row=placed.row, customer=_as_text(placed.cell.value))
        elif placed.column == DATE_COLUMN:
            _require_open(current, placed).registration_date = _date_value(placed.cell)
        elif placed.column == AMOUNT_COLUMN:
            _require_open(current, placed).amount = _amount_value(placed)

    if current is not None:
        movements.append(current.close())
    return movements


# ── Aggregation ─────────────────────────────────────────────────


def _year_month(ts: pd.Timestamp) -> str:
    return f"{ts.year:04d}-{ts.month:02d}"


def accumulate_totals(
    movements: Iterable[Movement],
    totals: dict[AggregationKey, float] | None = None,
) -> dict[AggregationKey, float]:
    """Add each movement's amount to *totals* under (customer, UTC year-month).

    A new dict is used when *totals* is None.  The same dict is returned.

    Raises
    ------
    UnparseableDateError
        If a registration date cannot be parsed.
    """
    if totals is None:
        totals = {}
    movements = list(movements)
    if not movements:
        return totals

    dates = pd.Series([m.registration_date for m in movements], dtype="string")
    parsed = pd.to_datetime(dates, errors="coerce", utc=True, format="mixed")

    for movement, ts in zip(movements, parsed):
        if pd.isna(ts):
            raise UnparseableDateError(
                f"Unparseable registration date {movement.registration_date!r} "
                f"for customer {movement.customer!r}"
            )
        key = AggregationKey(movement.customer, _year_month(ts))
        totals[key] = totals.get(key, 0.0) + movement.amount
    return totals


def build_summary_rows(totals: Mapping[AggregationKey, float]) -> list[SummaryRow]:
    """One SummaryRow per key, in accumulator order."""
    return [
        SummaryRow(customer=key.customer, year_month=key.year_month, amount=amount)
        for key, amount in totals.items()
    ]


def aggregate_movements(movements: Iterable[Movement]) -> list[SummaryRow]:
    """Total movements per customer per calendar month."""
    return build_summary_rows(accumulate_totals(movements, {}))
