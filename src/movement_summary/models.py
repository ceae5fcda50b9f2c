"""Data models used across the package."""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, NamedTuple

CELL_KINDS: frozenset[str] = frozenset({"n", "s", "b", "e", "d"})


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    return value


def _to_amount(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{field_name} must be a number")
    return float(value)


@dataclass(frozen=True)
class Cell:
    """One non-empty worksheet cell.

    ``kind`` follows the usual one-letter type tags: ``n`` numeric, ``s``
    text, ``b`` boolean, ``e`` error, ``d`` date.  ``formatted`` is the
    value as the sheet displays it, when known.
    """

    value: Any
    kind: str = "s"
    formatted: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in CELL_KINDS:
            raise ValueError(f"Unknown cell kind: {self.kind!r}")
        if self.formatted is not None and not isinstance(self.formatted, str):
            raise TypeError("formatted must be a string or None")

    @property
    def is_numeric(self) -> bool:
        return self.kind == "n"


@dataclass(frozen=True)
class Movement:
    """A single financial movement rebuilt from one data row."""

    customer: str
    registration_date: str
    amount: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "customer", _to_text(self.customer, "customer"))
        object.__setattr__(
            self,
            "registration_date",
            _to_text(self.registration_date, "registration_date"),
        )
        object.__setattr__(self, "amount", _to_amount(self.amount, "amount"))


class AggregationKey(NamedTuple):
    customer: str
    year_month: str


@dataclass(frozen=True)
class SummaryRow:
    """Total of all movements for one customer in one calendar month."""

    customer: str
    year_month: str
    amount: float

    @property
    def key(self) -> AggregationKey:
        return AggregationKey(self.customer, self.year_month)

    def to_dict(self) -> dict[str, Any]:
        return {
            "customer": self.customer,
            "year_month": self.year_month,
            "amount": self.amount,
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single pipeline run."""

    tool: str = "movement-summary"
    version: str = ""
    input_path: str = ""
    output_path: str = ""
    created_at_utc: str = ""
    cells_in: int = 0
    movements: int = 0
    summary_rows: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.cells_in = _to_non_negative_int(self.cells_in, "cells_in")
        self.movements = _to_non_negative_int(self.movements, "movements")
        self.summary_rows = _to_non_negative_int(self.summary_rows, "summary_rows")
        if self.status not in {"success", "failed"}:
            raise ValueError(f"status must be 'success' or 'failed', got {self.status!r}")
        if self.error_code is not None:
            self.error_code = _to_non_negative_int(self.error_code, "error_code")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "input_path": self.input_path,
            "output_path": self.output_path,
            "created_at_utc": self.created_at_utc,
            "cells_in": self.cells_in,
            "movements": self.movements,
            "summary_rows": self.summary_rows,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
