"""Exception types raised by the reconstruction + aggregation pipeline."""

from __future__ import annotations


class MovementSummaryError(ValueError):
    """Base class for every input problem the pipeline can detect."""


class MalformedAddressError(MovementSummaryError):
    """A cell-map key is neither a metadata marker nor a cell address."""


class StructuralInputError(MovementSummaryError):
    """Cells do not line up into customer / date / amount rows."""


class UnparseableDateError(MovementSummaryError):
    """A registration date cannot be read as a calendar date."""
