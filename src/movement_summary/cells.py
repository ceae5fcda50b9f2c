"""Cell-level helpers — address parsing and serial date conversion."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone

from movement_summary.errors import MalformedAddressError

METADATA_PREFIX = "!"

_ADDRESS_RE = re.compile(r"^([A-Za-z]+)(\d+)$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# ── Addresses ────────────────────────────────────────────────────


def is_metadata_key(key: str) -> bool:
    """Return True for sheet-wide keys such as ``!ref`` or ``!merges``."""
    return key.startswith(METADATA_PREFIX)


def split_address(address: str) -> tuple[str, str]:
    """Split ``"C12"`` into ``("C", "12")``.

    Column letters are upper-cased.  Raises ``MalformedAddressError`` for
    anything that is not letters followed by digits.
    """
    match = _ADDRESS_RE.match(address)
    if match is None:
        raise MalformedAddressError(f"Not a cell address: {address!r}")
    column, row = match.groups()
    return column.upper(), row


# ── Serial dates ─────────────────────────────────────────────────

SECONDS_PER_DAY = 86_400
MS_PER_SECOND = 1_000

# Serial of 1970-01-01 counting 1900-01-01 as day 1.
EPOCH_OFFSET_DAYS = 25_568
# The 1900 date system accepts 1900-02-29 (serial 60); every later serial is
# one day ahead of the real calendar.
PHANTOM_LEAP_DAY_SERIAL = 60
LEAP_DEFECT_CORRECTION_DAYS = 1

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def serial_to_timestamp_ms(serial: float) -> float:
    """Return the UTC epoch timestamp (ms) for a 1900-system date serial."""
    offset = EPOCH_OFFSET_DAYS
    if serial > PHANTOM_LEAP_DAY_SERIAL:
        offset += LEAP_DEFECT_CORRECTION_DAYS
    return (serial - offset) * SECONDS_PER_DAY * MS_PER_SECOND


def excel_serial_to_iso(serial: float) -> str:
    """Convert a date serial to ``YYYY-MM-DD``; any time of day is dropped."""
    if isinstance(serial, bool) or not isinstance(serial, (int, float)):
        raise TypeError(f"Date serial must be a number, got {type(serial).__name__}")
    if not math.isfinite(serial):
        raise ValueError(f"Date serial must be finite, got {serial!r}")
    ms = serial_to_timestamp_ms(serial)
    moment = _UNIX_EPOCH + timedelta(milliseconds=ms)
    return moment.date().isoformat()


def is_formatted_date(value: object, kind: str, formatted: str | None) -> bool:
    """True when a numeric cell is displayed as ``YYYY-MM-DD``."""
    if kind != "n" or isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return formatted is not None and ISO_DATE_RE.match(formatted) is not None
