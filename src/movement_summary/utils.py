"""Shared helpers — hashing, timestamps, etc."""

from __future__ import annotations

import hashlib
from datetime import date, datetime, timezone
from pathlib import Path


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def local_date_iso() -> str:
    """Return today's local date as ``YYYY-MM-DD``."""
    return date.today().isoformat()
