"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, date, datetime


def now_iso() -> str:
    """Current UTC time as ISO 8601 (row timestamps, audit trail)."""
    return datetime.now(UTC).isoformat()


def now_compact() -> str:
    """Current UTC time as compact ISO (YYYYMMDDTHHmmss, for backup filenames)."""
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%S")


def parse_date(value: str) -> date:
    """Parse a stored ``YYYY-MM-DD`` column value."""
    return date.fromisoformat(value)


def user_ref(handle: str | None, external_id: str) -> str:
    """Short human reference for messages: ``@handle`` or the raw id."""
    return f"@{handle}" if handle else external_id
