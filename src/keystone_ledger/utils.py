from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def normalize_name(value: str) -> str:
    return value.strip()


def normalize_slug(value: str) -> str:
    return value.strip().lower().replace(" ", "-")


def toggle_first_case(value: str) -> str:
    if not value:
        return value
    first = value[0]
    toggled = first.lower() if first.isupper() else first.upper()
    return toggled + value[1:]


def merge_csv(*parts: str | Iterable[str] | None) -> str:
    """Join comma-separated fragments, dropping blanks and repeats."""
    seen: set[str] = set()
    merged: list[str] = []
    for part in parts:
        if part is None:
            continue
        items = part.split(",") if isinstance(part, str) else part
        for item in items:
            cleaned = item.strip()
            if not cleaned or cleaned in seen:
                continue
            seen.add(cleaned)
            merged.append(cleaned)
    return ",".join(merged)


def format_duration_ms(value_ms: int) -> str:
    total_seconds = abs(int(value_ms)) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_remaining_ms(par_time_ms: int, clear_time_ms: int) -> str:
    # Zero counts as overrun and keeps the leading minus.
    difference = par_time_ms - clear_time_ms
    if difference <= 0:
        return "-" + format_duration_ms(abs(difference))
    return format_duration_ms(difference)


def format_completed_at(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%d %H:%M:%S")
