"""Plain-text rendering shared by the inspection commands."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

OK = "OK"
WARNING = "WARNING"
ERROR = "ERROR"
DONE = "DONE"
PENDING = "PENDING"


def check(label: str, status: str, detail: Optional[str] = None) -> str:
    if detail:
        return f"{label}: {status} ({detail})"
    return f"{label}: {status}"


def flag(label: str, is_set: bool) -> str:
    return check(label, DONE if is_set else PENDING)


def table(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> list[str]:
    """Left-aligned plain-text columns, one string per line."""

    cells = [[str(value) for value in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in cells:
        for idx, value in enumerate(row):
            widths[idx] = max(widths[idx], len(value))
    lines = ["  ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers)).rstrip()]
    lines.append("  ".join("-" * width for width in widths))
    for row in cells:
        lines.append("  ".join(value.ljust(widths[idx]) for idx, value in enumerate(row)).rstrip())
    return lines
