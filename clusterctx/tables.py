"""Plain-text column alignment shared by the human-facing encodings."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

DATA_UNAVAILABLE: Final[str] = "data unavailable"

_COLUMN_GAP = "   "


def format_table(headers: Sequence[str], rows: Sequence[Sequence[object]], indent: str = "") -> str:
    """Return *rows* under *headers* as left-aligned, space-padded columns."""
    cells = [[str(c) for c in headers]] + [[str(c) for c in row] for row in rows]
    widths = [max(len(row[i]) for row in cells) for i in range(len(headers))]
    lines = []
    for row in cells:
        padded = [cell.ljust(width) for cell, width in zip(row, widths, strict=True)]
        lines.append(indent + _COLUMN_GAP.join(padded).rstrip())
    return "\n".join(lines)


def framed(title: str) -> str:
    """Return *title* between two rules of ``=`` of the same width."""
    rule = "=" * len(title)
    return f"{rule}\n{title}\n{rule}"
