"""Output formatting helpers for the CLI."""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Sequence


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def print_rows(columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> None:
    """Print page rows as an aligned table, one column per schema column.

    Columns missing from a row and null values print as blanks. Nothing is
    printed for an empty page.
    """
    if not rows:
        return

    cells = [[_cell(row.get(c)) for c in columns] for row in rows]
    widths = [max(len(c), *(len(r[i]) for r in cells)) for i, c in enumerate(columns)]

    print("  ".join(c.ljust(w) for c, w in zip(columns, widths)))
    print("  ".join("-" * w for w in widths))
    for r in cells:
        print("  ".join(v.ljust(w) for v, w in zip(r, widths)).rstrip())


def print_object(data: Mapping[str, Any], *, json_mode: bool = False) -> None:
    """Print a mapping as JSON or key-value lines."""
    if json_mode:
        print(json.dumps(data, indent=2, default=str))
        return

    for k, v in data.items():
        print(f"{k}: {v}")


def print_error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {msg}", file=sys.stderr)
