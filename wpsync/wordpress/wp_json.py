"""Helpers for reading WP-CLI list output.

Single-responsibility: text processing only. Callers run commands.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_DECODER = json.JSONDecoder()
_TABLE_RULE_RE = re.compile(r"^\+-")


def extract_json_value(text: str) -> Optional[Any]:
    """Return the first JSON array/object embedded in text.

    Tries every '[' or '{' in order and decodes from there, so PHP notices
    printed before or after the payload are skipped. Returns None when no
    container decodes.
    """
    if not text:
        return None
    for idx, ch in enumerate(text):
        if ch not in "[{":
            continue
        try:
            value, _ = _DECODER.raw_decode(text, idx)
        except ValueError:
            continue
        return value
    return None


def _split_row(line: str) -> list[str]:
    if "|" in line:
        parts = line.split("|")
    else:
        parts = line.split()
    return [p.strip() for p in parts]


def parse_table(lines: list[str], columns: tuple[str, ...]) -> Optional[list[dict[str, str | None]]]:
    """Parse WP-CLI table/column output into rows keyed by columns.

    The first non-rule line is the header; each wanted column is located by
    its header name. Returns None if any wanted column is missing. Row
    cells past the end of a short row come back as None.
    """
    indexes: dict[str, int] | None = None
    rows: list[dict[str, str | None]] = []
    for line in lines:
        if not line.strip() or _TABLE_RULE_RE.match(line):
            continue
        parts = _split_row(line)
        if indexes is None:
            indexes = {}
            for col in columns:
                if col not in parts:
                    return None
                indexes[col] = parts.index(col)
            continue
        row: dict[str, str | None] = {}
        for col, i in indexes.items():
            row[col] = parts[i] if i < len(parts) else None
        rows.append(row)
    if indexes is None:
        return None
    return rows
