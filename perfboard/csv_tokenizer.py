"""Line-oriented CSV tokenizer tolerant of hand-edited spreadsheet exports."""

from __future__ import annotations

from typing import List


def split_lines(text: str) -> List[str]:
    """Split a CSV blob into its non-blank lines."""
    return [line for line in (text or "").splitlines() if line.strip()]


def _clean_field(raw: str) -> str:
    val = raw.strip()
    if len(val) >= 2 and val.startswith('"') and val.endswith('"'):
        val = val[1:-1].replace('""', '"')
    return val.strip()


def tokenize_line(line: str) -> List[str]:
    """Split one CSV row on commas that sit outside double quotes.

    ``a,"b,c",d`` -> ``["a", "b,c", "d"]``; a doubled quote inside a quoted
    field is one literal quote. Multi-line quoted fields are not supported.
    """
    fields: List[str] = []
    start = 0
    in_quotes = False
    for i, ch in enumerate(line):
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append(_clean_field(line[start:i]))
            start = i + 1
    fields.append(_clean_field(line[start:]))
    return fields
