from __future__ import annotations

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


def parse_csv_line(line: str) -> List[str]:
    """Split one data line into trimmed fields, keeping commas inside double quotes."""
    values: List[str] = []
    in_quotes = False
    current: List[str] = []
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())
    return values


def parse_csv_text(text: str) -> List[Dict[str, str]]:
    """Parse CSV text into header-keyed rows of raw strings.

    The header is the first non-empty line and is split on commas without
    quote handling. Data lines whose field count differs from the header are
    skipped with a warning.
    """
    if not isinstance(text, str):
        raise TypeError(f"CSV text must be str, got {type(text).__name__}")

    lines = text.split("\n")
    header_idx = next((i for i, line in enumerate(lines) if line.strip()), None)
    if header_idx is None:
        return []
    headers = [h.strip() for h in lines[header_idx].split(",")]

    rows: List[Dict[str, str]] = []
    dropped = 0
    for line_no in range(header_idx + 1, len(lines)):
        line = lines[line_no]
        if not line.strip():
            continue
        values = parse_csv_line(line)
        if len(values) != len(headers):
            logger.warning(
                "Line %d has %d values, but there are %d headers; skipping.",
                line_no,
                len(values),
                len(headers),
            )
            dropped += 1
            continue
        rows.append(dict(zip(headers, values)))

    if dropped:
        logger.warning("Dropped %d malformed CSV line(s).", dropped)
    return rows
