"""
Token import/export formats.

JSON documents have the shape::

    {"tokens": [{"name": "...", "label": "...", "value": "..."}],
     "replace_existing": false}

CSV files carry a ``name,label,value`` header followed by one token per
line, every field double-quoted with embedded quotes doubled.
"""

from __future__ import annotations

import csv
import io
import json
import re
from typing import Any, Literal

from .models import ImportParseError, TokenMap

CSV_HEADER = "name,label,value"

ImportFormat = Literal["json", "csv"]

_LINE_BREAK_RE = re.compile(r"\r?\n")


# --- Export ---


def export_rows(tokens: TokenMap) -> list[dict[str, str]]:
    """Token mapping as a list of name/label/value dicts in store order."""
    return [
        {"name": name, "label": data.label, "value": data.value}
        for name, data in tokens.items()
    ]


def export_json(tokens: TokenMap, *, indent: int | None = 2) -> str:
    """Serialize the token mapping as an import-compatible JSON document."""
    return json.dumps({"tokens": export_rows(tokens)}, indent=indent, ensure_ascii=False)


def export_csv(tokens: TokenMap) -> str:
    """Serialize the token mapping as CSV with a header row."""
    buffer = io.StringIO()
    buffer.write(CSV_HEADER + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for name, data in tokens.items():
        writer.writerow([name, data.label, data.value])
    return buffer.getvalue()


# --- CSV Import ---


def parse_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into fields.

    Quoted fields may contain commas; ``""`` inside quotes is a literal quote.
    """
    return next(csv.reader([line]), [])


def parse_csv(text: str) -> list[dict[str, str]]:
    """
    Parse CSV text into token dicts.

    The first non-blank line is skipped when its first column contains
    "name". Lines with fewer than two fields or an empty name are dropped.
    """
    rows: list[dict[str, str]] = []
    first = True

    for line in _LINE_BREAK_RE.split(text):
        if not line.strip():
            continue

        fields = parse_csv_line(line)

        if first:
            first = False
            if fields and "name" in fields[0].lower():
                continue

        if len(fields) < 2 or not fields[0].strip():
            continue

        rows.append(
            {
                "name": fields[0],
                "label": fields[1],
                "value": fields[2] if len(fields) > 2 else "",
            }
        )

    return rows


# --- JSON Import ---


def parse_json_payload(raw: str) -> tuple[list[Any], bool]:
    """
    Parse a JSON import document.

    Returns:
        Tuple of (token entries, replace_existing flag).

    Raises:
        ImportParseError: if the text is not JSON, not an object, or has
            no ``tokens`` list.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ImportParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict) or not data:
        raise ImportParseError("Import document must be a JSON object")

    tokens = data.get("tokens")
    if not isinstance(tokens, list):
        raise ImportParseError('Import document must contain a "tokens" list', field="tokens")

    return tokens, bool(data.get("replace_existing"))


def detect_format(content: str, filename: str | None = None) -> ImportFormat:
    """Pick the import format from the filename suffix, else from the content."""
    if filename:
        lowered = filename.lower()
        if lowered.endswith(".json"):
            return "json"
        if lowered.endswith(".csv"):
            return "csv"
    stripped = content.lstrip("\ufeff \t\r\n")
    return "json" if stripped.startswith(("{", "[")) else "csv"


def parse_import_file(
    content: str,
    filename: str | None = None,
    replace_existing: bool = False,
) -> tuple[list[Any], bool]:
    """
    Parse an uploaded import file (JSON or CSV).

    For CSV the replace flag comes from the caller. For JSON a
    ``replace_existing`` key in the document is honoured as well.
    """
    content = content.lstrip("\ufeff")
    if detect_format(content, filename) == "json":
        tokens, doc_replace = parse_json_payload(content)
        return tokens, replace_existing or doc_replace
    return parse_csv(content), replace_existing
