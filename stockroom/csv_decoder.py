"""Delimiter-sniffing, quote-aware line decoder for vendor catalog files.

Vendor exports arrive comma, tab, semicolon or pipe separated, sometimes
with a UTF-8 BOM and CRLF line endings. Each physical line is one record;
quoted fields may contain the delimiter but not a newline.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

__all__ = [
    "DELIMITER_PRIORITY",
    "CsvTable",
    "detect_delimiter",
    "parse_line",
    "read_table",
]

# Tie-break order for delimiter detection
DELIMITER_PRIORITY = (",", "\t", ";", "|")

_LINE_SPLIT = re.compile(r"\r?\n")


def detect_delimiter(header_line: str) -> str:
    """Pick the most frequent candidate delimiter in the header line.

    Ties go to the earlier entry in DELIMITER_PRIORITY. Falls back to a
    comma when no candidate appears at all.
    """
    best = ","
    best_count = 0
    for candidate in DELIMITER_PRIORITY:
        count = header_line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def parse_line(line: str, delimiter: str = ",") -> List[str]:
    """Split one record into trimmed field strings.

    A quote toggles the in-quotes state, except a doubled quote inside a
    quoted field, which emits one literal quote. Malformed quoting never
    raises; a stray quote just shifts the following field boundaries.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return [f.strip() for f in fields]


@dataclass
class CsvTable:
    """A decoded catalog file: header names plus raw cell rows."""

    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    delimiter: str = ","

    @property
    def normalized_headers(self) -> List[str]:
        return [h.strip().lower() for h in self.headers]

    def records(self) -> Iterator[Dict[str, str]]:
        """Yield each row as a dict keyed by lower-cased header.

        Short rows are padded with empty strings; surplus cells are ignored.
        When a header repeats, the first column wins.
        """
        keys = self.normalized_headers
        for cells in self.rows:
            record: Dict[str, str] = {}
            for idx, key in enumerate(keys):
                if key in record:
                    continue
                record[key] = cells[idx] if idx < len(cells) else ""
            yield record


def read_table(path: Union[str, Path]) -> Optional[CsvTable]:
    """Read and decode a catalog file.

    Returns None when the file does not exist. An existing but empty file
    yields a table with no headers. OSError other than a missing file
    propagates to the caller.
    """
    path = Path(path)
    if not path.exists():
        return None

    text = path.read_text(encoding="utf-8", errors="replace")
    if text.startswith("\ufeff"):
        text = text[1:]

    lines = [line for line in _LINE_SPLIT.split(text) if line]
    if not lines:
        return CsvTable(headers=[])

    delimiter = detect_delimiter(lines[0])
    headers = parse_line(lines[0], delimiter)
    rows = [parse_line(line, delimiter) for line in lines[1:]]
    return CsvTable(headers=headers, rows=rows, delimiter=delimiter)
