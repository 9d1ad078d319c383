"""On-disk CSV format for the editable content files.

Layout (every field quoted):

    "<description>","<header1>","<header2>",...
    "","<value1>","<value2>",...

The first column of the first record holds a free-text description; in data
rows that column is an empty placeholder so values line up under their
headers. Reading is lenient: quoted fields may span lines, stray quotes are
kept literally and rows may be shorter or longer than the header.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from siteadmin.errors import ParseError, ValidationError, WriteError

log = logging.getLogger(__name__)


@dataclass
class CsvDocument:
    description: str = ""
    header_columns: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)


def _header_columns(cells: list[str]) -> list[str]:
    """Trimmed, non-empty header names in file order."""
    columns: list[str] = []
    for cell in cells:
        name = cell.strip()
        if name:
            columns.append(name)
    return columns


def decode(text: str) -> CsvDocument:
    """Parse file contents into a CsvDocument. Raises ParseError."""
    try:
        records = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as exc:
        raise ParseError(f"Malformed CSV: {exc}") from exc

    if not records:
        return CsvDocument()

    first = records[0]
    description = first[0] if first else ""
    columns = _header_columns(first[1:])

    # Cell i+1 belongs to columns[i]; a repeated header name is ignored.
    positions: dict[str, int] = {}
    for index, name in enumerate(columns):
        positions.setdefault(name, index + 1)

    rows = []
    for record in records[1:]:
        row = {}
        for name, position in positions.items():
            row[name] = record[position] if position < len(record) else ""
        rows.append(row)

    return CsvDocument(description=description, header_columns=list(positions), rows=rows)


def encode(document: CsvDocument) -> str:
    """Serialize a CsvDocument to the on-disk format."""
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([document.description, *document.header_columns])
    for row in document.rows:
        writer.writerow([""] + [_cell(row.get(name)) for name in document.header_columns])
    return buf.getvalue()


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def document_from_payload(payload: Any) -> CsvDocument:
    """Build a document from a POST /api/admin/csv body. Raises ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid data")

    data = payload.get("data")
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise ValidationError("Invalid data")

    header = payload.get("header", "")
    if isinstance(header, str):
        names = header.split(",")
    elif isinstance(header, list) and all(isinstance(h, str) for h in header):
        names = header
    else:
        raise ValidationError("Invalid header")
    columns = list(dict.fromkeys(_header_columns(names)))

    description = payload.get("description")
    if description is None:
        description = ""
    elif not isinstance(description, str):
        raise ValidationError("Invalid description")

    rows = [{name: _cell(row.get(name)) for name in columns} for row in data]
    return CsvDocument(description=description, header_columns=columns, rows=rows)


def document_to_payload(document: CsvDocument) -> dict[str, Any]:
    """GET /api/admin/csv response body."""
    return {
        "description": document.description,
        "header": ",".join(document.header_columns),
        "data": document.rows,
    }


class CsvStore:
    """Reads and overwrites the CSV file behind each file key.

    Every read goes to disk. Writes replace the whole file with no locking:
    two concurrent saves of the same file end with whichever wrote last.
    """

    def __init__(self, paths: dict[str, Path]) -> None:
        self._paths = dict(paths)

    @property
    def file_keys(self) -> list[str]:
        return list(self._paths)

    def path_for(self, file_key: str | None) -> Path:
        if not file_key or file_key not in self._paths:
            raise ValidationError("Invalid file name")
        return self._paths[file_key]

    def read(self, file_key: str) -> CsvDocument:
        path = self.path_for(file_key)
        try:
            with open(path, encoding="utf-8", newline="") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            log.error("Failed to read %s: %s", path, exc)
            raise ParseError("Failed to read CSV file") from exc
        try:
            return decode(text)
        except ParseError as exc:
            log.error("Failed to parse %s", path, exc_info=True)
            raise ParseError("Failed to read CSV file") from exc

    def write(self, file_key: str, document: CsvDocument) -> None:
        path = self.path_for(file_key)
        content = encode(document)
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as exc:
            log.error("Failed to write %s: %s", path, exc)
            raise WriteError("Failed to save CSV file") from exc
        log.info("Saved %s (%d rows) to %s", file_key, len(document.rows), path)
