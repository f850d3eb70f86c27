"""
CSV parsing and row normalization for student uploads.

Designed to be small, testable, and easy to reuse from the import pipeline
and the single-row update route.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Iterable

from .columns import ACCEPT_COLUMNS, COLUMNS, canonicalize_header, missing_columns
from .errors import CsvParseError

logger = logging.getLogger(__name__)

MISSING_COLUMNS_NOTE = "Some DB columns absent in CSV; they will be inserted as NULL."


def clean_text(value):
    """Strip whitespace from text fields; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def decode_payload(payload) -> str:
    """Decode uploaded bytes as UTF-8 (a leading BOM is dropped)."""
    if isinstance(payload, str):
        return payload.lstrip("\ufeff")
    try:
        return bytes(payload).decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvParseError(f"file is not valid UTF-8 ({exc.reason})") from exc


def strip_quote_padding(text: str) -> str:
    """Drop blanks between a closing quote and the next delimiter or line end.

    ``csv`` only skips blanks before a field (``skipinitialspace``); in strict
    mode ``"Asha Rao" ,R-101`` is otherwise an error. Quotes that do not open
    a field are left alone, as the reader treats them as literal text.
    """
    out = []
    at_field_start = True
    quoted = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        out.append(ch)
        i += 1
        if quoted:
            if ch != '"':
                continue
            if i < n and text[i] == '"':
                out.append('"')
                i += 1
                continue
            quoted = False
            j = i
            while j < n and text[j] in " \t":
                j += 1
            if j == n or text[j] in ",\r\n":
                i = j
        elif ch in ",\r\n":
            at_field_start = True
        elif ch == '"' and at_field_start:
            quoted = True
            at_field_start = False
        elif ch != " ":
            at_field_start = False
    return "".join(out)


def parse_csv(payload) -> list[dict]:
    """Parse comma-separated text with a header row into canonicalized records.

    Blank lines (including whitespace-only ones) are skipped and every field
    is trimmed, quoted or not. A record whose field count differs from the
    header is treated as malformed input.
    """
    text = strip_quote_padding(decode_payload(payload))
    reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True, strict=True)
    headers = None
    records = []
    try:
        for row in reader:
            fields = [field.strip() for field in row]
            if not any(fields):
                continue
            if headers is None:
                headers = [canonicalize_header(h) for h in fields]
                continue
            if len(fields) != len(headers):
                raise CsvParseError(
                    f"line {reader.line_num}: expected {len(headers)} fields, got {len(fields)}"
                )
            records.append(dict(zip(headers, fields)))
    except csv.Error as exc:
        raise CsvParseError(f"line {reader.line_num}: {exc}") from exc

    if headers:
        unmapped = [h for h in headers if h not in ACCEPT_COLUMNS]
        logger.info("Parsed %d CSV rows; unmapped headers: %s", len(records), unmapped or "none")
    return records


def map_csv_rows(records: list[dict]) -> tuple[list[dict], list[dict]]:
    """Project records onto the canonical columns and collect warnings."""
    if not records:
        return [], []
    missing = missing_columns(records[0].keys())
    warnings = []
    if missing:
        warnings.append(
            {
                "type": "missing_columns",
                "note": MISSING_COLUMNS_NOTE,
                "columns": missing,
            }
        )
    rows = [{col: record.get(col) for col in COLUMNS} for record in records]
    return rows, warnings


class RowNormalizer:
    """Trim values and fill institute/course ids through the resolvers."""

    def __init__(self, institutes, courses):
        self.institutes = institutes
        self.courses = courses

    def normalize(self, row: dict, columns: Iterable[str] = COLUMNS) -> dict:
        """Normalize the given canonical ``columns`` of ``row``.

        Columns missing from ``row`` are left out of the result unless they
        are filled by course resolution.
        """
        out = {col: clean_text(row[col]) for col in columns if col in row}

        if "stu_inst_id" in out:
            out["stu_inst_id"] = self.institutes.resolve(out["stu_inst_id"]).value

        if not out.get("stu_course_id") and out.get("programdescription"):
            course_id = self.courses.resolve(out.get("stu_inst_id"), out["programdescription"])
            if course_id:
                out["stu_course_id"] = course_id
        return out

    def normalize_all(self, rows: Iterable[dict]) -> list[dict]:
        return [self.normalize(row) for row in rows]
