"""
Bulk student import: CSV payload -> canonical rows -> one transaction.

Parsing and column mapping happen before any database work, so malformed
input never opens a transaction. Resolution and writes are issued one at a
time on the caller's connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import psycopg

from config import STUDENT_TABLE

from .courses import CourseResolver
from .errors import EmptyCsvError
from .institutes import InstituteResolver
from .normalize import RowNormalizer, map_csv_rows, parse_csv
from .writer import INSERT, MODES, UPSERT, write_rows

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    mode: str
    total_rows: int
    written_rows: int
    warnings: list = field(default_factory=list)

    @property
    def skipped_rows(self) -> int:
        """Rows the insert left untouched (id already present)."""
        return self.total_rows - self.written_rows

    def to_dict(self) -> dict:
        if self.mode == UPSERT:
            return {
                "message": "Bulk upsert completed",
                "affected_rows": self.written_rows,
                "warnings": self.warnings,
            }
        return {
            "message": "Bulk insert completed",
            "total_rows": self.total_rows,
            "inserted_rows": self.written_rows,
            "skipped_or_conflicted": self.skipped_rows,
            "warnings": self.warnings,
        }


def load_csv(payload) -> tuple[list[dict], list[dict]]:
    """Parse and map a CSV payload; raises ImportInputError on bad input."""
    records = parse_csv(payload)
    if not records:
        raise EmptyCsvError()
    return map_csv_rows(records)


def import_rows(conn, rows: list[dict], warnings: list[dict], mode: str = INSERT,
                table: str = STUDENT_TABLE, chunk_size=None) -> ImportResult:
    """Resolve institute/course ids for mapped rows and write them."""
    if mode not in MODES:
        raise ValueError(f"Unknown import mode: {mode}")

    normalizer = RowNormalizer(InstituteResolver(conn), CourseResolver(conn))
    normalized = normalizer.normalize_all(rows)

    try:
        written = write_rows(conn, normalized, mode, table=table, chunk_size=chunk_size)
    except psycopg.Error:
        logger.exception("Bulk %s of %d rows rolled back", mode, len(normalized))
        raise

    result = ImportResult(mode, len(normalized), written, warnings)
    logger.info(
        "Bulk %s committed: %d rows, %d written, %d skipped",
        mode, result.total_rows, result.written_rows, result.skipped_rows,
    )
    return result


def run_import(conn, payload, mode: str = INSERT, **kwargs) -> ImportResult:
    """Full pipeline for one upload."""
    rows, warnings = load_csv(payload)
    return import_rows(conn, rows, warnings, mode, **kwargs)
