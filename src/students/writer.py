"""
Chunked, transactional writes into the student table.

Every import runs inside one transaction: chunks are written one after the
other and a failure in any chunk rolls back everything written before it.
"""

from __future__ import annotations

import logging

from psycopg import sql

from config import INSERT_CHUNK_SIZE, STUDENT_TABLE, UPSERT_CHUNK_SIZE

from .columns import COLUMNS, DATA_COLUMNS, ID_COLUMN
from .institutes import qualified_identifier

logger = logging.getLogger(__name__)

INSERT = "insert"
UPSERT = "upsert"
MODES = (INSERT, UPSERT)

CHUNK_SIZES = {
    INSERT: INSERT_CHUNK_SIZE,
    UPSERT: UPSERT_CHUNK_SIZE,
}

_ON_CONFLICT = {
    INSERT: sql.SQL("ON CONFLICT ({id}) DO NOTHING").format(id=sql.Identifier(ID_COLUMN)),
    UPSERT: sql.SQL("ON CONFLICT ({id}) DO UPDATE SET {assignments}").format(
        id=sql.Identifier(ID_COLUMN),
        assignments=sql.SQL(", ").join(
            sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(col))
            for col in DATA_COLUMNS
        ),
    ),
}


def chunked(rows: list, size: int):
    """Yield consecutive slices of at most ``size`` rows."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def row_values(row: dict) -> tuple[sql.Composable, list]:
    """Build one ``(...)`` tuple and its parameters.

    A row without an id gets DEFAULT in the id position so the sequence
    assigns it; no parameter is bound for that position.
    """
    placeholders = []
    params = []
    for col in COLUMNS:
        value = row.get(col)
        if col == ID_COLUMN and (value is None or str(value).strip() == ""):
            placeholders.append(sql.SQL("DEFAULT"))
            continue
        placeholders.append(sql.Placeholder())
        params.append(value)
    return sql.SQL("({})").format(sql.SQL(", ").join(placeholders)), params


def build_insert_statement(rows: list[dict], mode: str, table: str = STUDENT_TABLE):
    """Return (statement, params) for a multi-row INSERT of ``rows``."""
    if mode not in MODES:
        raise ValueError(f"Unknown import mode: {mode}")
    tuples = []
    params = []
    for row in rows:
        values, row_params = row_values(row)
        tuples.append(values)
        params.extend(row_params)
    stmt = sql.SQL("INSERT INTO {table} ({fields}) VALUES {values} {conflict}").format(
        table=qualified_identifier(table),
        fields=sql.SQL(", ").join(sql.Identifier(col) for col in COLUMNS),
        values=sql.SQL(", ").join(tuples),
        conflict=_ON_CONFLICT[mode],
    )
    return stmt, params


def write_rows(conn, rows: list[dict], mode: str, table: str = STUDENT_TABLE, chunk_size=None) -> int:
    """Write all rows in one transaction and return the affected row count.

    For ``insert`` the count is rows actually inserted (conflicts are
    skipped); for ``upsert`` it is rows inserted plus rows updated.
    """
    size = chunk_size or CHUNK_SIZES[mode]
    written = 0
    with conn.transaction():
        with conn.cursor() as cur:
            for number, chunk in enumerate(chunked(rows, size), start=1):
                stmt, params = build_insert_statement(chunk, mode, table)
                cur.execute(stmt, params)
                affected = max(cur.rowcount, 0)
                logger.debug("%s chunk %d: %d rows sent, %d affected", mode, number, len(chunk), affected)
                written += affected
    return written
