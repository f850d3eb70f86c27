"""
Student id previews.

Two id styles are in use across deployments: plain numbers drawn from a
sequence, and strings with a prefix and zero-padded tail (``STU_ID_023``).
These helpers compute "last" and "next" values for display; inserts still
rely on the table default.
"""

from __future__ import annotations

import logging
import re

import psycopg
from psycopg import sql

from config import STUDENT_ID_SEQUENCE, STUDENT_TABLE, STUID_PAD, STUID_PREFIX

from .columns import ID_COLUMN
from .institutes import qualified_identifier

logger = logging.getLogger(__name__)

TRAILING_DIGITS = re.compile(r"^(.*?)(\d+)$")


def last_numeric_id(conn, table: str = STUDENT_TABLE) -> int:
    """Largest purely numeric id in the table, or 0."""
    stmt = sql.SQL(
        "SELECT COALESCE(MAX(CASE WHEN {id}::text ~ '^[0-9]+$' "
        "THEN {id}::text::numeric END), 0)::bigint FROM {table}"
    ).format(id=sql.Identifier(ID_COLUMN), table=qualified_identifier(table))
    with conn.cursor() as cur:
        cur.execute(stmt)
        row = cur.fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def _sequence_next(conn, sequence: str) -> int | None:
    schema, _, name = sequence.rpartition(".")
    with conn.cursor() as cur:
        cur.execute(
            "SELECT last_value, increment_by, start_value FROM pg_sequences "
            "WHERE schemaname = %s AND sequencename = %s",
            (schema or "public", name),
        )
        row = cur.fetchone()
    if not row:
        return None
    last_value, increment_by, start_value = row
    if last_value is None:
        # Sequence has never been called.
        return int(start_value)
    return int(last_value) + int(increment_by)


def next_numeric_id(conn, table: str = STUDENT_TABLE, sequence: str = STUDENT_ID_SEQUENCE) -> int:
    """Sequence value + increment, falling back to max(id) + 1."""
    try:
        value = _sequence_next(conn, sequence)
    except psycopg.Error as exc:
        logger.warning("Sequence %s not readable, using max(id) + 1: %s", sequence, exc)
        value = None
    if value is not None:
        return value
    return last_numeric_id(conn, table) + 1


def last_string_id(conn, table: str = STUDENT_TABLE) -> str | None:
    """Id with the numerically largest trailing digit run, or None."""
    stmt = sql.SQL(
        "SELECT {id}::text FROM {table} "
        "WHERE {id}::text ~ '[0-9]+$' "
        "ORDER BY substring({id}::text FROM '([0-9]+)$')::numeric DESC, {id}::text DESC "
        "LIMIT 1"
    ).format(id=sql.Identifier(ID_COLUMN), table=qualified_identifier(table))
    with conn.cursor() as cur:
        cur.execute(stmt)
        row = cur.fetchone()
    return row[0] if row else None


def next_increment_id(last: str | None = None, fallback_prefix: str = STUID_PREFIX, fallback_pad: int = STUID_PAD) -> str:
    """Increment the numeric tail of ``last`` keeping its prefix and width.

    "STU_ID_023" becomes "STU_ID_024". Without a usable ``last`` the id
    starts at 1 under the fallback prefix and padding.
    """
    match = TRAILING_DIGITS.match(str(last)) if last else None
    if not match:
        return f"{fallback_prefix}{str(1).zfill(max(1, int(fallback_pad)))}"
    prefix, digits = match.groups()
    return f"{prefix}{str(int(digits) + 1).zfill(len(digits))}"


def next_string_id(conn, table: str = STUDENT_TABLE, prefix: str = STUID_PREFIX, pad: int = STUID_PAD) -> str:
    """Next string-style id after the current last one."""
    return next_increment_id(last_string_id(conn, table), prefix, pad)
