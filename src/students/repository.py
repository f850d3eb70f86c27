"""
Single-row student queries used by the admin routes.
"""

from __future__ import annotations

from psycopg import sql

from config import LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT, STUDENT_TABLE

from .columns import DATA_COLUMNS, ID_COLUMN
from .institutes import qualified_identifier


def _clamp_limit(value, default: int = LIST_DEFAULT_LIMIT) -> int:
    """Clamp limit values to a safe 1..LIST_MAX_LIMIT range."""
    try:
        limit_value = int(value) if value is not None else default
    except (TypeError, ValueError):
        limit_value = default
    if limit_value < 1:
        return 1
    if limit_value > LIST_MAX_LIMIT:
        return LIST_MAX_LIMIT
    return limit_value


def _clamp_offset(value) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _rows_as_dicts(cur) -> list[dict]:
    columns = [desc[0] for desc in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


def list_students(conn, q=None, limit=None, offset=None, table: str = STUDENT_TABLE) -> dict:
    """Page through students, newest first, optionally filtered by ``q``."""
    table_id = qualified_identifier(table)
    where = sql.SQL("")
    filter_params = []
    if q:
        where = sql.SQL(
            "WHERE ({id}::text ILIKE %s OR stuname ILIKE %s OR stu_rollnumber ILIKE %s)"
        ).format(id=sql.Identifier(ID_COLUMN))
        pattern = f"%{q}%"
        filter_params = [pattern, pattern, pattern]

    list_stmt = sql.SQL(
        "SELECT * FROM {table} {where} ORDER BY createdat DESC NULLS LAST LIMIT %s OFFSET %s"
    ).format(table=table_id, where=where)
    count_stmt = sql.SQL("SELECT COUNT(*) FROM {table} {where}").format(table=table_id, where=where)

    with conn.cursor() as cur:
        cur.execute(list_stmt, [*filter_params, _clamp_limit(limit), _clamp_offset(offset)])
        rows = _rows_as_dicts(cur)
        cur.execute(count_stmt, filter_params)
        total = cur.fetchone()[0]
    return {"total": int(total or 0), "rows": rows}


def get_student(conn, stuid, table: str = STUDENT_TABLE) -> dict | None:
    stmt = sql.SQL("SELECT * FROM {table} WHERE {id} = %s LIMIT 1").format(
        table=qualified_identifier(table), id=sql.Identifier(ID_COLUMN)
    )
    with conn.cursor() as cur:
        cur.execute(stmt, (stuid,))
        rows = _rows_as_dicts(cur)
    return rows[0] if rows else None


def update_student(conn, stuid, values: dict, table: str = STUDENT_TABLE) -> dict | None:
    """Update the provided non-id columns; returns the row or None if absent.

    Raises ValueError when ``values`` has nothing updatable.
    """
    columns = [col for col in DATA_COLUMNS if col in values]
    if not columns:
        raise ValueError("No updatable fields provided.")
    stmt = sql.SQL("UPDATE {table} SET {assignments} WHERE {id} = %s RETURNING *").format(
        table=qualified_identifier(table),
        assignments=sql.SQL(", ").join(
            sql.SQL("{col} = %s").format(col=sql.Identifier(col)) for col in columns
        ),
        id=sql.Identifier(ID_COLUMN),
    )
    with conn.cursor() as cur:
        cur.execute(stmt, [*(values[col] for col in columns), stuid])
        rows = _rows_as_dicts(cur)
    return rows[0] if rows else None


def delete_student(conn, stuid, table: str = STUDENT_TABLE) -> bool:
    stmt = sql.SQL("DELETE FROM {table} WHERE {id} = %s").format(
        table=qualified_identifier(table), id=sql.Identifier(ID_COLUMN)
    )
    with conn.cursor() as cur:
        cur.execute(stmt, (stuid,))
        return cur.rowcount > 0
