"""
Course id lookup from institute + program description.

Course catalogues live in different tables depending on the deployment, so
each candidate table is checked for existence before it is queried. The
first candidate that yields a match wins.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import psycopg
from psycopg import sql

from .institutes import qualified_identifier

logger = logging.getLogger(__name__)


class CourseTable(NamedTuple):
    table: str
    alt_column: str
    description_column: str = "program_description"
    institute_column: str = "inst_id"
    id_column: str = "course_id"


COURSE_TABLES = (
    CourseTable("public.master_course", "course_name"),
    CourseTable("public.subject_course", "course_title"),
)

TABLE_EXISTS_SQL = (
    "SELECT 1 FROM information_schema.tables "
    "WHERE table_schema = %s AND table_name = %s LIMIT 1"
)


def _split_table(name: str) -> tuple[str, str]:
    schema, _, table = name.rpartition(".")
    return schema or "public", table


def build_course_query(candidate: CourseTable, inst_id: str | None, description: str):
    """Return (statement, params) for one candidate table."""
    match_desc = sql.SQL("(LOWER({desc}) = LOWER(%s) OR LOWER({alt}) = LOWER(%s))").format(
        desc=sql.Identifier(candidate.description_column),
        alt=sql.Identifier(candidate.alt_column),
    )
    params = [description, description]
    where = match_desc
    if inst_id:
        where = sql.SQL("{inst} = %s AND {match}").format(
            inst=sql.Identifier(candidate.institute_column), match=match_desc
        )
        params = [inst_id, *params]
    stmt = sql.SQL("SELECT {id} FROM {table} WHERE {where} ORDER BY {id} LIMIT 1").format(
        id=sql.Identifier(candidate.id_column),
        table=qualified_identifier(candidate.table),
        where=where,
    )
    return stmt, params


class CourseResolver:
    """Look up course ids across candidate tables, memoized per import."""

    def __init__(self, conn, candidates=COURSE_TABLES):
        self.conn = conn
        self.candidates = tuple(candidates)
        self._cache: dict[tuple, str | None] = {}
        self._exists: dict[str, bool] = {}

    def resolve(self, inst_id: str | None, description: str | None) -> str | None:
        if not description:
            return None
        key = (inst_id, description.lower())
        if key not in self._cache:
            self._cache[key] = self._resolve(inst_id, description)
        return self._cache[key]

    def _resolve(self, inst_id, description):
        for candidate in self.candidates:
            try:
                if not self._table_exists(candidate.table):
                    continue
                stmt, params = build_course_query(candidate, inst_id, description)
                with self.conn.cursor() as cur:
                    cur.execute(stmt, params)
                    row = cur.fetchone()
            except psycopg.Error as exc:
                logger.warning("Course lookup in %s failed: %s", candidate.table, exc)
                continue
            if row and row[0] is not None:
                return str(row[0])
        return None

    def _table_exists(self, table: str) -> bool:
        if table not in self._exists:
            with self.conn.cursor() as cur:
                cur.execute(TABLE_EXISTS_SQL, _split_table(table))
                self._exists[table] = cur.fetchone() is not None
        return self._exists[table]
