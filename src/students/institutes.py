"""
Institute identifier resolution.

Uploaded sheets carry institutes in many shapes: ``cid2``, ``CID-002``,
``svist`` or a full college name. Everything that can be resolved is
rendered as the canonical ``CID_NNN`` code; anything else is passed through
untouched so the row is never rejected.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple

import psycopg
from psycopg import sql

from config import COLLEGE_TABLE

logger = logging.getLogger(__name__)

CID_PATTERN = re.compile(r"^cid[\s\-_]?(\d+)$", re.IGNORECASE)
CID_MIN_DIGITS = 3

INSTITUTE_ID_TO_NAME = {
    "CID_001": "SVIST",
    "CID_002": "SRST",
    "CID_003": "SVIMS",
}
INSTITUTE_NAME_TO_ID = {
    name.strip().lower(): code for code, name in INSTITUTE_ID_TO_NAME.items()
}

# Resolution sources, in the order they are tried.
PATTERN = "pattern"
KNOWN_NAME = "known_name"
DIRECTORY = "directory"
PASSTHROUGH = "passthrough"


class Resolution(NamedTuple):
    """Outcome of a best-effort lookup: the value to store and where it came from."""

    value: str | None
    source: str

    @property
    def resolved(self) -> bool:
        return self.source != PASSTHROUGH


def normalize_cid_like(value) -> str | None:
    """Render ``cid001``/``CID-1``/``cid_01`` as ``CID_001``; None if not CID-like."""
    match = CID_PATTERN.match(str(value or "").strip())
    if not match:
        return None
    return f"CID_{match.group(1).zfill(CID_MIN_DIGITS)}"


def qualified_identifier(name: str) -> sql.Identifier:
    """Turn ``schema.table`` into a quoted, qualified identifier."""
    return sql.Identifier(*name.split("."))


class InstituteResolver:
    """Resolve raw institute tokens, memoizing results for one import."""

    def __init__(self, conn, college_table: str = COLLEGE_TABLE):
        self.conn = conn
        self.college_table = college_table
        self._cache: dict[str, Resolution] = {}

    def resolve(self, raw) -> Resolution:
        token = "" if raw is None else str(raw).strip()
        if not token:
            return Resolution(None, PASSTHROUGH)
        if token not in self._cache:
            self._cache[token] = self._resolve(token)
        return self._cache[token]

    def _resolve(self, token: str) -> Resolution:
        code = normalize_cid_like(token)
        if code:
            return Resolution(code, PATTERN)

        code = INSTITUTE_NAME_TO_ID.get(token.lower())
        if code:
            return Resolution(code, KNOWN_NAME)

        stored = self._lookup_directory(token)
        if stored:
            return Resolution(normalize_cid_like(stored) or stored, DIRECTORY)

        return Resolution(token, PASSTHROUGH)

    def _lookup_directory(self, name: str) -> str | None:
        stmt = sql.SQL(
            "SELECT inst_id FROM {table} WHERE LOWER(inst_name) = LOWER(%s) LIMIT 1"
        ).format(table=qualified_identifier(self.college_table))
        try:
            with self.conn.cursor() as cur:
                cur.execute(stmt, (name,))
                row = cur.fetchone()
        except psycopg.Error as exc:
            logger.warning("Institute directory lookup failed for %r: %s", name, exc)
            return None
        if row and row[0]:
            return str(row[0])
        return None
