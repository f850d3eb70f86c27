"""
Schema provisioning for the student records backend.

db/migrations/ creates the student table and its id sequence, the institute
directory and the course table. ``provision`` applies every file not yet
listed in schema_migrations, each in its own transaction, checks that the
tables the import pipeline reads and writes exist, and moves the student id
sequence past numeric ids that were stored explicitly.
"""

from __future__ import annotations

import logging
from pathlib import Path

from psycopg import sql

from config import COLLEGE_TABLE, STUDENT_ID_SEQUENCE, STUDENT_TABLE

from .db_config import get_connection

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
COURSE_TABLE = "public.master_course"
PROVISIONED_TABLES = (STUDENT_TABLE, COLLEGE_TABLE, COURSE_TABLE)

LEDGER_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    "filename TEXT PRIMARY KEY, applied_at TIMESTAMP DEFAULT NOW()"
    ")"
)

logger = logging.getLogger(__name__)


def _identifier(name: str) -> sql.Identifier:
    return sql.Identifier(*name.split("."))


def pending_migrations(conn, directory: Path = MIGRATIONS_DIR) -> list[Path]:
    """Migration files not yet recorded, in filename order."""
    with conn.cursor() as cur:
        cur.execute(LEDGER_DDL)
        cur.execute("SELECT filename FROM schema_migrations")
        done = {row[0] for row in cur.fetchall()}
    return [path for path in sorted(Path(directory).glob("*.sql")) if path.name not in done]


def apply_migration(conn, path: Path) -> None:
    """Run one file and record it; a failing file leaves no trace."""
    statements = path.read_text(encoding="utf-8")
    with conn.transaction(), conn.cursor() as cur:
        if statements.strip():
            cur.execute(statements)
        cur.execute("INSERT INTO schema_migrations (filename) VALUES (%s)", (path.name,))
    logger.info("Applied migration %s", path.name)


def missing_tables(conn, tables=PROVISIONED_TABLES) -> list[str]:
    missing = []
    with conn.cursor() as cur:
        for name in tables:
            cur.execute("SELECT to_regclass(%s)", (name,))
            if cur.fetchone()[0] is None:
                missing.append(name)
    return missing


def sync_student_sequence(conn, table: str = STUDENT_TABLE,
                          sequence: str = STUDENT_ID_SEQUENCE) -> int | None:
    """Move the id sequence to the largest all-digit student id.

    Uploads may carry explicit numeric ids; later rows that take the
    sequence DEFAULT must not land on them. The sequence only moves
    forward. Returns the new position, or None when nothing changed.
    """
    highest_stmt = sql.SQL(
        "SELECT MAX(CASE WHEN stuid ~ '^[0-9]+$' THEN stuid::bigint END) FROM {table}"
    ).format(table=_identifier(table))
    position_stmt = sql.SQL("SELECT last_value, is_called FROM {seq}").format(
        seq=_identifier(sequence)
    )
    with conn.cursor() as cur:
        cur.execute(highest_stmt)
        highest = cur.fetchone()[0]
        if highest is None:
            return None
        cur.execute(position_stmt)
        last_value, is_called = cur.fetchone()
        used = last_value if is_called else last_value - 1
        if highest <= used:
            return None
        cur.execute("SELECT setval(%s::regclass, %s)", (sequence, highest))
    logger.info("Moved %s to %d", sequence, highest)
    return highest


def provision(conn=None) -> list[str]:
    """Bring the schema up to date and return the migration files applied."""
    if conn is None:
        with get_connection() as own:
            return provision(own)

    applied = []
    for path in pending_migrations(conn):
        apply_migration(conn, path)
        applied.append(path.name)

    missing = missing_tables(conn)
    if missing:
        raise RuntimeError(f"Tables missing after migrations: {', '.join(missing)}")
    sync_student_sequence(conn)
    return applied


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    ran = provision()
    print(f"Schema ready. Applied {len(ran)} migration(s).")
