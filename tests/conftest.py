"""
Shared pytest fixtures and helpers.

Pytest automatically discovers this file and makes the fixtures available
to all tests in this folder. Unit tests run against scripted fake
connections; tests marked ``db`` need a reachable PostgreSQL and are
skipped otherwise.
"""

import os
import sys
from contextlib import contextmanager
from pathlib import Path

import pytest


ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
# Allow tests to import application modules from the src/ directory.
sys.path.insert(0, str(SRC_DIR))

_TEST_DB_ENV_MAP = {
    "DB_HOST_TEST": "DB_HOST",
    "DB_PORT_TEST": "DB_PORT",
    "DB_NAME_TEST": "DB_NAME",
    "DB_USER_TEST": "DB_USER",
    "DB_PASSWORD_TEST": "DB_PASSWORD",
}


def _apply_test_db_overrides():
    # If *_TEST variables are set, copy them onto the standard DB_* vars
    # so tests can target a dedicated database without affecting production.
    for test_var, base_var in _TEST_DB_ENV_MAP.items():
        value = os.getenv(test_var)
        if value:
            os.environ[base_var] = value


def query_text(query):
    """Readable form of a str or psycopg.sql object for assertions."""
    return query if isinstance(query, str) else repr(query)


class FakeCursor:
    # Mimics the subset of psycopg's cursor API the application uses.
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = -1
        self.description = None
        self._rows = []

    def execute(self, query, params=None):
        self.conn.executed.append((query_text(query), params))
        result = self.conn.handler(query_text(query), params)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, int):
            self.rowcount = result
            self._rows = []
            return
        columns, rows = result if isinstance(result, tuple) else (None, result or [])
        self._rows = list(rows)
        self.rowcount = len(self._rows)
        self.description = [(name,) for name in columns] if columns else None

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeConnection:
    """Records statements and transaction boundaries.

    ``handler(query_text, params)`` returns rows (list of tuples), a
    ``(columns, rows)`` tuple, an int rowcount, or an exception to raise.
    """

    def __init__(self, handler=None):
        self.handler = handler or (lambda query, params: [])
        self.executed = []
        self.events = []
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    @contextmanager
    def transaction(self):
        self.events.append("BEGIN")
        try:
            yield self
        except BaseException:
            self.events.append("ROLLBACK")
            raise
        self.events.append("COMMIT")

    def queries(self, needle):
        return [(q, p) for q, p in self.executed if needle in q]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


@pytest.fixture()
def make_conn():
    # Factory so each test scripts its own database responses.
    return FakeConnection


@pytest.fixture()
def app():
    # Create a Flask app; tests inject DB_CONNECT to avoid a real database.
    from run import create_app

    return create_app({"TESTING": True})


@pytest.fixture()
def client(app):
    # The test client lets you call routes without starting a real server.
    return app.test_client()


@pytest.fixture()
def db_conn():
    # Real PostgreSQL: provision the schema, clear student and course rows.
    _apply_test_db_overrides()
    from db.db_config import get_connection
    from db.migrate import provision

    try:
        conn = get_connection()
    except RuntimeError as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")

    with conn:
        provision(conn)
        with conn.cursor() as cur:
            # RESTART IDENTITY also resets student_id_seq, which the table owns.
            cur.execute("TRUNCATE student_master RESTART IDENTITY")
            cur.execute("DELETE FROM master_course")
        yield conn
