"""Database connection settings for the student records backend."""

from __future__ import annotations

import os

import psycopg

REQUIRED_ENV_VARS = ("DB_HOST", "DB_NAME", "DB_USER")


def get_db_config() -> dict:
    """Return connection kwargs, preferring DATABASE_URL when set."""
    url = os.getenv("DATABASE_URL")
    if url:
        return {"conninfo": url}
    missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
    if missing:
        raise RuntimeError(f"Missing required DB environment variables: {', '.join(missing)}")
    cfg = {
        "host": os.getenv("DB_HOST"),
        "dbname": os.getenv("DB_NAME"),
        "user": os.getenv("DB_USER"),
    }
    password = os.getenv("DB_PASSWORD")
    if password:
        cfg["password"] = password
    port = os.getenv("DB_PORT")
    if port:
        cfg["port"] = int(port) if port.isdigit() else port
    gss = os.getenv("DB_GSSENCMODE")
    if gss:
        cfg["gssencmode"] = gss
    # Managed Postgres deployments require TLS with a pinned CA bundle.
    sslmode = os.getenv("DB_SSLMODE")
    if sslmode:
        cfg["sslmode"] = sslmode
    sslrootcert = os.getenv("DB_SSLROOTCERT")
    if sslrootcert:
        cfg["sslrootcert"] = sslrootcert
    return cfg


def get_connection(autocommit: bool = True):
    """Open a DB connection or raise a helpful error.

    Connections are autocommit by default; callers open explicit
    transactions with ``conn.transaction()`` where they need one.
    """
    try:
        return psycopg.connect(**get_db_config(), autocommit=autocommit)
    except psycopg.OperationalError as exc:
        raise RuntimeError(f"Error connecting to database: {exc}") from exc
